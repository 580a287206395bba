"""Pydantic names used by the generated ``client.py``.

The generator rewrites ``from pydantic import ...`` into an import from this
module so every generated model shares the ``BaseModel`` below. Any other
name is looked up on ``pydantic`` itself.
"""

from typing import Any

import pydantic
from pydantic import ConfigDict, Field, RootModel

__all__ = ["BaseModel", "ConfigDict", "Field", "RootModel"]


class BaseModel(pydantic.BaseModel):
    # Graph payloads use camelCase aliases; allow Python field names too
    model_config = ConfigDict(populate_by_name=True)


def __getattr__(name: str) -> Any:
    try:
        return getattr(pydantic, name)
    except AttributeError:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}") from None
