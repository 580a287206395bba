"""Generate typed Graph models from the trimmed OpenAPI document.

Runs ``datamodel-codegen`` to write ``client.py`` and then patches the
generated text:

- the ``pydantic`` import is redirected to the local ``_graph_base`` shim
- ``MicrosoftGraphAttachment`` and ``MicrosoftGraphPlannerAssignments`` accept
  unknown fields, since the published schema lags behind the live API
- the OData error-response models are removed; nothing uses them

The patches are regular expressions over the generated source. A pattern
that no longer matches (for example after an upstream rename) leaves the text
untouched and is reported as unapplied instead of failing the run.
"""

import argparse
import logging
import re
import subprocess
import sys
from pathlib import Path
from typing import Callable, NamedTuple, Sequence

from .exceptions import ClientGenerationError

logger = logging.getLogger(__name__)

DEFAULT_SPEC_PATH = Path("openapi") / "openapi-trimmed.yaml"
DEFAULT_OUTPUT_DIR = Path("src") / "m365_tasks_mcp" / "generated"
CLIENT_FILE_NAME = "client.py"

DEFAULT_COMMAND: tuple[str, ...] = ("datamodel-codegen",)

PASSTHROUGH_MODELS = ("MicrosoftGraphAttachment", "MicrosoftGraphPlannerAssignments")

ERROR_MODEL_PREFIX = "MicrosoftGraphODataErrors"


class Patch(NamedTuple):
    name: str
    apply: Callable[[str], tuple[str, int]]


def _redirect_pydantic_import(source: str) -> tuple[str, int]:
    return re.subn(
        r"^from pydantic import ",
        "from ._graph_base import ",
        source,
        count=1,
        flags=re.MULTILINE,
    )


def _passthrough_patch(model: str) -> Patch:
    # Class header, then indented (or blank) lines up to the extra= setting
    pattern = re.compile(
        rf"^(class {model}\([^)]*\):\n"
        r"(?:(?:[ \t]+[^\n]*)?\n)*?"
        r"[ \t]+[^\n]*?\bextra=)(['\"])forbid\2",
        re.MULTILINE,
    )

    def apply(source: str) -> tuple[str, int]:
        return pattern.subn(r"\1\2allow\2", source, count=1)

    return Patch(f"passthrough:{model}", apply)


_ERROR_CLASS_RE = re.compile(
    rf"^class {ERROR_MODEL_PREFIX}\w*\(.*?(?=^\S|\Z)",
    re.MULTILINE | re.DOTALL,
)
_ERROR_REBUILD_RE = re.compile(
    rf"^{ERROR_MODEL_PREFIX}\w*\.model_rebuild\(\)\n?",
    re.MULTILINE,
)


def _strip_error_models(source: str) -> tuple[str, int]:
    source, classes = _ERROR_CLASS_RE.subn("", source)
    source, rebuilds = _ERROR_REBUILD_RE.subn("", source)
    return source, classes + rebuilds


PATCHES: tuple[Patch, ...] = (
    Patch("redirect-pydantic-import", _redirect_pydantic_import),
    *(_passthrough_patch(model) for model in PASSTHROUGH_MODELS),
    Patch("strip-error-models", _strip_error_models),
)


def apply_patches(
    source: str, patches: Sequence[Patch] = PATCHES
) -> tuple[str, list[str]]:
    """Apply every patch in order.

    Returns:
        The patched source and the names of patches that matched nothing.
    """
    unapplied: list[str] = []
    for patch in patches:
        source, count = patch.apply(source)
        if count == 0:
            logger.warning(f"Post-processing pattern not found: {patch.name}")
            unapplied.append(patch.name)
        else:
            logger.debug(f"Applied {patch.name} ({count} substitution(s))")
    return source, unapplied


def post_process(source: str) -> str:
    patched, _ = apply_patches(source)
    return patched


def build_command(
    spec_path: Path, client_path: Path, command: Sequence[str] = DEFAULT_COMMAND
) -> list[str]:
    return [
        *command,
        "--input",
        str(spec_path),
        "--input-file-type",
        "openapi",
        "--output",
        str(client_path),
        "--output-model-type",
        "pydantic_v2.BaseModel",
        "--extra-fields",
        "forbid",
        "--use-field-description",
        "--use-schema-description",
        # keep dotted schema names such as microsoft.graph.todoTask as single classes
        "--no-treat-dot-as-module",
    ]


def generate_client(
    spec_path: str | Path,
    output_dir: str | Path,
    *,
    command: Sequence[str] = DEFAULT_COMMAND,
) -> Path:
    """Generate and patch ``client.py`` in ``output_dir``.

    Raises:
        ClientGenerationError: The generator could not be run, exited with an
            error, or the generated file could not be read or written.
    """
    spec_path = Path(spec_path)
    output_dir = Path(output_dir)
    client_path = output_dir / CLIENT_FILE_NAME

    try:
        logger.info("Generating client code from OpenAPI spec using datamodel-codegen...")

        if not output_dir.exists():
            output_dir.mkdir(parents=True)
            logger.info(f"Created directory: {output_dir}")

        subprocess.run(build_command(spec_path, client_path, command), check=True)
        logger.info(f"Generated client code at: {client_path}")

        source = client_path.read_text(encoding="utf-8")
        patched, unapplied = apply_patches(source)
        client_path.write_text(patched, encoding="utf-8")
    except (OSError, subprocess.SubprocessError) as e:
        raise ClientGenerationError(f"Error generating client code: {e}") from e

    if unapplied:
        logger.warning(f"Unapplied post-processing patches: {', '.join(unapplied)}")

    return client_path


def _parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate typed Microsoft Graph models from an OpenAPI document"
    )
    parser.add_argument(
        "--spec",
        type=Path,
        default=DEFAULT_SPEC_PATH,
        help=f"Trimmed OpenAPI YAML file (default: {DEFAULT_SPEC_PATH})",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT_DIR,
        help=f"Directory for {CLIENT_FILE_NAME} (default: {DEFAULT_OUTPUT_DIR})",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_arguments(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    try:
        client_path = generate_client(args.spec, args.output)
    except ClientGenerationError as e:
        logger.error(str(e))
        sys.exit(1)

    print(f"Wrote {client_path}", file=sys.stderr)


if __name__ == "__main__":
    main()
