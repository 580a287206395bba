# Importing the tool modules registers their tools on the shared mcp instance
from ..mcp_instance import mcp

# Account management functions
from .account import (
    account_list,
    account_authenticate,
    account_complete_auth,
)

# Planner / To-Do functions
from .tasks import (
    todo_convert_planner_task,
    todo_find_task,
)

# Server functions
from .server import (
    server_get_version,
)

__all__ = [
    "mcp",
    "account_list",
    "account_authenticate",
    "account_complete_auth",
    "todo_convert_planner_task",
    "todo_find_task",
    "server_get_version",
]
