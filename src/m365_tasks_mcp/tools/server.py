from importlib.metadata import PackageNotFoundError, version

from ..mcp_instance import mcp

PACKAGE_NAME = "m365-tasks-mcp"


# server_get_version
@mcp.tool(
    name="server_get_version",
    annotations={
        "title": "Get Server Version",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
    meta={"category": "server", "safety_level": "safe"},
)
def server_get_version() -> dict[str, str]:
    """📖 Get the version of the m365-tasks-mcp server (read-only, safe for unsupervised use)

    Returns:
        Dictionary with the package name and its version ("dev" when the
        package is not installed, e.g. running from a source checkout)
    """
    try:
        pkg_version = version(PACKAGE_NAME)
    except PackageNotFoundError:
        pkg_version = "dev"

    return {"package": PACKAGE_NAME, "version": pkg_version}
