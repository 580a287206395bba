import json

from ..mcp_instance import mcp
from .. import auth
from ..exceptions import AuthenticationError


# account_list
@mcp.tool(
    name="account_list",
    annotations={
        "title": "List Accounts",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
    meta={"category": "account", "safety_level": "safe"},
)
def account_list() -> list[dict[str, str]]:
    """📖 List all signed-in Microsoft accounts (read-only, safe for unsupervised use)

    Returns:
        List of dictionaries with username and account_id. Pass account_id to
        the task tools to act on a specific account.
    """
    return [
        {"username": acc.username, "account_id": acc.account_id}
        for acc in auth.list_accounts()
    ]


# account_authenticate
@mcp.tool(
    name="account_authenticate",
    annotations={
        "title": "Authenticate Account",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
    meta={"category": "account", "safety_level": "moderate"},
)
def account_authenticate() -> dict[str, str | int]:
    """✏️ Start device flow sign-in for a Microsoft account (requires user confirmation recommended)

    The user must:
    1. Visit the verification URL
    2. Enter the device code
    3. Sign in with their Microsoft account
    4. Call account_complete_auth with the returned _flow_cache value
    """
    app, tenant_id = auth.get_app()
    _, flow = auth._initiate_device_flow(app, tenant_id)
    url = auth.verification_url(flow)

    return {
        "status": "authentication_required",
        "step1": f"Visit: {url}",
        "step2": f"Enter code: {flow['user_code']}",
        "step3": "Sign in with the Microsoft account you want to add",
        "step4": "Then call account_complete_auth with the _flow_cache value",
        "device_code": flow["user_code"],
        "verification_url": url,
        "expires_in": flow.get("expires_in", 900),
        "_flow_cache": json.dumps(flow),
    }


# account_complete_auth
@mcp.tool(
    name="account_complete_auth",
    annotations={
        "title": "Complete Authentication",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
    meta={"category": "account", "safety_level": "moderate"},
)
def account_complete_auth(flow_cache: str) -> dict[str, str]:
    """✏️ Finish device flow sign-in (requires user confirmation recommended)

    Args:
        flow_cache: The _flow_cache value returned by account_authenticate

    Returns:
        The signed-in account, or a pending status if the user has not
        finished signing in yet.
    """
    try:
        flow = json.loads(flow_cache)
    except json.JSONDecodeError as e:
        raise ValueError("Invalid flow cache data") from e

    app, _ = auth.get_app()
    result = app.acquire_token_by_device_flow(flow)

    if "error" in result:
        error_msg = result.get("error_description", result["error"])
        if "authorization_pending" in error_msg:
            return {
                "status": "pending",
                "message": "Authentication is still pending. Finish signing in, then try again.",
            }
        raise AuthenticationError(f"Authentication failed: {error_msg}")

    auth._persist_cache(app)

    account = auth.match_account(app.get_accounts(), result)
    if account is None:
        return {
            "status": "error",
            "message": "Authentication succeeded but no account was found",
        }

    return {
        "status": "success",
        "username": account["username"],
        "account_id": account["home_account_id"],
        "message": f"Successfully authenticated {account['username']}",
    }
