import logging
import os
import pathlib as pl
import sys
from typing import Any, NamedTuple

import msal

from .exceptions import AuthenticationError

# Note: Environment variables should be loaded by the caller (server.py or
# authenticate.py) before the first token is requested

CACHE_FILE = pl.Path.home() / ".m365_tasks_mcp_token_cache.json"

# Planner reads go through group membership, To-Do through Tasks.ReadWrite
SCOPES = [
    "Tasks.ReadWrite",
    "Group.Read.All",
    "User.Read",
]
RESERVED_SCOPES = ["offline_access"]
DEVICE_FLOW_SCOPES = SCOPES + RESERVED_SCOPES

DEFAULT_VERIFICATION_URL = "https://microsoft.com/devicelogin"

logger = logging.getLogger(__name__)


class Account(NamedTuple):
    username: str
    account_id: str


def _read_cache() -> str | None:
    try:
        return CACHE_FILE.read_text()
    except FileNotFoundError:
        return None


def _write_cache(content: str) -> None:
    CACHE_FILE.parent.mkdir(parents=True, exist_ok=True)
    CACHE_FILE.write_text(content)


def _persist_cache(app: msal.PublicClientApplication) -> None:
    cache = app.token_cache
    if isinstance(cache, msal.SerializableTokenCache) and cache.has_state_changed:
        _write_cache(cache.serialize())


def _build_app(
    tenant_id: str, cache: msal.SerializableTokenCache | None = None
) -> msal.PublicClientApplication:
    """Construct an MSAL PublicClientApplication backed by the shared cache.

    Args:
        tenant_id: Authority tenant segment ("common", "consumers", or a
            directory ID).
        cache: Token cache to reuse. Hydrated from disk when omitted.
    """
    client_id = os.getenv("M365_TASKS_MCP_CLIENT_ID")
    if not client_id:
        raise AuthenticationError(
            "M365_TASKS_MCP_CLIENT_ID environment variable is required"
        )

    cache_instance = cache or msal.SerializableTokenCache()
    if cache is None:
        content = _read_cache()
        if content:
            cache_instance.deserialize(content)

    return msal.PublicClientApplication(
        client_id,
        authority=f"https://login.microsoftonline.com/{tenant_id}",
        token_cache=cache_instance,
    )


def _initiate_device_flow(
    app: msal.PublicClientApplication, tenant_id: str
) -> tuple[msal.PublicClientApplication, dict[str, Any]]:
    """Start a device code flow, retrying against ``consumers`` when needed.

    Some personal accounts reject ``offline_access`` on the ``common``
    authority, which would leave them without a refresh token.
    """

    def _start(current_app: msal.PublicClientApplication) -> dict[str, Any]:
        flow = current_app.initiate_device_flow(scopes=DEVICE_FLOW_SCOPES)
        if "user_code" in flow:
            return flow
        raise AuthenticationError(
            flow.get("error_description", flow.get("error", "Unknown error"))
        )

    try:
        return app, _start(app)
    except AuthenticationError as exc:
        message = str(exc).lower()
        if "reserved" not in message and "offline_access" not in message:
            raise
        if tenant_id == "consumers":
            raise

        logger.warning(
            "Device flow rejected reserved scope offline_access; "
            "retrying with the consumers authority"
        )
        cache = (
            app.token_cache
            if isinstance(app.token_cache, msal.SerializableTokenCache)
            else None
        )
        consumer_app = _build_app("consumers", cache=cache)
        return consumer_app, _start(consumer_app)


def verification_url(flow: dict[str, Any]) -> str:
    return flow.get(
        "verification_uri", flow.get("verification_url", DEFAULT_VERIFICATION_URL)
    )


def match_account(
    accounts: list[dict[str, str]], result: dict[str, Any]
) -> dict[str, str] | None:
    """Pick the cached account the token result belongs to, else the last one."""
    claims = result.get("id_token_claims")
    preferred = claims.get("preferred_username", "") if isinstance(claims, dict) else ""
    if preferred:
        for account in accounts:
            if account.get("username", "").lower() == preferred.lower():
                return account
    return accounts[-1] if accounts else None


def get_app() -> tuple[msal.PublicClientApplication, str]:
    tenant_id = os.getenv("M365_TASKS_MCP_TENANT_ID", "common")
    return _build_app(tenant_id), tenant_id


def get_token(account_id: str | None = None) -> str:
    app, tenant_id = get_app()

    accounts = app.get_accounts()
    account = None
    if account_id:
        account = next(
            (a for a in accounts if a["home_account_id"] == account_id), None
        )
    elif accounts:
        account = accounts[0]

    result = app.acquire_token_silent(SCOPES, account=account)

    if result and "error" in result:
        logger.warning(
            "Silent token acquisition failed: %s - %s",
            result.get("error"),
            result.get("error_description", "no description"),
        )
        result = None

    if not result:
        app, flow = _initiate_device_flow(app, tenant_id)
        print(
            f"\nTo authenticate:\n1. Visit {verification_url(flow)}\n"
            f"2. Enter code: {flow['user_code']}",
            file=sys.stderr,
        )
        result = app.acquire_token_by_device_flow(flow)

    if "error" in result:
        raise AuthenticationError(
            f"Auth failed: {result.get('error_description', result['error'])}"
        )

    _persist_cache(app)
    return result["access_token"]


def list_accounts() -> list[Account]:
    """List the Microsoft accounts held in the token cache."""
    app, _ = get_app()
    return [
        Account(username=a["username"], account_id=a["home_account_id"])
        for a in app.get_accounts()
    ]


def authenticate_new_account() -> Account | None:
    """Sign in one more account interactively on stderr.

    Returns:
        The signed-in Account, or None if MSAL reports no cached account.
    """
    app, tenant_id = get_app()
    app, flow = _initiate_device_flow(app, tenant_id)

    print("\nTo authenticate:", file=sys.stderr)
    print(f"1. Visit: {verification_url(flow)}", file=sys.stderr)
    print(f"2. Enter code: {flow['user_code']}", file=sys.stderr)
    print("3. Sign in with your Microsoft account", file=sys.stderr)
    print("\nWaiting for authentication...", file=sys.stderr)

    result = app.acquire_token_by_device_flow(flow)
    if "error" in result:
        raise AuthenticationError(
            f"Auth failed: {result.get('error_description', result['error'])}"
        )

    _persist_cache(app)

    matched = match_account(app.get_accounts(), result)
    if matched is None:
        return None
    return Account(username=matched["username"], account_id=matched["home_account_id"])
