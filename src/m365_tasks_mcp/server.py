import argparse
import atexit
import logging
import os
import signal
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from dotenv import load_dotenv

CLIENT_ID_VAR = "M365_TASKS_MCP_CLIENT_ID"

# Set in main() once logging is configured
logger: logging.Logger | None = None


def _parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="M365 Tasks MCP Server - Planner and To-Do tools for AI assistants"
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Path to .env file (default: .env)",
    )
    return parser.parse_args(argv)


def _setup_signal_handlers() -> None:
    def signal_handler(signum, frame):
        assert logger is not None
        logger.warning(
            f"Received signal {signal.Signals(signum).name} ({signum}), shutting down"
        )
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def _mask(value: str) -> str:
    return f"{value[:8]}...{value[-4:]}" if len(value) > 12 else "***"


def _log_startup_info() -> None:
    assert logger is not None
    try:
        pkg_version = version("m365-tasks-mcp")
    except PackageNotFoundError:
        pkg_version = "dev"

    logger.info("=" * 80)
    logger.info(f"M365 Tasks MCP Server Starting v{pkg_version}")
    logger.info("=" * 80)
    logger.info(f"PID: {os.getpid()}")
    logger.info(f"Python: {sys.version}")
    logger.info(f"Working Directory: {os.getcwd()}")
    logger.info("Environment Variables:")
    for key in [
        CLIENT_ID_VAR,
        "M365_TASKS_SEARCH_PRIORITY",
        "MCP_TRANSPORT",
        "MCP_HOST",
        "MCP_PORT",
        "MCP_AUTH_METHOD",
    ]:
        value = os.getenv(key)
        if value is None:
            shown = "not set"
        elif key == CLIENT_ID_VAR:
            shown = _mask(value)
        else:
            shown = value
        logger.info(f"  {key}: {shown}")
    logger.info("=" * 80)


def main() -> None:
    args = _parse_arguments()

    if args.env_file.exists():
        load_dotenv(dotenv_path=args.env_file)
        print(f"Loaded environment from: {args.env_file}", file=sys.stderr)
    else:
        print(f"Warning: Environment file not found: {args.env_file}", file=sys.stderr)
        print("Continuing with system environment variables...", file=sys.stderr)

    # Imported after the environment is loaded so auth sees the client id
    from .tools import mcp
    from .logging_config import get_logger, setup_logging

    global logger
    setup_logging(
        log_dir=os.getenv("MCP_LOG_DIR", "logs"),
        log_level=os.getenv("MCP_LOG_LEVEL", "INFO"),
    )
    logger = get_logger(__name__)

    _setup_signal_handlers()

    def _cleanup():
        assert logger is not None
        logger.info("Server shutting down")

    atexit.register(_cleanup)

    _log_startup_info()

    if not os.getenv(CLIENT_ID_VAR):
        logger.error(f"{CLIENT_ID_VAR} environment variable is required")
        print(f"Error: {CLIENT_ID_VAR} environment variable is required", file=sys.stderr)
        sys.exit(1)

    transport = os.getenv("MCP_TRANSPORT", "stdio").lower()
    logger.info(f"Transport mode: {transport}")

    if transport == "stdio":
        try:
            mcp.run()
        except Exception as e:
            logger.critical(f"Failed to start stdio server: {e}", exc_info=True)
            raise
    elif transport == "http":
        _run_http(mcp)
    else:
        logger.error(f"Invalid MCP_TRANSPORT '{transport}'. Must be 'stdio' or 'http'")
        print(
            f"Error: Invalid MCP_TRANSPORT '{transport}'. Must be 'stdio' or 'http'",
            file=sys.stderr,
        )
        sys.exit(1)


def _run_http(mcp) -> None:
    assert logger is not None
    host = os.getenv("MCP_HOST", "127.0.0.1")
    port = int(os.getenv("MCP_PORT", "8000"))
    path = os.getenv("MCP_PATH", "/mcp")

    if host in ["0.0.0.0", "::", ""]:
        logger.warning(
            f"Binding to all network interfaces ({host}) - ensure firewall is configured!"
        )

    auth_method = os.getenv("MCP_AUTH_METHOD", "none").lower()
    logger.info(f"Authentication method: {auth_method}")

    if auth_method == "none":
        logger.warning(
            "Running HTTP server without authentication! Anyone who can reach it "
            "can act on your Planner and To-Do tasks. Set MCP_AUTH_METHOD=bearer "
            "and MCP_AUTH_TOKEN=<token> to enable auth"
        )
        if os.getenv("MCP_ALLOW_INSECURE") != "true":
            logger.error(
                "Refusing to start insecure HTTP server without MCP_ALLOW_INSECURE=true"
            )
            print(
                "Error: Refusing to start insecure HTTP server. "
                "Set MCP_ALLOW_INSECURE=true to override",
                file=sys.stderr,
            )
            sys.exit(1)

    logger.info(f"Starting HTTP transport on {host}:{port}{path}")

    try:
        if auth_method == "bearer":
            _run_http_with_bearer_auth(mcp, host, port, path)
        elif auth_method == "oauth":
            mcp.run(transport="http", host=host, port=port, path=path, auth="oauth")
        else:
            mcp.run(transport="http", host=host, port=port, path=path)
    except Exception as e:
        logger.critical(f"Failed to start HTTP server: {e}", exc_info=True)
        raise


def _run_http_with_bearer_auth(mcp, host: str, port: int, path: str) -> None:
    """Serve the Streamable HTTP app behind a static bearer token check."""
    assert logger is not None
    import time

    import uvicorn
    from fastapi import FastAPI, Request
    from fastapi.responses import JSONResponse

    auth_token = os.getenv("MCP_AUTH_TOKEN")
    if not auth_token:
        logger.error("MCP_AUTH_TOKEN required when MCP_AUTH_METHOD=bearer")
        print("Error: MCP_AUTH_TOKEN required when MCP_AUTH_METHOD=bearer", file=sys.stderr)
        sys.exit(1)

    if len(auth_token) < 32:
        logger.warning(
            f"MCP_AUTH_TOKEN is too short ({len(auth_token)} chars, minimum 32 "
            "recommended). Generate one with: openssl rand -hex 32"
        )

    app = FastAPI()

    def _unauthorized(detail: str) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": detail},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.middleware("http")
    async def auth_middleware(request: Request, call_next):
        assert logger is not None
        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        if request.url.path == "/health":
            return await call_next(request)

        header = request.headers.get("Authorization")
        if not header:
            logger.warning(f"Unauthorized request (missing auth header) from {client_ip}")
            return _unauthorized("Missing Authorization header")
        if not header.startswith("Bearer "):
            logger.warning(f"Unauthorized request (invalid auth format) from {client_ip}")
            return _unauthorized(
                "Invalid Authorization header format. Expected: Bearer <token>"
            )
        if header[len("Bearer "):] != auth_token:
            logger.warning(f"Unauthorized request (invalid token) from {client_ip}")
            return _unauthorized("Invalid authentication token")

        response = await call_next(request)
        duration = (time.time() - start_time) * 1000
        logger.info(
            f"Request processed: {request.method} {request.url.path} from {client_ip} - "
            f"Status: {response.status_code} - Duration: {duration:.2f}ms"
        )
        return response

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "transport": "http", "auth": "bearer"}

    # http_app() already routes at its configured path, so mount at root
    http_app = mcp.http_app(path=path)
    if hasattr(http_app, "router") and hasattr(http_app.router, "lifespan_context"):
        app.router.lifespan_context = http_app.router.lifespan_context
    app.mount("/", http_app)

    logger.info(f"Bearer token authentication enabled; MCP endpoint: http://{host}:{port}{path}")
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
