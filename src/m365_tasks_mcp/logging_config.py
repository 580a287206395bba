"""
Logging configuration for the M365 Tasks MCP server.

Every run writes three rotating files (structured JSON lines for all records,
structured JSON lines for errors only, and a human-readable log) plus a
coloured console stream on stderr. Logs from the previous run are moved into
a timestamped archive folder before the new handlers are attached.
"""

import json
import logging
import logging.handlers
import shutil
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

ALL_LOG_NAME = "m365_tasks_all.jsonl"
ERROR_LOG_NAME = "m365_tasks_errors.jsonl"
READABLE_LOG_NAME = "m365_tasks.log"

# Attributes passed through ``extra=`` that are copied into JSON records
STRUCTURED_EXTRA_KEYS = (
    "account_id",
    "tool_name",
    "planner_task_id",
    "list_id",
    "duration_ms",
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for machine-readable logs."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key in STRUCTURED_EXTRA_KEYS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Single-line formatter, coloured when stderr is a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if sys.stderr.isatty():
            color = self.COLORS.get(level, self.COLORS["RESET"])
            level = f"{color}{level}{self.COLORS['RESET']}"

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        location = f"{record.module}.{record.funcName}:{record.lineno}"
        line = f"{timestamp} [{level}] {record.name}.{location} - {record.getMessage()}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


def archive_existing_logs(log_dir: Path) -> dict[str, Any]:
    """
    Move log files left by a previous run into ``archives/<UTC timestamp>/``.

    Args:
        log_dir: Directory holding the log files

    Returns:
        Dictionary with:
        - 'archived': bool - Whether anything was moved
        - 'archive_dir': str or None - Archive path relative to log_dir
        - 'file_count': int - Number of files moved
    """
    result: dict[str, Any] = {"archived": False, "archive_dir": None, "file_count": 0}

    if not log_dir.exists():
        return result

    previous = sorted(log_dir.glob("*.log*")) + sorted(log_dir.glob("*.jsonl*"))
    if not previous:
        return result

    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    archive_dir = log_dir / "archives" / stamp
    archive_dir.mkdir(parents=True, exist_ok=True)

    moved = 0
    for log_file in previous:
        try:
            shutil.move(str(log_file), str(archive_dir / log_file.name))
            moved += 1
        except OSError as e:
            # Logging is not configured yet at this point
            print(f"Warning: Failed to archive {log_file.name}: {e}", file=sys.stderr)

    if moved:
        result["archived"] = True
        result["archive_dir"] = str(archive_dir.relative_to(log_dir))
    result["file_count"] = moved
    return result


def _rotating_handler(
    path: Path,
    level: int,
    formatter: logging.Formatter,
    max_bytes: int,
    backup_count: int,
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_dir: str = "logs",
    log_level: str = "INFO",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 10,
) -> None:
    """
    Configure root logging for the server process.

    Args:
        log_dir: Directory to store log files
        log_level: Minimum level for the readable file and console
        max_bytes: Maximum size of each log file before rotation
        backup_count: Number of rotated files to keep
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    archive_info = archive_existing_logs(log_path)

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers filter individually
    root_logger.handlers.clear()

    root_logger.addHandler(
        _rotating_handler(
            log_path / ALL_LOG_NAME,
            logging.DEBUG,
            StructuredFormatter(),
            max_bytes,
            backup_count,
        )
    )
    root_logger.addHandler(
        _rotating_handler(
            log_path / ERROR_LOG_NAME,
            logging.ERROR,
            StructuredFormatter(),
            max_bytes,
            backup_count,
        )
    )
    root_logger.addHandler(
        _rotating_handler(
            log_path / READABLE_LOG_NAME,
            numeric_level,
            HumanReadableFormatter(),
            max_bytes,
            backup_count,
        )
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(HumanReadableFormatter())
    root_logger.addHandler(console_handler)

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("msal").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger = logging.getLogger("m365_tasks_mcp.logging")
    if archive_info["archived"]:
        logger.info(
            f"Previous logs archived: {archive_info['file_count']} file(s) -> "
            f"{archive_info['archive_dir']}"
        )
    else:
        logger.info("Fresh start: No previous logs found")

    logger.info(f"Logging initialized - Level: {log_level}")
    logger.info(f"Log directory: {log_path.absolute()}")


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (typically ``__name__``)."""
    return logging.getLogger(name)
