"""
Loguru logging configuration with Sentry integration.

Console output is human readable in development and JSON everywhere else.
A rotating file sink is added outside of tests. Every record carries the
request correlation ID so a blocked message, its queue item and the
moderator action that resolves it can be traced across log lines.
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from core.correlation import get_correlation_id

if TYPE_CHECKING:
    from loguru import Record


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[correlation_id]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def correlation_filter(record: "Record") -> bool:
    """
    Add correlation ID to log record.

    Args:
        record: Loguru log record.

    Returns:
        Always True (filter never drops messages).
    """
    record["extra"]["correlation_id"] = get_correlation_id() or "-"
    return True


def configure_logging(environment: str = "development", log_dir: str = "logs") -> None:
    """
    Configure Loguru for the application.

    Args:
        environment: "development" for colored console, "test" for console only,
            anything else for JSON.
        log_dir: Directory for the rotating file sink.
    """
    logger.remove()

    human_readable = environment in ("development", "test")

    if human_readable:
        logger.add(
            sys.stderr,
            format=LOG_FORMAT,
            level="DEBUG" if environment == "development" else "WARNING",
            filter=correlation_filter,
            colorize=environment == "development",
        )
    else:
        # JSON format for production (machine-parseable)
        logger.add(
            sys.stderr,
            format="{message}",
            level="INFO",
            filter=correlation_filter,
            serialize=True,
        )

    if environment == "test":
        return

    logs_path = Path(log_dir)
    logs_path.mkdir(parents=True, exist_ok=True)

    logger.add(
        str(logs_path / "safety.log"),
        format=LOG_FORMAT if human_readable else "{message}",
        level="INFO",
        filter=correlation_filter,
        rotation="10 MB",
        retention="7 days",
        serialize=not human_readable,
    )
