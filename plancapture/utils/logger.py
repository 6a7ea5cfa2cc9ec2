"""
Logging configuration for plancapture.

Uses loguru for colored console output and optional rotating log files.
Each database is processed as its own unit of work, possibly on a worker
thread, so every record carries the database it belongs to in
``extra["database"]`` ("-" outside a unit). Verbose diagnostics (skipped
samples and databases, cleanup failures) are emitted at DEBUG.
"""

import sys
from contextlib import AbstractContextManager
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger

NO_DATABASE = "-"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[database]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[database]} | "
    "{name}:{function}:{line} | {message}"
)


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Configure console and file sinks.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        rotation: Log file rotation size
        retention: Log file retention period
    """
    logger.remove()
    logger.configure(extra={"database": NO_DATABASE})

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            path,
            level=level,
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            encoding="utf-8",
        )


def database_context(database: str) -> AbstractContextManager:
    """
    Tag every record emitted inside the block with a database name.

    The tag is held in a context variable, so concurrent units on different
    threads keep their own value.
    """
    return logger.contextualize(database=database or NO_DATABASE)


def get_logger(name: str | None = None) -> "Logger":
    """Get a logger bound to a module name."""
    if name:
        return logger.bind(name=name)
    return logger
