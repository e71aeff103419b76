"""Logging configuration using Loguru."""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}"


def _flatten_extra(record) -> None:
    """Lift ``extra={...}`` context (owner_id, module_id, ...) to top-level fields."""
    context = record["extra"].pop("extra", None)
    if isinstance(context, dict):
        for key, value in context.items():
            record["extra"].setdefault(key, value)


def setup_logging(
    level: str = "INFO",
    log_to_file: bool = True,
    log_dir: str = "logs",
    file_rotation: str = "10 MB",
    file_retention: str = "7 days",
    compression: str = "zip",
    serialize: bool = True,
) -> None:
    """
    Configure console logging and, optionally, rotated JSON log files.

    Serialized records carry the operation context passed through ``extra``
    as flat fields, so log lines can be filtered by owner or module.
    """
    logger.remove()
    logger.configure(patcher=_flatten_extra)

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / "memhub_{time:YYYY-MM-DD}.log",
            level=level,
            format=FILE_FORMAT,
            rotation=file_rotation,
            retention=file_retention,
            compression=compression,
            serialize=serialize,
            enqueue=True,
        )


def get_logger(name: str):
    """Logger bound to the calling module's name."""
    return logger.bind(module=name)
