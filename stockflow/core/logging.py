"""
StockFlow Logging Configuration

Everything logs under the ``stockflow`` root. Each channel below also gets
its own rotating file when file logging is on, so the security trail and
the workflow history can be read without the request noise.
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

from .config import settings

ROOT_LOGGER = "stockflow"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# channel -> (minimum level or None to follow the configured one, rotated backups)
CHANNELS: Dict[str, Tuple[Optional[int], int]] = {
    "database": (None, 3),    # session failures, schema creation, health checks
    "api": (None, 3),         # startup and mapped request errors
    "business": (None, 5),    # workflow transitions, stock movements, trigger runs
    "security": (logging.INFO, 10),  # token rejections and denied operations
}


def setup_logging(
    log_level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure the ``stockflow`` logger tree

    Args:
        log_level: Level name, defaults to settings.LOG_LEVEL
        log_to_file: Write rotating files, defaults to settings.LOG_TO_FILE
        log_to_console: Echo to stdout
        log_dir: Directory for the files, defaults to settings.LOG_DIR

    Returns:
        The root ``stockflow`` logger
    """
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    if log_to_file is None:
        log_to_file = settings.LOG_TO_FILE
    directory = (log_dir or settings.LOG_DIR) if log_to_file else None

    root = logging.getLogger(ROOT_LOGGER)
    _reset(root)
    root.setLevel(level)

    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(console)

    if directory is not None:
        directory.mkdir(exist_ok=True, parents=True)
        root.addHandler(_rotating(directory / settings.LOG_FILE, level, backups=5))
        root.addHandler(_rotating(directory / settings.ERROR_LOG_FILE, logging.ERROR, backups=3))

    for name, (minimum, backups) in CHANNELS.items():
        channel = logging.getLogger(f"{ROOT_LOGGER}.{name}")
        _reset(channel)
        channel.setLevel(min(level, minimum) if minimum is not None else level)
        if directory is not None:
            channel.addHandler(_rotating(directory / f"{name}.log", logging.NOTSET, backups))

    return root


def get_logger(name: str) -> logging.Logger:
    """Logger for a channel, or a child of one such as ``business.scheduler``"""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def _rotating(path: Path, level: int, backups: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=5 * 1024 * 1024, backupCount=backups, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, DATE_FORMAT))
    return handler


def _reset(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


__all__ = [
    "setup_logging",
    "get_logger",
]
