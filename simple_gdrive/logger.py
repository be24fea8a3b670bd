"""
Root logger setup for the simple-gdrive command line tool.

Library modules only create ``logging.getLogger(__name__)`` loggers and leave
handler configuration to the application; the CLI calls setup_logging().
"""

import logging
import sys
from pathlib import Path

from .config import LogConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(message)s"

# googleapiclient logs every discovery document fetch at INFO
_NOISY_LOGGERS = ("googleapiclient.discovery", "googleapiclient.discovery_cache")


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _handlers(config: LogConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    if config.console:
        handlers.append(logging.StreamHandler(sys.stderr))
    return handlers


def setup_logging(config: LogConfig) -> None:
    """
    Replace the root logger's handlers with the ones ``config`` asks for.

    Calling it again swaps the handlers rather than stacking them; file
    handlers from the previous call are closed. An unknown level name falls
    back to INFO.
    """
    level = _level(config.level)
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in _handlers(config):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
