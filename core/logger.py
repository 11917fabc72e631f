"""
Logging for the academic-warning report service.

One root "warning_tracker" logger writes to stdout and, when LOG_FILE is set,
to a size-rotated file. Components log through children of it
(warning_tracker.storage, warning_tracker.lifecycle, ...) so a single level
setting governs the whole service.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import config

ROOT_NAME = "warning_tracker"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _file_handler(log_file: Path, formatter: logging.Formatter) -> Optional[logging.Handler]:
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file,
            maxBytes=config.LOG_MAX_BYTES,
            backupCount=config.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError:
        return None
    handler.setFormatter(formatter)
    return handler


def setup_logger(log_file: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """
    Configure the service root logger.

    Calling it again replaces the handlers, so tests and reloads never
    duplicate output.

    Args:
        log_file: Rotating log file path; console only when empty
        level: Level name such as "DEBUG" or "INFO"
    """
    root = logging.getLogger(ROOT_NAME)
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers.clear()
    root.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        handler = _file_handler(Path(log_file), formatter)
        if handler is None:
            root.warning(f"Could not open log file {log_file}; logging to console only")
        else:
            root.addHandler(handler)

    return root


def get_logger(component: str) -> logging.Logger:
    """Child logger for one component, e.g. get_logger("storage")."""
    return logging.getLogger(f"{ROOT_NAME}.{component}")


logger = setup_logger(config.LOG_FILE, config.LOG_LEVEL)
