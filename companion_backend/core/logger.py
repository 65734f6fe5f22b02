"""
Logging setup
Thin wrapper around the standard logging module so every module obtains its
logger the same way and the [logging] config section controls output
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

_ROOT_LOGGER_NAME = "companion_backend"
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_configured = False


def get_logger(name: str) -> logging.Logger:
    """Get a module logger"""
    return logging.getLogger(name)


def setup_logging(config: Optional[Dict[str, Any]] = None) -> None:
    """Configure console and rotating file output from the [logging] section

    Args:
        config: Logging section as a dict. Recognized keys: level, dir,
            max_bytes, backup_count, console
    """
    global _configured
    config = config or {}

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(level)

    if _configured:
        for handler in root.handlers:
            handler.setLevel(level)
        return

    formatter = logging.Formatter(_LOG_FORMAT)

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)
        root.addHandler(console_handler)

    log_dir = config.get("dir")
    if log_dir:
        log_path = Path(log_dir).expanduser()
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / "companion.log",
            maxBytes=int(config.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(config.get("backup_count", 3)),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        root.addHandler(file_handler)

    _configured = True
    root.debug(f"Logging configured (level={level_name}, dir={log_dir or 'none'})")
