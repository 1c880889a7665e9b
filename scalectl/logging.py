"""Logging configuration for the scalectl package."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import Config


def setup_logging(level: str = "INFO", debug: bool = False, log_file: Optional[str] = None,
                  max_size_mb: int = 100, backup_count: int = 5) -> None:
    """Configure root logging for a run.

    Args:
        level: Log level name; SCALECTL_LOG_LEVEL overrides it
        debug: Force DEBUG and keep paramiko's logging
        log_file: Optional path of a rotating log file
        max_size_mb: Maximum log file size in MB before rotation
        backup_count: Number of rotated files to keep
    """
    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, (Config.LOG_LEVEL or level).upper(), logging.INFO)

    formatter = logging.Formatter(Config.LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file).expanduser().absolute()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            filename=path,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        ))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # Disable debug logging for noisy libraries
    if not debug:
        logging.getLogger('paramiko').setLevel(logging.WARNING)
