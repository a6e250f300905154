"""
Logging configuration for udplat.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

from .config import LoggingConfig

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Libraries whose INFO chatter would drown the probe's own messages
QUIET_LOGGERS = ('urllib3', 'influxdb_client')


def _rotating_handler(config: LoggingConfig) -> Optional[logging.Handler]:
    """Rotating file handler for ``config.file``, None when unset or unusable."""
    if not config.file:
        return None

    log_path = Path(config.file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=config.max_size * 1024 * 1024,
            backupCount=config.backup_count
        )
    except OSError as e:
        logging.warning(f"Failed to setup file logging at {log_path}: {e}")
        return None


def setup_logging(config: LoggingConfig, level: int = logging.INFO) -> List[logging.Handler]:
    """Route all udplat logging to stderr and, if configured, a rotating file.

    Log lines go to stderr so the live progress line owns stdout. Returns the
    installed handlers.
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_handler = _rotating_handler(config)
    if file_handler is not None:
        handlers.append(file_handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger('udplat').setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handlers


def level_from_name(name: str, verbose: bool = False) -> int:
    """Resolve a configured level name, DEBUG when verbose."""
    if verbose:
        return logging.DEBUG
    level = getattr(logging, name.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown logging level: {name}")
    return level
