"""
Logging for the editing pipeline.

Handlers live on a single "editorial" logger; every module logger is a
child of it, so a run writes to one console stream and one rotating file
no matter how many modules log.

    from config.logging_config import get_logger
    logger = get_logger(__name__)
"""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from .constants import LOG_FORMAT, LOG_MAX_SIZE_MB, LOG_BACKUP_COUNT
from .settings import get_settings

ROOT_LOGGER_NAME = 'editorial'

_configured = False


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    (Re)build the handlers of the root pipeline logger.

    Args:
        level: Console level name; defaults to settings.log_level
        log_file: Rotating log file; defaults to settings.log_file,
            an empty string disables file logging

    Returns:
        The root pipeline logger
    """
    global _configured
    settings = get_settings()
    level = (level or settings.log_level).upper()
    log_file = settings.log_file if log_file is None else log_file

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.setLevel(logging.DEBUG)
    root.propagate = False
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(getattr(logging, level, logging.INFO))
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_MAX_SIZE_MB * 1024 * 1024,
            backupCount=LOG_BACKUP_COUNT,
            encoding='utf-8'
        )
        # File keeps debug output (retrieval scores, decode phases)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    _configured = True
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Module logger under the pipeline root; configures handlers on first use"""
    if not _configured:
        configure_logging()
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME + '.'):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
