"""
Configuration: constants, Settings and logging for the editing pipeline.
"""
from .constants import *
from .settings import Settings, get_settings
from .logging_config import configure_logging, get_logger

__all__ = [
    'Settings',
    'get_settings',
    'configure_logging',
    'get_logger',
]
