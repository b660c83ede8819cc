"""
Utility functions for IPTB
"""

from .logger import setup_logger, get_logger
from .config import (
    Settings,
    load_config,
    load_settings,
    resolve_root
)

__all__ = [
    'setup_logger',
    'get_logger',
    'Settings',
    'load_config',
    'load_settings',
    'resolve_root'
]
