"""
Storage Layer.

This package handles configuration persistence and the session history file.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
