"""
Storage Layer.

This package handles persistence of the user's settings between runs.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
