"""
Storage Layer.

This package handles persistence of the configuration file and its profiles.
"""

from .config_manager import ConfigManager, get_config_dir

__all__ = ["ConfigManager", "get_config_dir"]
