"""
Storage Layer.

This package handles everything that touches the filesystem outside of a
single download: the configuration file and the application directory
layout, including the per-attempt scratch area.
"""

from .app_dirs import AppDirs, ScratchArea
from .config_manager import ConfigManager

__all__ = ["AppDirs", "ConfigManager", "ScratchArea"]
