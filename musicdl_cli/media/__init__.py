"""
Media Processing Layer.

This package is responsible for running the external media tools (yt-dlp,
ffmpeg) and validating the files they produce.
"""

from .integrity import verify_flac
from .tools import ToolAdapter, locate_dependencies

__all__ = ["ToolAdapter", "locate_dependencies", "verify_flac"]
