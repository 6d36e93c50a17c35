"""
musicdl-cli: an interactive terminal wizard that turns a search query or a
video URL into a tagged FLAC file.
"""

__version__ = "1.0.0"
