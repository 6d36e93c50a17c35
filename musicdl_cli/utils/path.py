"""
Utilities for handling file names and application directories.
"""

import re
from pathlib import Path

from pathvalidate import sanitize_filename as _pv_sanitize_filename

# Every path-unsafe character maps to a safe substitute.
_UNSAFE_CHARS = str.maketrans(
    {
        "/": "-",
        "\\": "-",
        ":": "-",
        "*": "-",
        "?": "-",
        '"': "'",
        "<": "-",
        ">": "-",
        "|": "-",
    }
)

_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

MAX_FILENAME_BYTES = 255


def sanitize_filename(name: str, max_len: int = MAX_FILENAME_BYTES) -> str:
    """
    Makes a file name safe to write on any platform.

    Unsafe characters are substituted rather than dropped so that "AC/DC"
    stays readable as "AC-DC", and the result is stable: sanitizing an
    already sanitized name returns it unchanged.
    """
    substituted = name.translate(_UNSAFE_CHARS)
    return _pv_sanitize_filename(substituted, replacement_text="-", max_len=max_len)


def output_filename(stem: str, suffix: str = ".flac") -> str:
    """
    Builds a safe output file name from `stem`, keeping `suffix` intact.

    Only the stem is sanitized and truncated, so long titles in multi-byte
    scripts never cut into the extension ffmpeg uses to pick the format.
    """
    budget = MAX_FILENAME_BYTES - len(suffix.encode("utf-8"))
    safe_stem = sanitize_filename(stem, max_len=budget)
    return f"{safe_stem or 'untitled'}{suffix}"


def is_url(text: str) -> bool:
    """Returns True if the query looks like a direct media URL."""
    return bool(_URL_PATTERN.match(text.strip()))


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)
