"""
Checks a merged FLAC against the track it is supposed to hold.
"""

import logging
from pathlib import Path

from mutagen import MutagenError
from mutagen.flac import FLAC, FLACNoHeaderError

from musicdl_cli.exceptions import FileIntegrityError

log = logging.getLogger(__name__)

# Music videos often carry intros and outros, so only gross differences count.
MIN_DURATION_SLACK = 15.0
DURATION_SLACK_RATIO = 0.25


def duration_mismatch(actual_seconds: float, expected_seconds: int) -> bool:
    """True if `actual_seconds` is far enough from the expected track length to flag."""
    if expected_seconds <= 0:
        return False
    slack = max(MIN_DURATION_SLACK, expected_seconds * DURATION_SLACK_RATIO)
    return abs(actual_seconds - expected_seconds) > slack


def verify_flac(filepath: Path, expected_seconds: int = 0) -> float:
    """
    Opens a merged file with mutagen and returns its length in seconds.

    When `expected_seconds` is known (the length of the chosen track), a
    file whose length is grossly different is logged as a likely wrong
    source video. The file is still kept.

    Raises:
        FileIntegrityError: If the file has no FLAC header or no audio.
    """
    try:
        audio = FLAC(filepath)
    except FLACNoHeaderError:
        raise FileIntegrityError(f"Merged file has no FLAC header: {filepath}") from None
    except MutagenError as e:
        raise FileIntegrityError(f"Merged file could not be read: {filepath}", str(e)) from e

    length = audio.info.length if audio.info else 0.0
    if length <= 0:
        raise FileIntegrityError(f"Merged file contains no audio: {filepath}")

    if duration_mismatch(length, expected_seconds):
        log.warning(
            f"'{filepath.name}' is {length:.0f}s long but the track is {expected_seconds}s; "
            "the source video may not match the chosen track"
        )
    else:
        log.debug(f"Verified {filepath.name}: {length:.1f}s")
    return length
