"""
Value objects produced by the tag editor and the asset fetcher.
"""

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class TagSet:
    """The user-confirmed metadata embedded in the output file."""

    title: str
    artist: str
    album: str
    date: str
    track_number: str
    album_artist: str
    duration_seconds: int
    lyrics: str = ""

    def with_lyrics(self, lyrics: Optional[str]) -> "TagSet":
        return replace(self, lyrics=lyrics or "")

    def as_metadata(self) -> List[Tuple[str, str]]:
        """Returns the tags as ordered ffmpeg `-metadata` key/value pairs."""
        pairs = [
            ("title", self.title),
            ("artist", self.artist),
            ("album_artist", self.album_artist),
            ("album", self.album),
            ("track", self.track_number),
            ("date", self.date),
        ]
        if self.lyrics:
            pairs.append(("LYRICS", self.lyrics))
        return pairs


class AssetKind(str, Enum):
    AUDIO = "audio"
    COVER = "cover"
    LYRICS = "lyrics"


@dataclass(frozen=True)
class FetchOutcome:
    """The joined result of one concurrent fetch, before the merge step."""

    audio_path: Path
    cover_path: Optional[Path] = None
    lyrics_text: Optional[str] = None
    errors: Tuple[Tuple[AssetKind, str], ...] = ()

    def __post_init__(self):
        if str(self.audio_path) in ("", "."):
            raise ValueError("FetchOutcome requires an audio path.")


@dataclass(frozen=True)
class DownloadResult:
    """The success payload of a finished download."""

    path: Path
    has_lyrics: bool = False
    has_cover: bool = False

    def describe(self) -> str:
        text = str(self.path)
        if self.has_lyrics:
            text += " (with lyrics)"
        return text
