"""
A small field-navigation state machine for confirming tags before download.
"""

from dataclasses import dataclass
from typing import List, Optional

from musicdl_cli.models.candidate import Candidate
from musicdl_cli.models.tags import TagSet


@dataclass
class TagField:
    key: str
    label: str
    value: str = ""


FIELD_LABELS = (
    ("title", "Title"),
    ("artist", "Artist"),
    ("album", "Album"),
    ("date", "Release date"),
    ("track_number", "Track number"),
)


class TagEditor:
    """
    Five editable fields with exactly one focused at a time.

    Focus moves cyclically; confirming the last field finalizes the tag set.
    Values are not validated, empty values are written as empty tags.
    """

    def __init__(self, fields: List[TagField], duration_ms: int = 0):
        if not fields:
            raise ValueError("TagEditor needs at least one field.")
        self._fields = fields
        self._focus = 0
        self._duration_ms = duration_ms

    @classmethod
    def from_selection(cls, release: Candidate, track: Candidate) -> "TagEditor":
        """
        Pre-fills the fields from a selected release and one of its tracks.

        Raises:
            TypeError: If the candidates are not a release and a track.
        """
        release_info = release.release_info()
        track_info = track.track_info()
        if release_info is None or track_info is None:
            raise TypeError("TagEditor needs a release candidate and a track candidate.")

        values = {
            "title": track_info.title,
            "artist": track_info.artist or release_info.artist,
            "album": release_info.title,
            "date": release_info.date,
            "track_number": track_info.number,
        }
        fields = [TagField(key, label, values[key]) for key, label in FIELD_LABELS]
        return cls(fields, duration_ms=track_info.length_ms)

    @property
    def fields(self) -> List[TagField]:
        return list(self._fields)

    @property
    def focus_index(self) -> int:
        return self._focus

    @property
    def focused(self) -> TagField:
        return self._fields[self._focus]

    @property
    def on_last_field(self) -> bool:
        return self._focus == len(self._fields) - 1

    def is_focused(self, index: int) -> bool:
        return index == self._focus

    def _move_focus(self, step: int) -> None:
        # Python's modulo keeps the index in [0, count) for negative steps too.
        self._focus = (self._focus + step) % len(self._fields)

    def focus_next(self) -> None:
        self._move_focus(1)

    def focus_prev(self) -> None:
        self._move_focus(-1)

    def set_value(self, value: str) -> None:
        self._fields[self._focus].value = value

    def value(self, key: str) -> str:
        for f in self._fields:
            if f.key == key:
                return f.value
        raise KeyError(key)

    def confirm(self) -> Optional[TagSet]:
        """
        Confirms the focused field.

        Returns:
            The finalized TagSet if the last field was confirmed, otherwise
            None after moving focus to the next field.
        """
        if self.on_last_field:
            return self.finalize()
        self.focus_next()
        return None

    def finalize(self) -> TagSet:
        artist = self.value("artist")
        return TagSet(
            title=self.value("title"),
            artist=artist,
            album=self.value("album"),
            date=self.value("date"),
            track_number=self.value("track_number"),
            album_artist=artist,
            duration_seconds=self._duration_ms // 1000,
        )
