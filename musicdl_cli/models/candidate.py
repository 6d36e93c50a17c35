"""
Search result models.

Provider responses (yt-dlp JSON, MusicBrainz JSON) are parsed into Pydantic
models, then wrapped into immutable `Candidate` values that the wizard lists
and selects. A candidate's provider payload is keyed by its kind and is only
reachable through accessors that check that kind first.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class VideoInfo(BaseModel):
    """The subset of yt-dlp's `--dump-json` output the wizard needs."""

    id: str
    title: str = ""
    uploader: Optional[str] = None
    channel: Optional[str] = None
    webpage_url: Optional[str] = None

    @property
    def artist(self) -> str:
        return self.uploader or self.channel or ""


class ArtistCredit(BaseModel):
    name: str = ""
    joinphrase: str = ""


class ReleaseGroup(BaseModel):
    id: str = ""
    primary_type: Optional[str] = Field(default=None, alias="primary-type")

    class Config:
        frozen = True
        populate_by_name = True


class Genre(BaseModel):
    name: str


class Recording(BaseModel):
    genres: List[Genre] = Field(default_factory=list)


class TrackInfo(BaseModel):
    """A MusicBrainz track, enriched with the credit and format of its release."""

    id: str
    title: str = ""
    number: str = ""
    length: Optional[int] = None  # milliseconds
    recording: Recording = Field(default_factory=Recording)

    # Filled from the parent release/medium, not part of the track JSON
    artist: str = ""
    media_format: str = ""

    class Config:
        frozen = True
        populate_by_name = True

    @property
    def length_ms(self) -> int:
        return self.length or 0

    @property
    def genres(self) -> List[str]:
        return [g.name for g in self.recording.genres]


class Medium(BaseModel):
    format: Optional[str] = None
    tracks: List[TrackInfo] = Field(default_factory=list)


class ReleaseInfo(BaseModel):
    """A MusicBrainz release as returned by search or lookup."""

    id: str
    title: str = ""
    artist_credit: List[ArtistCredit] = Field(
        default_factory=list, alias="artist-credit"
    )
    date: str = ""
    release_group: ReleaseGroup = Field(
        default_factory=ReleaseGroup, alias="release-group"
    )
    media: List[Medium] = Field(default_factory=list)

    class Config:
        frozen = True
        populate_by_name = True

    @property
    def artist(self) -> str:
        """Joins the artist credits the way MusicBrainz displays them."""
        return "".join(f"{c.name}{c.joinphrase}" for c in self.artist_credit)

    @property
    def primary_type(self) -> str:
        return self.release_group.primary_type or ""


class ReleaseSearchResponse(BaseModel):
    releases: List[ReleaseInfo] = Field(default_factory=list)


class CandidateKind(str, Enum):
    VIDEO = "video"
    RELEASE = "release"
    TRACK = "track"


Payload = Union[ReleaseInfo, TrackInfo]

_PAYLOAD_TYPES = {
    CandidateKind.VIDEO: type(None),
    CandidateKind.RELEASE: ReleaseInfo,
    CandidateKind.TRACK: TrackInfo,
}


@dataclass(frozen=True)
class Candidate:
    """An unconfirmed search result: a video, a release or a track."""

    id: str
    title: str
    descriptor: str
    source_url: str
    kind: CandidateKind
    payload: Optional[Payload] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        expected = _PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind.value} candidate cannot carry a "
                f"{type(self.payload).__name__} payload"
            )

    def release_info(self) -> Optional[ReleaseInfo]:
        """Returns the release payload, or None if this is not a release."""
        if self.kind is CandidateKind.RELEASE and isinstance(self.payload, ReleaseInfo):
            return self.payload
        return None

    def track_info(self) -> Optional[TrackInfo]:
        """Returns the track payload, or None if this is not a track."""
        if self.kind is CandidateKind.TRACK and isinstance(self.payload, TrackInfo):
            return self.payload
        return None

    @property
    def search_text(self) -> str:
        return f"{self.title} {self.descriptor}".strip()

    @classmethod
    def from_video(cls, info: VideoInfo, url: str) -> "Candidate":
        return cls(
            id=info.id,
            title=info.title,
            descriptor=info.artist,
            source_url=url,
            kind=CandidateKind.VIDEO,
        )

    @classmethod
    def from_release(cls, info: ReleaseInfo) -> "Candidate":
        descriptor = f"{info.artist} ({info.date}) [{info.primary_type}]"
        return cls(
            id=info.id,
            title=info.title,
            descriptor=descriptor,
            source_url=f"https://musicbrainz.org/release/{info.id}",
            kind=CandidateKind.RELEASE,
            payload=info,
        )

    @classmethod
    def from_track(cls, info: TrackInfo) -> "Candidate":
        descriptor = f"Track {info.number}"
        if info.media_format:
            descriptor = f"Track {info.number} ({info.media_format})"
        return cls(
            id=info.id,
            title=info.title,
            descriptor=descriptor,
            source_url=f"https://musicbrainz.org/track/{info.id}",
            kind=CandidateKind.TRACK,
            payload=info,
        )
