"""
Contracts the wizard core consumes from its external collaborators.

The concrete implementations live in `musicdl_cli.media.tools` and
`musicdl_cli.api.client`; tests substitute in-memory fakes.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Tuple

from musicdl_cli.models.candidate import Candidate


@dataclass(frozen=True)
class ToolPaths:
    """Locations of the external command-line tools found at startup."""

    ytdlp: str
    ffmpeg: str


class ToolRunner(Protocol):
    async def search_videos(self, query: str, limit: int) -> List[Candidate]: ...

    async def resolve_url(self, url: str) -> Candidate: ...

    async def extract_audio(self, url: str, output_path: Path) -> Path: ...

    async def transcode(
        self,
        audio_path: Path,
        output_path: Path,
        cover_path: Optional[Path] = None,
        metadata: Optional[Sequence[Tuple[str, str]]] = None,
        expected_seconds: int = 0,
    ) -> Path: ...


class MetadataProvider(Protocol):
    async def search_releases(self, query: str) -> List[Candidate]: ...

    async def fetch_tracklist(self, release_id: str) -> List[Candidate]: ...

    async def fetch_lyrics(
        self, artist: str, title: str, album: str, duration_seconds: int
    ) -> Optional[str]: ...

    async def fetch_cover_art(
        self, entity_id: str, group: bool = False
    ) -> Optional[bytes]: ...
