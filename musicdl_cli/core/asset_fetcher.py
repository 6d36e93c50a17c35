"""
Fetches everything one output file needs and merges it into a tagged FLAC.

Audio, cover art and lyrics are fetched concurrently and joined before any
decision is made. Only the audio is required: a failed or missing cover or
lyrics lookup is recorded and the file is written without it.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Dict, List, Optional, Tuple

import aiofiles

from musicdl_cli.exceptions import ExternalToolError, MusicDlError, ToolTimeoutError
from musicdl_cli.models.candidate import Candidate, ReleaseInfo
from musicdl_cli.models.tags import AssetKind, DownloadResult, FetchOutcome, TagSet
from musicdl_cli.storage.app_dirs import AppDirs
from musicdl_cli.utils.path import create_dir, output_filename

from .interfaces import MetadataProvider, ToolRunner

log = logging.getLogger(__name__)

AUDIO_FILENAME = "audio.tmp"
COVER_FILENAME = "cover.jpg"


async def with_timeout(awaitable: Awaitable[Any], seconds: float, operation: str) -> Any:
    """Awaits `awaitable`, converting expiry into a ToolTimeoutError."""
    try:
        return await asyncio.wait_for(awaitable, seconds)
    except asyncio.TimeoutError:
        raise ToolTimeoutError(operation, seconds) from None


class AssetFetcher:
    """Runs one download attempt: concurrent fetch, then a sequential merge."""

    def __init__(
        self,
        tools: ToolRunner,
        api: MetadataProvider,
        dirs: AppDirs,
        audio_timeout: float = 120.0,
        lookup_timeout: float = 10.0,
        merge_timeout: float = 120.0,
    ):
        """
        Args:
            tools: Runs audio extraction and the final transcode.
            api: Looks up cover art and lyrics.
            dirs: Application directories; scratch areas and output live here.
            audio_timeout: Time budget for the audio extraction.
            lookup_timeout: Time budget for each remote request.
            merge_timeout: Time budget for the transcode.
        """
        self.tools = tools
        self.api = api
        self.dirs = dirs
        self.audio_timeout = audio_timeout
        self.lookup_timeout = lookup_timeout
        self.merge_timeout = merge_timeout

    async def fetch_tagged(
        self, video: Candidate, release: Candidate, tags: TagSet
    ) -> DownloadResult:
        """Downloads `video` and writes it with cover, lyrics and `tags`."""
        release_info = release.release_info()
        if release_info is None:
            raise TypeError(f"Expected a release candidate, got {release.kind.value}")
        async with self.dirs.scratch_area() as scratch:
            outcome = await self.fetch(scratch, video, release_info, tags)
            return await self.merge(outcome, tags, video.title)

    async def fetch_tagless(self, video: Candidate) -> DownloadResult:
        """Downloads `video` and writes it named after its title, without tags."""
        async with self.dirs.scratch_area() as scratch:
            outcome = await self.fetch(scratch, video)
            return await self.merge(outcome, None, video.title)

    async def fetch(
        self,
        scratch: Path,
        video: Candidate,
        release: Optional[ReleaseInfo] = None,
        tags: Optional[TagSet] = None,
    ) -> FetchOutcome:
        """
        Runs the sub-operations concurrently and waits for all of them.

        Without tags (tagless mode) only the audio is fetched.
        """
        jobs: Dict[AssetKind, Awaitable[Any]] = {
            AssetKind.AUDIO: with_timeout(
                self.tools.extract_audio(video.source_url, scratch / AUDIO_FILENAME),
                self.audio_timeout,
                "Audio download",
            )
        }
        if tags is not None:
            if release is not None:
                jobs[AssetKind.COVER] = with_timeout(
                    self._fetch_cover(release, scratch),
                    self.lookup_timeout * 2,
                    "Cover art lookup",
                )
            jobs[AssetKind.LYRICS] = with_timeout(
                self.api.fetch_lyrics(
                    tags.artist, tags.title, tags.album, tags.duration_seconds
                ),
                self.lookup_timeout,
                "Lyrics lookup",
            )

        kinds = list(jobs)
        results = await asyncio.gather(*jobs.values(), return_exceptions=True)
        return self._reconcile(dict(zip(kinds, results)))

    async def _fetch_cover(self, release: ReleaseInfo, scratch: Path) -> Optional[Path]:
        data = await self.api.fetch_cover_art(release.id)
        if data is None and release.release_group.id:
            data = await self.api.fetch_cover_art(release.release_group.id, group=True)
        if not data:
            return None

        cover_path = scratch / COVER_FILENAME
        async with aiofiles.open(cover_path, "wb") as f:
            await f.write(data)
        return cover_path

    def _reconcile(self, results: Dict[AssetKind, Any]) -> FetchOutcome:
        """Applies the failure policy once every sub-operation has returned."""
        for result in results.values():
            # Cancellation is never absorbed.
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        audio = results[AssetKind.AUDIO]
        if isinstance(audio, MusicDlError):
            raise audio
        if isinstance(audio, Exception):
            raise ExternalToolError("Audio download failed:", str(audio)) from audio

        errors: List[Tuple[AssetKind, str]] = []
        cover = self._optional(AssetKind.COVER, results, errors)
        lyrics = self._optional(AssetKind.LYRICS, results, errors)
        return FetchOutcome(
            audio_path=Path(audio),
            cover_path=cover,
            lyrics_text=lyrics or None,
            errors=tuple(errors),
        )

    @staticmethod
    def _optional(
        kind: AssetKind,
        results: Dict[AssetKind, Any],
        errors: List[Tuple[AssetKind, str]],
    ) -> Any:
        if kind not in results:
            return None
        result = results[kind]
        if isinstance(result, Exception):
            log.debug(f"Ignoring {kind.value} failure: {result}")
            errors.append((kind, str(result) or type(result).__name__))
            return None
        if not result:
            errors.append((kind, "not found"))
            return None
        return result

    async def merge(
        self, outcome: FetchOutcome, tags: Optional[TagSet], fallback_title: str
    ) -> DownloadResult:
        """
        Transcodes the fetched audio into the output directory.

        Raises:
            ExternalToolError: If the transcode fails.
        """
        if tags is not None:
            tags = tags.with_lyrics(outcome.lyrics_text)
            filename = output_filename(f"{tags.artist} - {tags.title}")
            metadata = tags.as_metadata()
            expected_seconds = tags.duration_seconds
        else:
            filename = output_filename(fallback_title)
            metadata = None
            expected_seconds = 0

        create_dir(self.dirs.output)
        output_path = self.dirs.output / filename
        try:
            await with_timeout(
                self.tools.transcode(
                    outcome.audio_path,
                    output_path,
                    cover_path=outcome.cover_path,
                    metadata=metadata,
                    expected_seconds=expected_seconds,
                ),
                self.merge_timeout,
                "ffmpeg conversion",
            )
        except MusicDlError:
            raise
        except Exception as e:
            raise ExternalToolError("ffmpeg conversion failed:", str(e)) from e

        log.info(f"Saved {output_path}")
        return DownloadResult(
            path=output_path,
            has_lyrics=bool(tags and tags.lyrics),
            has_cover=outcome.cover_path is not None,
        )
