"""
Async client for the remote metadata services: MusicBrainz (release search and
track lists), LRCLIB (lyrics) and the Cover Art Archive (artwork).
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from musicdl_cli.exceptions import LookupFailedError, ToolTimeoutError
from musicdl_cli.models.candidate import (
    Candidate,
    ReleaseInfo,
    ReleaseSearchResponse,
)

from .rate_limiter import AdaptiveRateLimiter

log = logging.getLogger(__name__)


class MetadataAPIClient:
    """
    Async client for the metadata lookups of the wizard.

    Features:
    - One shared aiohttp session with a per-request timeout
    - MusicBrainz rate limiting
    - Typed failures: absence is `None`, network/parse problems are
      `LookupFailedError`, timeouts are `ToolTimeoutError`
    """

    MUSICBRAINZ_URL = "https://musicbrainz.org/ws/2/"
    LRCLIB_URL = "https://lrclib.net/api/get"
    COVER_ART_URL = "https://coverartarchive.org/"

    def __init__(self, user_agent: str, timeout: float = 10.0):
        """
        Initializes the API client.

        Args:
            user_agent: Identifying User-Agent; MusicBrainz requires one.
            timeout: Total time budget for a single request, in seconds.
        """
        self.user_agent = user_agent
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._rate_limiter = AdaptiveRateLimiter()

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "User-Agent": self.user_agent,
                    "Accept-Encoding": "gzip, deflate",
                },
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "MetadataAPIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def musicbrainz_call(self, endpoint: str, **params: Any) -> Dict[str, Any]:
        """
        Makes a rate-limited MusicBrainz JSON call.

        Raises:
            LookupFailedError: On HTTP or network errors.
            ToolTimeoutError: If the request exceeds the configured timeout.
        """
        session = await self._initialize_session()
        await self._rate_limiter.acquire()
        params["fmt"] = "json"
        try:
            async with session.get(self.MUSICBRAINZ_URL + endpoint, params=params) as r:
                if r.status in (429, 503):
                    await self._rate_limiter.on_throttled()
                r.raise_for_status()
                return await r.json(content_type=None)
        except asyncio.TimeoutError:
            raise ToolTimeoutError("MusicBrainz request", self.timeout) from None
        except (aiohttp.ClientError, ValueError) as e:
            log.debug(f"MusicBrainz call to {endpoint} failed: {e}")
            raise LookupFailedError(f"MusicBrainz lookup failed: {e}") from e

    async def search_releases(self, query: str) -> List[Candidate]:
        """Searches MusicBrainz releases matching free text."""
        data = await self.musicbrainz_call(
            "release/", query=query, inc="artist-credits+release-groups"
        )
        try:
            response = ReleaseSearchResponse.model_validate(data)
        except ValidationError as e:
            raise LookupFailedError(f"Unexpected MusicBrainz search response: {e}") from e
        log.debug(f"MusicBrainz search '{query}' returned {len(response.releases)} releases")
        return [Candidate.from_release(release) for release in response.releases]

    async def fetch_tracklist(self, release_id: str) -> List[Candidate]:
        """Fetches every track of a release, across all of its media, in order."""
        data = await self.musicbrainz_call(
            f"release/{release_id}", inc="artist-credits+media+recordings"
        )
        try:
            release = ReleaseInfo.model_validate(data)
        except ValidationError as e:
            raise LookupFailedError(f"Unexpected MusicBrainz release response: {e}") from e

        artist = release.artist
        return [
            Candidate.from_track(
                track.model_copy(
                    update={"artist": artist, "media_format": medium.format or ""}
                )
            )
            for medium in release.media
            for track in medium.tracks
        ]

    async def fetch_lyrics(
        self, artist: str, title: str, album: str, duration_seconds: int
    ) -> Optional[str]:
        """
        Looks up lyrics on LRCLIB.

        Returns:
            The lyrics text, or None when LRCLIB has no match.
        """
        session = await self._initialize_session()
        params = {
            "track_name": title,
            "artist_name": artist,
            "album_name": album,
            "duration": str(duration_seconds),
        }
        log.debug(f"Lyrics: calling {self.LRCLIB_URL} with {params}")
        try:
            async with session.get(self.LRCLIB_URL, params=params) as r:
                if r.status != 200:
                    log.debug(f"Lyrics: API returned non-200 status: {r.status}")
                    return None
                data = await r.json(content_type=None)
        except asyncio.TimeoutError:
            raise ToolTimeoutError("Lyrics request", self.timeout) from None
        except (aiohttp.ClientError, ValueError) as e:
            raise LookupFailedError(f"Lyrics lookup failed: {e}") from e

        if not isinstance(data, dict):
            return None
        lyrics = data.get("plainLyrics") or data.get("syncedLyrics") or ""
        return lyrics.strip() or None

    async def fetch_cover_art(self, entity_id: str, group: bool = False) -> Optional[bytes]:
        """
        Downloads the 500px front cover of a release or release group.

        Returns:
            The image bytes, or None when the archive has no front cover.
        """
        session = await self._initialize_session()
        entity = "release-group" if group else "release"
        url = f"{self.COVER_ART_URL}{entity}/{entity_id}/front-500"
        try:
            async with session.get(url, allow_redirects=True) as r:
                if r.status == 404:
                    log.debug(f"No cover art for {entity} {entity_id}")
                    return None
                r.raise_for_status()
                return await r.read()
        except asyncio.TimeoutError:
            raise ToolTimeoutError("Cover art request", self.timeout) from None
        except aiohttp.ClientError as e:
            raise LookupFailedError(f"Cover art lookup failed: {e}") from e
