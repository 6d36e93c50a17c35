"""
Runs the external command-line tools: yt-dlp for search and audio
extraction, ffmpeg for the final FLAC merge.

Each invocation is an isolated subprocess with its own timeout. Failures are
raised as typed application errors carrying the tool's own output.
"""

import asyncio
import json
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from musicdl_cli.core.interfaces import ToolPaths
from musicdl_cli.exceptions import (
    DependencyMissingError,
    ExternalToolError,
    LookupFailedError,
    ToolTimeoutError,
)
from musicdl_cli.models.candidate import Candidate, VideoInfo

from .integrity import verify_flac

log = logging.getLogger(__name__)

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v="


def locate_dependencies() -> ToolPaths:
    """
    Finds yt-dlp and ffmpeg.

    yt-dlp may live on PATH or next to the working directory; ffmpeg must be
    on PATH.

    Raises:
        DependencyMissingError: If either tool cannot be found.
    """
    ytdlp = shutil.which("yt-dlp")
    if not ytdlp:
        local_name = "yt-dlp.exe" if sys.platform == "win32" else "yt-dlp"
        if os.path.isfile(local_name):
            ytdlp = os.path.join(".", local_name)
    if not ytdlp:
        raise DependencyMissingError(
            "yt-dlp was not found. Put it on your PATH or in the current directory."
        )

    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise DependencyMissingError(
            "ffmpeg was not found. It is required for audio conversion.\n"
            "Install it for your OS (e.g. brew install ffmpeg)."
        )

    log.debug(f"Using yt-dlp at {ytdlp}, ffmpeg at {ffmpeg}")
    return ToolPaths(ytdlp=ytdlp, ffmpeg=ffmpeg)


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()


class ToolAdapter:
    """Async wrapper around the yt-dlp and ffmpeg executables."""

    def __init__(
        self,
        paths: ToolPaths,
        timeout: float = 30.0,
        download_timeout: float = 60.0,
    ):
        """
        Args:
            paths: Tool locations found by `locate_dependencies`.
            timeout: Time budget for metadata calls (search, URL resolution).
            download_timeout: Time budget for audio extraction and transcoding.
        """
        self.paths = paths
        self.timeout = timeout
        self.download_timeout = download_timeout

    async def _run(
        self, args: Sequence[str], timeout: float, operation: str
    ) -> Tuple[int, str, str]:
        """
        Runs one subprocess to completion.

        Returns:
            The exit code, decoded stdout, and stdout+stderr for diagnostics.
        """
        log.debug(f"{operation}: {' '.join(args)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise DependencyMissingError(f"{args[0]} could not be executed: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        except asyncio.TimeoutError:
            await _terminate(proc)
            raise ToolTimeoutError(operation, timeout) from None
        except asyncio.CancelledError:
            await _terminate(proc)
            raise

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        return proc.returncode, out, (out + err).strip()

    async def resolve_url(self, url: str) -> Candidate:
        """Fetches the video behind a direct URL."""
        code, out, combined = await self._run(
            [self.paths.ytdlp, "--quiet", "--no-warnings", "--dump-json", url],
            self.timeout,
            "URL lookup",
        )
        if code != 0:
            raise LookupFailedError(f"Failed to fetch URL info:\n{combined}")
        try:
            info = VideoInfo.model_validate_json(out.strip().splitlines()[0])
        except (IndexError, ValidationError) as e:
            raise LookupFailedError(f"Failed to parse URL info JSON:\n{e}") from e
        return Candidate.from_video(info, url)

    async def search_videos(self, query: str, limit: int) -> List[Candidate]:
        """Searches YouTube and returns up to `limit` video candidates."""
        code, out, combined = await self._run(
            [
                self.paths.ytdlp,
                "--quiet",
                "--no-warnings",
                "--dump-json",
                "--default-search",
                f"ytsearch{limit}",
                query,
            ],
            self.timeout,
            "YouTube search",
        )
        if code != 0:
            raise LookupFailedError(f"YouTube search failed:\n{combined}")

        candidates = []
        for line in out.splitlines():
            if not line.strip():
                continue
            try:
                info = VideoInfo.model_validate(json.loads(line))
            except (ValueError, ValidationError):
                log.debug(f"Skipping unparsable search result line: {line[:80]}")
                continue
            candidates.append(Candidate.from_video(info, YOUTUBE_WATCH_URL + info.id))
        return candidates

    async def extract_audio(self, url: str, output_path: Path) -> Path:
        """Downloads the best audio stream of `url` to `output_path`."""
        code, _, combined = await self._run(
            [self.paths.ytdlp, "-f", "bestaudio", "-o", str(output_path), url],
            self.download_timeout,
            "Audio download",
        )
        if code != 0:
            raise ExternalToolError("Audio download failed:", combined)
        if not output_path.is_file():
            raise ExternalToolError(
                f"Audio download produced no file at {output_path}", combined
            )
        return output_path

    async def transcode(
        self,
        audio_path: Path,
        output_path: Path,
        cover_path: Optional[Path] = None,
        metadata: Optional[Sequence[Tuple[str, str]]] = None,
        expected_seconds: int = 0,
    ) -> Path:
        """
        Converts the audio to FLAC, embedding the cover and tags when given.

        The written file is verified afterwards; `expected_seconds` is the
        length of the chosen track, 0 when unknown.

        Raises:
            ExternalToolError: If ffmpeg fails.
            FileIntegrityError: If the written file is not a valid FLAC.
        """
        args = [self.paths.ffmpeg, "-y", "-i", str(audio_path)]
        if cover_path is not None:
            args += [
                "-i",
                str(cover_path),
                "-map",
                "0:a:0",
                "-map",
                "1:v:0",
                "-disposition:v",
                "attached_pic",
            ]
        args += ["-c:a", "flac"]
        for key, value in metadata or ():
            args += ["-metadata", f"{key}={value}"]
        args.append(str(output_path))

        code, _, combined = await self._run(args, self.download_timeout, "ffmpeg conversion")
        if code != 0:
            raise ExternalToolError("ffmpeg conversion failed:", combined)

        await asyncio.to_thread(verify_flac, output_path, expected_seconds)
        return output_path
