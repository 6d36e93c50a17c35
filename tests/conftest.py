import sys
from pathlib import Path

import pytest

# Ensure tests can import project packages regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

from musicdl_cli.core.interfaces import ToolPaths  # noqa: E402
from musicdl_cli.models.candidate import (  # noqa: E402
    Candidate,
    ReleaseInfo,
    TrackInfo,
    VideoInfo,
)


@pytest.fixture
def tool_paths() -> ToolPaths:
    return ToolPaths(ytdlp="/usr/bin/yt-dlp", ffmpeg="/usr/bin/ffmpeg")


@pytest.fixture
def make_video():
    def _make(video_id: str = "video1", title: str = "Song A", uploader: str = "Artist A"):
        info = VideoInfo(id=video_id, title=title, uploader=uploader)
        return Candidate.from_video(info, f"https://www.youtube.com/watch?v={video_id}")

    return _make


@pytest.fixture
def release_info() -> ReleaseInfo:
    return ReleaseInfo.model_validate(
        {
            "id": "rel-1",
            "title": "Album A",
            "artist-credit": [
                {"name": "Artist A", "joinphrase": " feat. "},
                {"name": "Guest"},
            ],
            "date": "2020-05-01",
            "release-group": {"id": "rg-1", "primary-type": "Album"},
        }
    )


@pytest.fixture
def release(release_info) -> Candidate:
    return Candidate.from_release(release_info)


@pytest.fixture
def track() -> Candidate:
    info = TrackInfo(
        id="trk-1",
        title="Song A",
        number="3",
        length=215500,
        artist="Artist A feat. Guest",
        media_format="CD",
    )
    return Candidate.from_track(info)
