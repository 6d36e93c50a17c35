from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from musicdl_cli.exceptions import (
    DependencyMissingError,
    ExternalToolError,
    FileIntegrityError,
    LookupFailedError,
)
from musicdl_cli.media import tools as tools_module
from musicdl_cli.media.tools import ToolAdapter, locate_dependencies


class _Recorder:
    """Stands in for ToolAdapter._run: records argv and replays a canned result."""

    def __init__(self, code: int = 0, stdout: str = "", combined: str = "", on_call=None):
        self.code = code
        self.stdout = stdout
        self.combined = combined
        self.on_call = on_call
        self.calls: list[tuple[list[str], float, str]] = []

    async def __call__(self, args, timeout, operation):
        self.calls.append((list(args), timeout, operation))
        if self.on_call is not None:
            self.on_call(args)
        return self.code, self.stdout, self.combined


def _adapter(tool_paths, monkeypatch, recorder: _Recorder) -> ToolAdapter:
    adapter = ToolAdapter(tool_paths, timeout=30, download_timeout=60)
    monkeypatch.setattr(adapter, "_run", recorder)
    return adapter


def test_locate_dependencies_prefers_path(monkeypatch) -> None:
    monkeypatch.setattr(tools_module.shutil, "which", lambda name: f"/opt/bin/{name}")

    paths = locate_dependencies()

    assert paths.ytdlp == "/opt/bin/yt-dlp"
    assert paths.ffmpeg == "/opt/bin/ffmpeg"


def test_locate_dependencies_reports_missing_ffmpeg(monkeypatch) -> None:
    monkeypatch.setattr(
        tools_module.shutil, "which", lambda name: "/opt/bin/yt-dlp" if name == "yt-dlp" else None
    )

    with pytest.raises(DependencyMissingError, match="ffmpeg"):
        locate_dependencies()


def test_locate_dependencies_finds_local_ytdlp(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(tools_module.shutil, "which", lambda name: "/opt/bin/ffmpeg" if name == "ffmpeg" else None)
    monkeypatch.setattr(tools_module.sys, "platform", "linux")
    monkeypatch.chdir(tmp_path)
    (tmp_path / "yt-dlp").write_text("")

    assert locate_dependencies().ytdlp.endswith("yt-dlp")


def test_search_videos_builds_watch_urls(tool_paths, monkeypatch) -> None:
    lines = [
        json.dumps({"id": "abc", "title": "Song A", "uploader": "Artist A"}),
        "not json",
        json.dumps({"id": "def", "title": "Song A (Live)", "channel": "Live Channel"}),
    ]
    recorder = _Recorder(stdout="\n".join(lines))
    adapter = _adapter(tool_paths, monkeypatch, recorder)

    videos = asyncio.run(adapter.search_videos("Song A", 5))

    assert [v.source_url for v in videos] == [
        "https://www.youtube.com/watch?v=abc",
        "https://www.youtube.com/watch?v=def",
    ]
    assert videos[1].descriptor == "Live Channel"
    args, timeout, _ = recorder.calls[0]
    assert args[0] == tool_paths.ytdlp
    assert args[-2:] == ["ytsearch5", "Song A"]
    assert timeout == 30


def test_search_videos_failure(tool_paths, monkeypatch) -> None:
    adapter = _adapter(tool_paths, monkeypatch, _Recorder(code=1, combined="ERROR: offline"))

    with pytest.raises(LookupFailedError, match="offline"):
        asyncio.run(adapter.search_videos("Song A", 5))


def test_resolve_url_keeps_original_url(tool_paths, monkeypatch) -> None:
    stdout = json.dumps({"id": "video1", "title": "Song A", "uploader": "Artist A"}) + "\n"
    adapter = _adapter(tool_paths, monkeypatch, _Recorder(stdout=stdout))

    video = asyncio.run(adapter.resolve_url("http://example/video1"))

    assert video.id == "video1"
    assert video.source_url == "http://example/video1"
    assert video.search_text == "Song A Artist A"


def test_resolve_url_unparsable_output(tool_paths, monkeypatch) -> None:
    adapter = _adapter(tool_paths, monkeypatch, _Recorder(stdout=""))

    with pytest.raises(LookupFailedError):
        asyncio.run(adapter.resolve_url("http://example/video1"))


def test_extract_audio_failure_keeps_tool_output(tool_paths, monkeypatch, tmp_path) -> None:
    adapter = _adapter(tool_paths, monkeypatch, _Recorder(code=1, combined="HTTP Error 403"))

    with pytest.raises(ExternalToolError) as excinfo:
        asyncio.run(adapter.extract_audio("https://x", tmp_path / "audio.tmp"))

    assert excinfo.value.output == "HTTP Error 403"


def test_extract_audio_requires_output_file(tool_paths, monkeypatch, tmp_path) -> None:
    adapter = _adapter(tool_paths, monkeypatch, _Recorder(code=0))

    with pytest.raises(ExternalToolError, match="no file"):
        asyncio.run(adapter.extract_audio("https://x", tmp_path / "audio.tmp"))


def test_extract_audio_success(tool_paths, monkeypatch, tmp_path) -> None:
    target = tmp_path / "audio.tmp"
    recorder = _Recorder(on_call=lambda args: target.write_bytes(b"audio"))
    adapter = _adapter(tool_paths, monkeypatch, recorder)

    assert asyncio.run(adapter.extract_audio("https://x", target)) == target
    args, timeout, _ = recorder.calls[0]
    assert args == [tool_paths.ytdlp, "-f", "bestaudio", "-o", str(target), "https://x"]
    assert timeout == 60


def test_transcode_arguments_with_cover_and_tags(tool_paths, monkeypatch, tmp_path) -> None:
    recorder = _Recorder()
    adapter = _adapter(tool_paths, monkeypatch, recorder)
    monkeypatch.setattr(tools_module, "verify_flac", lambda path, expected: 215.0)
    audio, cover, out = tmp_path / "a.tmp", tmp_path / "cover.jpg", tmp_path / "out.flac"

    asyncio.run(
        adapter.transcode(audio, out, cover_path=cover, metadata=[("title", "T"), ("LYRICS", "L")])
    )

    args = recorder.calls[0][0]
    assert args == [
        tool_paths.ffmpeg,
        "-y",
        "-i",
        str(audio),
        "-i",
        str(cover),
        "-map",
        "0:a:0",
        "-map",
        "1:v:0",
        "-disposition:v",
        "attached_pic",
        "-c:a",
        "flac",
        "-metadata",
        "title=T",
        "-metadata",
        "LYRICS=L",
        str(out),
    ]


def test_transcode_without_cover_or_tags(tool_paths, monkeypatch, tmp_path) -> None:
    recorder = _Recorder()
    adapter = _adapter(tool_paths, monkeypatch, recorder)
    monkeypatch.setattr(tools_module, "verify_flac", lambda path, expected: 215.0)
    audio, out = tmp_path / "a.tmp", tmp_path / "out.flac"

    asyncio.run(adapter.transcode(audio, out))

    assert recorder.calls[0][0] == [tool_paths.ffmpeg, "-y", "-i", str(audio), "-c:a", "flac", str(out)]


def test_transcode_verifies_against_track_length(tool_paths, monkeypatch, tmp_path) -> None:
    adapter = _adapter(tool_paths, monkeypatch, _Recorder())
    verified: list[tuple[Path, int]] = []
    monkeypatch.setattr(
        tools_module, "verify_flac", lambda path, expected: verified.append((path, expected))
    )
    out = tmp_path / "out.flac"

    assert asyncio.run(adapter.transcode(tmp_path / "a.tmp", out, expected_seconds=215)) == out
    assert verified == [(out, 215)]


def test_transcode_rejects_output_that_is_not_flac(tool_paths, monkeypatch, tmp_path: Path) -> None:
    out = tmp_path / "out.flac"
    recorder = _Recorder(on_call=lambda args: out.write_bytes(b"RIFF....WAVEfmt "))
    adapter = _adapter(tool_paths, monkeypatch, recorder)

    with pytest.raises(FileIntegrityError, match="no FLAC header"):
        asyncio.run(adapter.transcode(tmp_path / "a.tmp", out))


def test_transcode_failure(tool_paths, monkeypatch, tmp_path: Path) -> None:
    adapter = _adapter(tool_paths, monkeypatch, _Recorder(code=1, combined="Invalid data"))

    with pytest.raises(ExternalToolError, match="Invalid data"):
        asyncio.run(adapter.transcode(tmp_path / "a.tmp", tmp_path / "out.flac"))
