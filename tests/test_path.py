from __future__ import annotations

from pathlib import Path

from musicdl_cli.utils.path import create_dir, is_url, output_filename, sanitize_filename


def test_sanitize_filename_replaces_every_unsafe_character() -> None:
    result = sanitize_filename('AC/DC: Back\\In*Black? <Live> | "Remix".flac')

    for char in '/\\:*?<>|"':
        assert char not in result
    assert result.startswith("AC-DC- Back-In-Black- -Live- - 'Remix'")
    assert result.endswith(".flac")


def test_sanitize_filename_is_idempotent() -> None:
    once = sanitize_filename('Artist A - What? "Now" / Then.flac')

    assert sanitize_filename(once) == once


def test_sanitize_filename_leaves_safe_names_alone() -> None:
    assert sanitize_filename("Artist A - Song A.flac") == "Artist A - Song A.flac"


def test_output_filename_sanitizes_stem_only() -> None:
    assert output_filename("AC/DC - Back In Black?") == "AC-DC - Back In Black-.flac"
    assert output_filename("") == "untitled.flac"


def test_output_filename_truncates_long_multibyte_stem() -> None:
    stem = "アーティスト" * 5 + " - " + "長い曲のタイトル" * 8

    result = output_filename(stem)

    assert result.endswith(".flac")
    assert len(result.encode("utf-8")) <= 255
    assert result.startswith("アーティスト")


def test_is_url_detects_http_and_https() -> None:
    assert is_url("http://example/video1")
    assert is_url("  https://www.youtube.com/watch?v=abc")
    assert not is_url("Song B")
    assert not is_url("httpster - song")


def test_create_dir_is_repeatable(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b"

    create_dir(target)
    create_dir(target)

    assert target.is_dir()
