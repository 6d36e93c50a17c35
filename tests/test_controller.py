from __future__ import annotations

from pathlib import Path

import pytest

from musicdl_cli.core.commands import (
    CheckDependencies,
    DownloadTagged,
    DownloadTagless,
    FetchTracklist,
    ParallelSearch,
    ResolveURL,
    SearchReleases,
)
from musicdl_cli.core.controller import (
    NO_TRACKS_MESSAGE,
    PipelineController,
    WorkflowState,
)
from musicdl_cli.core.events import (
    AnyKey,
    Back,
    Cancel,
    Confirm,
    Decline,
    DependenciesChecked,
    DownloadFinished,
    FocusNext,
    FocusPrev,
    ReleasesFound,
    Resize,
    SearchFinished,
    SearchResults,
    Select,
    Skip,
    Submit,
    TracklistFetched,
    URLInfoFetched,
)
from musicdl_cli.exceptions import (
    DependencyMissingError,
    EmptyResultError,
    LookupFailedError,
    ToolTimeoutError,
)
from musicdl_cli.models.candidate import Candidate, TrackInfo
from musicdl_cli.models.tags import DownloadResult


def _ready(tool_paths) -> PipelineController:
    controller = PipelineController()
    assert controller.start() == CheckDependencies()
    assert controller.handle(DependenciesChecked(value=tool_paths)) is None
    assert controller.state is WorkflowState.AWAITING_QUERY
    return controller


def _at_source_selection(tool_paths, videos, releases=()) -> PipelineController:
    controller = _ready(tool_paths)
    controller.handle(Submit("Song B"))
    controller.handle(
        SearchFinished(value=SearchResults(videos=tuple(videos), releases=tuple(releases)))
    )
    assert controller.state is WorkflowState.SELECTING_SOURCE
    return controller


def test_start_checks_dependencies() -> None:
    controller = PipelineController()

    command = controller.start()

    assert isinstance(command, CheckDependencies)
    assert controller.state is WorkflowState.CHECKING_DEPENDENCIES
    assert controller.waiting


def test_missing_dependency_is_fatal(tool_paths) -> None:
    controller = PipelineController()
    controller.start()

    controller.handle(DependenciesChecked(error=DependencyMissingError("ffmpeg was not found")))

    assert controller.state is WorkflowState.SHOWING_ERROR
    assert controller.workflow.fatal
    assert controller.handle(AnyKey()) is None
    assert controller.quitting


def test_url_without_metadata_downloads_tagless(tool_paths, make_video) -> None:
    controller = _ready(tool_paths)
    video = make_video("video1", "Song A", "Artist A")

    command = controller.handle(Submit("http://example/video1"))
    assert command == ResolveURL(tool_paths, "http://example/video1")
    assert controller.state is WorkflowState.FETCHING_URL_INFO

    command = controller.handle(URLInfoFetched(value=video))
    assert command == SearchReleases("Song A Artist A")
    assert controller.state is WorkflowState.SEARCHING_RELEASES

    assert controller.handle(ReleasesFound(value=[])) is None
    assert controller.state is WorkflowState.CONFIRMING_SKIP_METADATA

    command = controller.handle(Confirm())
    assert command == DownloadTagless(tool_paths, video)
    assert controller.state is WorkflowState.DOWNLOADING

    result = DownloadResult(path=Path("/music/Song A.flac"))
    controller.handle(DownloadFinished(value=result))
    assert controller.state is WorkflowState.SHOWING_SUCCESS
    assert controller.workflow.result == result


def test_text_search_to_tagged_download(tool_paths, make_video, release) -> None:
    videos = [
        make_video("video1", "Song A", "Artist A"),
        make_video("video2", "Song B", "Artist B"),
    ]
    tracks = [
        Candidate.from_track(
            TrackInfo(
                id=f"trk-{n}",
                title=title,
                number=str(n),
                length=length,
                artist="Artist A feat. Guest",
            )
        )
        for n, title, length in [(1, "Intro", 61000), (2, "Song B", 198400), (3, "Outro", 95000)]
    ]
    controller = _ready(tool_paths)

    command = controller.handle(Submit("  Song B  "))
    assert command == ParallelSearch(tool_paths, "Song B")
    assert controller.state is WorkflowState.SEARCHING_CANDIDATES

    controller.handle(
        SearchFinished(value=SearchResults(videos=tuple(videos), releases=(release,)))
    )
    assert controller.state is WorkflowState.SELECTING_SOURCE

    command = controller.handle(Select(1))
    assert command == SearchReleases("Song B Artist B")
    assert controller.workflow.selected_video == videos[1]

    controller.handle(ReleasesFound(value=[release]))
    assert controller.state is WorkflowState.SELECTING_RELEASE

    command = controller.handle(Select(0))
    assert command == FetchTracklist("rel-1")
    assert controller.state is WorkflowState.FETCHING_TRACKLIST

    controller.handle(TracklistFetched(value=tracks))
    assert controller.state is WorkflowState.SELECTING_TRACK

    assert controller.handle(Select(1)) is None
    assert controller.state is WorkflowState.EDITING_TAGS
    assert controller.workflow.selected_track == tracks[1]
    editor = controller.workflow.editor
    assert editor.value("title") == "Song B"
    assert editor.value("track_number") == "2"
    assert editor.value("album") == "Album A"

    assert controller.handle(Submit("Song B (Live)")) is None
    for _ in range(3):
        assert controller.handle(Confirm()) is None
    assert editor.on_last_field

    command = controller.handle(Confirm())
    assert isinstance(command, DownloadTagged)
    assert command.video == videos[1]
    assert command.release == release
    assert command.tags.title == "Song B (Live)"
    assert command.tags.track_number == "2"
    assert command.tags.album_artist == "Artist A feat. Guest"
    assert command.tags.duration_seconds == 198
    assert controller.state is WorkflowState.DOWNLOADING


def test_failed_download_returns_to_clean_query(tool_paths, make_video) -> None:
    controller = _at_source_selection(tool_paths, [make_video()])
    controller.handle(Skip())
    controller.handle(Confirm())
    assert controller.state is WorkflowState.DOWNLOADING

    controller.handle(DownloadFinished(error=ToolTimeoutError("Audio download", 60)))
    assert controller.state is WorkflowState.SHOWING_ERROR
    assert isinstance(controller.workflow.error, ToolTimeoutError)
    assert not controller.workflow.fatal

    controller.handle(AnyKey())
    assert controller.state is WorkflowState.AWAITING_QUERY
    assert controller.workflow.videos == ()
    assert controller.workflow.selected_video is None
    assert controller.workflow.error is None
    assert controller.tool_paths == tool_paths
    assert not controller.quitting


def test_search_failure_shows_error(tool_paths) -> None:
    controller = _ready(tool_paths)
    controller.handle(Submit("Song B"))

    controller.handle(SearchFinished(error=LookupFailedError("MusicBrainz unreachable")))

    assert controller.state is WorkflowState.SHOWING_ERROR
    assert str(controller.workflow.error) == "MusicBrainz unreachable"


def test_no_videos_found_is_an_error(tool_paths) -> None:
    controller = _ready(tool_paths)
    controller.handle(Submit("Song B"))

    controller.handle(SearchFinished(value=SearchResults(videos=(), releases=())))

    assert controller.state is WorkflowState.SHOWING_ERROR
    assert isinstance(controller.workflow.error, EmptyResultError)


def test_empty_tracklist_is_an_error(tool_paths, make_video, release) -> None:
    controller = _at_source_selection(tool_paths, [make_video()])
    controller.handle(Select(0))
    controller.handle(ReleasesFound(value=[release]))
    controller.handle(Select(0))

    controller.handle(TracklistFetched(value=[]))

    assert controller.state is WorkflowState.SHOWING_ERROR
    assert str(controller.workflow.error) == NO_TRACKS_MESSAGE


@pytest.mark.parametrize(
    "event",
    [Submit("again"), Select(0), Back(), Skip(), Confirm(), FocusNext(), AnyKey()],
)
def test_user_input_is_ignored_while_waiting(tool_paths, event) -> None:
    controller = _ready(tool_paths)
    controller.handle(Submit("Song B"))

    assert controller.handle(event) is None
    assert controller.state is WorkflowState.SEARCHING_CANDIDATES


def test_unexpected_completion_is_ignored(tool_paths, release) -> None:
    controller = _ready(tool_paths)

    assert controller.handle(ReleasesFound(value=[release])) is None
    assert controller.state is WorkflowState.AWAITING_QUERY
    assert controller.workflow.releases == ()


def test_out_of_range_selection_is_ignored(tool_paths, make_video) -> None:
    controller = _at_source_selection(tool_paths, [make_video()])

    assert controller.handle(Select(5)) is None
    assert controller.handle(Select(-1)) is None
    assert controller.state is WorkflowState.SELECTING_SOURCE


def test_empty_query_is_ignored(tool_paths) -> None:
    controller = _ready(tool_paths)

    assert controller.handle(Submit("   ")) is None
    assert controller.state is WorkflowState.AWAITING_QUERY


def test_skip_picks_requested_video(tool_paths, make_video) -> None:
    first, second = make_video("v1", "One"), make_video("v2", "Two")
    controller = _at_source_selection(tool_paths, [first, second])

    controller.handle(Skip(1))
    assert controller.state is WorkflowState.CONFIRMING_SKIP_METADATA

    command = controller.handle(Confirm())
    assert command == DownloadTagless(tool_paths, second)


def test_decline_skip_returns_to_sources(tool_paths, make_video) -> None:
    controller = _at_source_selection(tool_paths, [make_video()])
    controller.handle(Skip())

    assert controller.handle(Decline()) is None
    assert controller.state is WorkflowState.SELECTING_SOURCE


def test_back_navigation(tool_paths, make_video, release, track) -> None:
    controller = _at_source_selection(tool_paths, [make_video()])
    controller.handle(Select(0))
    controller.handle(ReleasesFound(value=[release]))
    controller.handle(Select(0))
    controller.handle(TracklistFetched(value=[track]))
    controller.handle(Select(0))
    assert controller.state is WorkflowState.EDITING_TAGS

    controller.handle(Back())
    assert controller.state is WorkflowState.SELECTING_TRACK
    controller.handle(Back())
    assert controller.state is WorkflowState.SELECTING_RELEASE
    controller.handle(Back())
    assert controller.state is WorkflowState.SELECTING_SOURCE
    controller.handle(Back())
    assert controller.state is WorkflowState.AWAITING_QUERY
    assert controller.workflow.videos == ()


def test_tag_focus_events(tool_paths, make_video, release, track) -> None:
    controller = _at_source_selection(tool_paths, [make_video()])
    controller.handle(Select(0))
    controller.handle(ReleasesFound(value=[release]))
    controller.handle(Select(0))
    controller.handle(TracklistFetched(value=[track]))
    controller.handle(Select(0))
    editor = controller.workflow.editor

    controller.handle(FocusPrev())
    assert editor.focus_index == 4
    controller.handle(FocusNext())
    assert editor.focus_index == 0


def test_cancel_quits_from_any_state(tool_paths) -> None:
    controller = _ready(tool_paths)
    controller.handle(Submit("Song B"))

    assert controller.handle(Cancel()) is None
    assert controller.quitting


def test_resize_keeps_state(tool_paths) -> None:
    controller = _ready(tool_paths)

    controller.handle(Resize(120, 40))

    assert (controller.width, controller.height) == (120, 40)
    assert controller.state is WorkflowState.AWAITING_QUERY
