"""
The wizard's finite state machine.

`PipelineController.handle` consumes one event at a time (user input, window
resize or a command completion) and returns at most one command for the
dispatcher. It performs no I/O of its own.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from musicdl_cli.exceptions import EmptyResultError, MusicDlError
from musicdl_cli.models.candidate import Candidate
from musicdl_cli.models.tags import DownloadResult, TagSet
from musicdl_cli.utils.path import is_url

from .commands import (
    CheckDependencies,
    Command,
    DownloadTagged,
    DownloadTagless,
    FetchTracklist,
    ParallelSearch,
    ResolveURL,
    SearchReleases,
)
from .events import (
    Back,
    Cancel,
    Completion,
    Confirm,
    Decline,
    DependenciesChecked,
    DownloadFinished,
    Event,
    FocusNext,
    FocusPrev,
    ReleasesFound,
    Resize,
    SearchFinished,
    Select,
    Skip,
    Submit,
    TracklistFetched,
    URLInfoFetched,
    UserEvent,
)
from .interfaces import ToolPaths
from .tag_editor import TagEditor

log = logging.getLogger(__name__)


class WorkflowState(Enum):
    CHECKING_DEPENDENCIES = "checking_dependencies"
    AWAITING_QUERY = "awaiting_query"
    FETCHING_URL_INFO = "fetching_url_info"
    SEARCHING_CANDIDATES = "searching_candidates"
    SEARCHING_RELEASES = "searching_releases"
    SELECTING_SOURCE = "selecting_source"
    SELECTING_RELEASE = "selecting_release"
    FETCHING_TRACKLIST = "fetching_tracklist"
    SELECTING_TRACK = "selecting_track"
    EDITING_TAGS = "editing_tags"
    CONFIRMING_SKIP_METADATA = "confirming_skip_metadata"
    DOWNLOADING = "downloading"
    SHOWING_SUCCESS = "showing_success"
    SHOWING_ERROR = "showing_error"


WAITING_STATES = frozenset(
    {
        WorkflowState.CHECKING_DEPENDENCIES,
        WorkflowState.FETCHING_URL_INFO,
        WorkflowState.SEARCHING_CANDIDATES,
        WorkflowState.SEARCHING_RELEASES,
        WorkflowState.FETCHING_TRACKLIST,
        WorkflowState.DOWNLOADING,
    }
)

NO_TRACKS_MESSAGE = (
    "The selected release contains no track information. "
    "Please choose a different release."
)


@dataclass
class Workflow:
    """Everything scoped to one pass through the wizard."""

    query: str = ""
    status: str = ""
    videos: Tuple[Candidate, ...] = ()
    releases: Tuple[Candidate, ...] = ()
    tracks: Tuple[Candidate, ...] = ()
    selected_video: Optional[Candidate] = None
    selected_release: Optional[Candidate] = None
    selected_track: Optional[Candidate] = None
    editor: Optional[TagEditor] = None
    tags: Optional[TagSet] = None
    result: Optional[DownloadResult] = None
    error: Optional[MusicDlError] = None
    fatal: bool = False


class PipelineController:
    """
    Owns the current state, the workflow selections and the in-flight command.

    Long-lived fields (tool paths, terminal size) survive a reset; everything
    in `workflow` is replaced by a fresh `Workflow` when the wizard returns to
    the query screen.
    """

    def __init__(self, width: int = 80, height: int = 24):
        self.state = WorkflowState.CHECKING_DEPENDENCIES
        self.workflow = Workflow(status="Checking dependencies...")
        self.tool_paths: Optional[ToolPaths] = None
        self.width = width
        self.height = height
        self.in_flight: Optional[Command] = None
        self.quitting = False

        self._user_handlers: Dict[
            WorkflowState, Callable[[UserEvent], Optional[Command]]
        ] = {
            WorkflowState.AWAITING_QUERY: self._on_query_input,
            WorkflowState.SELECTING_SOURCE: self._on_source_input,
            WorkflowState.SELECTING_RELEASE: self._on_release_input,
            WorkflowState.SELECTING_TRACK: self._on_track_input,
            WorkflowState.EDITING_TAGS: self._on_tag_input,
            WorkflowState.CONFIRMING_SKIP_METADATA: self._on_skip_confirmation,
            WorkflowState.SHOWING_SUCCESS: self._on_result_screen_input,
            WorkflowState.SHOWING_ERROR: self._on_result_screen_input,
        }
        self._completion_handlers: Dict[
            type, Callable[[Completion], Optional[Command]]
        ] = {
            DependenciesChecked: self._on_dependencies_checked,
            URLInfoFetched: self._on_url_info,
            SearchFinished: self._on_search_finished,
            ReleasesFound: self._on_releases_found,
            TracklistFetched: self._on_tracklist,
            DownloadFinished: self._on_download_finished,
        }

    # --- Public API ---

    @property
    def waiting(self) -> bool:
        return self.state in WAITING_STATES

    def start(self) -> Command:
        """Returns the first command of the session: the dependency check."""
        return self._dispatch(
            CheckDependencies(),
            WorkflowState.CHECKING_DEPENDENCIES,
            "Checking dependencies...",
        )

    def handle(self, event: Event) -> Optional[Command]:
        """
        Applies one event.

        Returns:
            The command to dispatch, or None. Events that mean nothing in the
            current state leave it unchanged.
        """
        if isinstance(event, Cancel):
            self.quitting = True
            return None
        if isinstance(event, Resize):
            self.width, self.height = event.width, event.height
            return None
        if isinstance(event, Completion):
            return self._on_completion(event)
        if isinstance(event, UserEvent):
            handler = self._user_handlers.get(self.state)
            return handler(event) if handler else None
        return None

    # --- Helpers ---

    def _set_state(self, state: WorkflowState) -> None:
        if state is not self.state:
            log.debug(f"State {self.state.value} -> {state.value}")
        self.state = state

    def _dispatch(self, command: Command, state: WorkflowState, status: str) -> Command:
        self.in_flight = command
        self.workflow.status = status
        self._set_state(state)
        return command

    def _fail(self, error: MusicDlError, fatal: bool = False) -> None:
        self.workflow.error = error
        self.workflow.fatal = fatal
        self._set_state(WorkflowState.SHOWING_ERROR)

    def _reset(self) -> None:
        """Starts a fresh workflow, keeping only tool paths and terminal size."""
        self.workflow = Workflow()
        self.in_flight = None
        self._set_state(WorkflowState.AWAITING_QUERY)

    def _require_paths(self) -> ToolPaths:
        if self.tool_paths is None:
            raise RuntimeError("Tool paths are not known before the dependency check.")
        return self.tool_paths

    @staticmethod
    def _pick(items: Tuple[Candidate, ...], index: int) -> Optional[Candidate]:
        if 0 <= index < len(items):
            return items[index]
        return None

    def _search_releases_for(self, video: Candidate) -> Command:
        return self._dispatch(
            SearchReleases(video.search_text),
            WorkflowState.SEARCHING_RELEASES,
            "Searching MusicBrainz for metadata...",
        )

    def _confirm_skip(self, index: Optional[int] = None) -> None:
        wf = self.workflow
        if index is not None:
            wf.selected_video = self._pick(wf.videos, index) or wf.selected_video
        if wf.selected_video is None and wf.videos:
            wf.selected_video = wf.videos[0]
        if wf.selected_video is None:
            return
        self._set_state(WorkflowState.CONFIRMING_SKIP_METADATA)

    # --- Completions ---

    def _on_completion(self, message: Completion) -> Optional[Command]:
        expected = self.in_flight.completion if self.in_flight else None
        if expected is None or not isinstance(message, expected):
            log.debug(f"Ignoring unexpected {type(message).__name__} in {self.state.value}")
            return None
        self.in_flight = None

        if isinstance(message, DependenciesChecked) and not message.ok:
            self._fail(message.error, fatal=True)
            return None
        if not message.ok:
            self._fail(message.error)
            return None
        return self._completion_handlers[type(message)](message)

    def _on_dependencies_checked(self, message: Completion) -> Optional[Command]:
        self.tool_paths = message.value
        self.workflow.status = ""
        self._set_state(WorkflowState.AWAITING_QUERY)
        return None

    def _on_url_info(self, message: Completion) -> Optional[Command]:
        video: Candidate = message.value
        self.workflow.videos = (video,)
        self.workflow.selected_video = video
        return self._search_releases_for(video)

    def _on_search_finished(self, message: Completion) -> Optional[Command]:
        results = message.value
        if not results.videos:
            self._fail(EmptyResultError(f"No videos found for '{self.workflow.query}'."))
            return None
        self.workflow.videos = results.videos
        self.workflow.releases = results.releases
        self._set_state(WorkflowState.SELECTING_SOURCE)
        return None

    def _on_releases_found(self, message: Completion) -> Optional[Command]:
        releases = tuple(message.value)
        if not releases:
            self._confirm_skip()
            return None
        self.workflow.releases = releases
        self._set_state(WorkflowState.SELECTING_RELEASE)
        return None

    def _on_tracklist(self, message: Completion) -> Optional[Command]:
        tracks = tuple(message.value)
        if not tracks:
            self._fail(EmptyResultError(NO_TRACKS_MESSAGE))
            return None
        self.workflow.tracks = tracks
        self._set_state(WorkflowState.SELECTING_TRACK)
        return None

    def _on_download_finished(self, message: Completion) -> Optional[Command]:
        self.workflow.result = message.value
        self._set_state(WorkflowState.SHOWING_SUCCESS)
        return None

    # --- User input ---

    def _on_query_input(self, event: UserEvent) -> Optional[Command]:
        if not isinstance(event, Submit):
            return None
        query = event.text.strip()
        if not query:
            return None
        self.workflow.query = query
        if is_url(query):
            return self._dispatch(
                ResolveURL(self._require_paths(), query),
                WorkflowState.FETCHING_URL_INFO,
                "Fetching info from URL...",
            )
        return self._dispatch(
            ParallelSearch(self._require_paths(), query),
            WorkflowState.SEARCHING_CANDIDATES,
            "Searching YouTube and MusicBrainz...",
        )

    def _on_source_input(self, event: UserEvent) -> Optional[Command]:
        wf = self.workflow
        if isinstance(event, Select):
            video = self._pick(wf.videos, event.index)
            if video is None:
                return None
            wf.selected_video = video
            return self._search_releases_for(video)
        if isinstance(event, Skip):
            self._confirm_skip(event.index)
        elif isinstance(event, Back):
            self._reset()
        return None

    def _on_release_input(self, event: UserEvent) -> Optional[Command]:
        wf = self.workflow
        if isinstance(event, Select):
            release = self._pick(wf.releases, event.index)
            if release is None:
                return None
            wf.selected_release = release
            return self._dispatch(
                FetchTracklist(release.id),
                WorkflowState.FETCHING_TRACKLIST,
                "Fetching the track list...",
            )
        if isinstance(event, Skip):
            self._confirm_skip()
        elif isinstance(event, Back):
            self._set_state(WorkflowState.SELECTING_SOURCE)
        return None

    def _on_track_input(self, event: UserEvent) -> Optional[Command]:
        wf = self.workflow
        if isinstance(event, Select):
            track = self._pick(wf.tracks, event.index)
            if track is None or wf.selected_release is None:
                return None
            wf.selected_track = track
            wf.editor = TagEditor.from_selection(wf.selected_release, track)
            self._set_state(WorkflowState.EDITING_TAGS)
        elif isinstance(event, Back):
            self._set_state(WorkflowState.SELECTING_RELEASE)
        return None

    def _on_tag_input(self, event: UserEvent) -> Optional[Command]:
        wf = self.workflow
        editor = wf.editor
        if editor is None:
            return None
        if isinstance(event, FocusNext):
            editor.focus_next()
        elif isinstance(event, FocusPrev):
            editor.focus_prev()
        elif isinstance(event, Back):
            wf.editor = None
            self._set_state(WorkflowState.SELECTING_TRACK)
        elif isinstance(event, (Submit, Confirm)):
            if isinstance(event, Submit):
                editor.set_value(event.text)
            tags = editor.confirm()
            if tags is not None:
                wf.tags = tags
                return self._dispatch(
                    DownloadTagged(
                        self._require_paths(), wf.selected_video, wf.selected_release, tags
                    ),
                    WorkflowState.DOWNLOADING,
                    "Fetching audio, cover art and lyrics...",
                )
        return None

    def _on_skip_confirmation(self, event: UserEvent) -> Optional[Command]:
        if isinstance(event, Confirm):
            return self._dispatch(
                DownloadTagless(self._require_paths(), self.workflow.selected_video),
                WorkflowState.DOWNLOADING,
                "Downloading without tags...",
            )
        if isinstance(event, Decline):
            self._set_state(WorkflowState.SELECTING_SOURCE)
        return None

    def _on_result_screen_input(self, event: UserEvent) -> Optional[Command]:
        if self.workflow.fatal:
            self.quitting = True
        else:
            self._reset()
        return None
