"""
Everything that enters the wizard's event queue.

User events come from the terminal, completion messages from background
commands. Both are immutable values; nothing else crosses between the
background tasks and the controller.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from musicdl_cli.exceptions import MusicDlError
from musicdl_cli.models.candidate import Candidate


class Event:
    """Base class for everything the controller consumes."""


class UserEvent(Event):
    """An event caused by user input."""


@dataclass(frozen=True)
class Submit(UserEvent):
    """Enter pressed with text in the input buffer."""

    text: str


@dataclass(frozen=True)
class Select(UserEvent):
    """A list item chosen by its zero-based index."""

    index: int


@dataclass(frozen=True)
class Skip(UserEvent):
    """Skip metadata lookup and download without tags."""

    index: Optional[int] = None


@dataclass(frozen=True)
class Back(UserEvent):
    pass


@dataclass(frozen=True)
class Confirm(UserEvent):
    pass


@dataclass(frozen=True)
class Decline(UserEvent):
    pass


@dataclass(frozen=True)
class FocusNext(UserEvent):
    pass


@dataclass(frozen=True)
class FocusPrev(UserEvent):
    pass


@dataclass(frozen=True)
class AnyKey(UserEvent):
    """Input with no other meaning in the current screen."""


@dataclass(frozen=True)
class Cancel(Event):
    """Quit immediately, from any state."""


@dataclass(frozen=True)
class Resize(Event):
    width: int
    height: int


@dataclass(frozen=True)
class Completion(Event):
    """
    The single message a dispatched command posts when it finishes.

    Carries either a success value or an error, never both.
    """

    value: Any = None
    error: Optional[MusicDlError] = None

    def __post_init__(self):
        if (self.value is None) == (self.error is None):
            raise ValueError(
                f"{type(self).__name__} needs exactly one of value or error."
            )

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SearchResults:
    videos: Tuple[Candidate, ...]
    releases: Tuple[Candidate, ...]


class DependenciesChecked(Completion):
    """value: ToolPaths"""


class URLInfoFetched(Completion):
    """value: Candidate (video)"""


class SearchFinished(Completion):
    """value: SearchResults"""


class ReleasesFound(Completion):
    """value: list of release Candidates"""


class TracklistFetched(Completion):
    """value: list of track Candidates"""


class DownloadFinished(Completion):
    """value: DownloadResult"""
