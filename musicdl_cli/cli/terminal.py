"""
Line-based terminal input for the wizard.

A daemon thread reads stdin and hands each line to the event loop; the
session translates it into wizard events for the screen that is showing
when the line is processed.
"""

import asyncio
import logging
import sys
import threading
from dataclasses import dataclass
from typing import Callable, List, TextIO

from musicdl_cli.core.controller import WorkflowState
from musicdl_cli.core.events import (
    AnyKey,
    Back,
    Cancel,
    Confirm,
    Decline,
    Event,
    FocusNext,
    FocusPrev,
    Select,
    Skip,
    Submit,
)

log = logging.getLogger(__name__)

QUIT_COMMAND = "/quit"

_LIST_STATES = {
    WorkflowState.SELECTING_SOURCE,
    WorkflowState.SELECTING_RELEASE,
    WorkflowState.SELECTING_TRACK,
}
_YES = {"", "y", "yes"}
_NO = {"n", "no", "b", "back"}
_TAG_COMMANDS = {
    "/up": FocusPrev,
    "/down": FocusNext,
    "/back": Back,
}


@dataclass(frozen=True)
class InputLine:
    """One line typed by the user, not yet interpreted."""

    text: str


def parse_input(state: WorkflowState, line: str) -> List[Event]:
    """
    Translates a typed line into the events it means on the current screen.

    Lists take a 1-based number, 's' (optionally 's N') to skip metadata and
    'b' to go back. The tag editor takes a new value, an empty line to keep
    the current one, or one of /up, /down, /back, /clear.
    """
    text = line.rstrip("\r\n")
    command = text.strip().lower()

    if command == QUIT_COMMAND:
        return [Cancel()]

    if state is WorkflowState.AWAITING_QUERY:
        return [Submit(text.strip())]

    if state in _LIST_STATES:
        if command.isdigit():
            return [Select(int(command) - 1)]
        if command in ("b", "back"):
            return [Back()]
        if command == "s" or command.startswith("s "):
            index = command[1:].strip()
            return [Skip(int(index) - 1 if index.isdigit() else None)]
        return [AnyKey()]

    if state is WorkflowState.EDITING_TAGS:
        if not command:
            return [Confirm()]
        if command in _TAG_COMMANDS:
            return [_TAG_COMMANDS[command]()]
        if command == "/clear":
            return [Submit("")]
        return [Submit(text.strip())]

    if state is WorkflowState.CONFIRMING_SKIP_METADATA:
        if command in _YES:
            return [Confirm()]
        if command in _NO:
            return [Decline()]
        return [AnyKey()]

    return [AnyKey()]


class TerminalInput:
    """Reads stdin on a daemon thread so a pending read never blocks exit."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        post: Callable[[object], None],
        stream: TextIO | None = None,
    ):
        self._loop = loop
        self._post = post
        self._stream = stream or sys.stdin
        self._thread = threading.Thread(
            target=self._read_lines, name="musicdl-stdin", daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def _read_lines(self) -> None:
        while True:
            try:
                line = self._stream.readline()
            except (OSError, ValueError) as e:
                log.debug(f"stdin closed: {e}")
                line = ""
            if not line:
                # EOF: treat like Ctrl+D, quit the wizard.
                self._send(Cancel())
                return
            self._send(InputLine(line))

    def _send(self, item: object) -> None:
        try:
            self._loop.call_soon_threadsafe(self._post, item)
        except RuntimeError:
            # Loop already closed during shutdown.
            pass
