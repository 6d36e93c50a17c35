"""
The wizard's event loop.

One asyncio queue receives terminal lines, signals and command completions;
each item is applied to the controller in turn and the screen is redrawn.
"""

import asyncio
import logging
import signal
from typing import Optional

from rich.console import Console

from musicdl_cli.core.commands import Command, Services
from musicdl_cli.core.controller import PipelineController, WorkflowState
from musicdl_cli.core.dispatcher import CommandDispatcher
from musicdl_cli.core.events import Cancel, DownloadFinished, Event, Resize, Submit
from musicdl_cli.utils.structured_logger import StructuredLogger, WorkflowLogger

from .formatters import render_screen
from .terminal import InputLine, TerminalInput, parse_input

log = logging.getLogger(__name__)


class WizardSession:
    """Runs one interactive wizard until the user quits."""

    def __init__(
        self,
        services: Services,
        console: Console,
        initial_query: Optional[str] = None,
        structured_logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            services: Collaborators for the dispatched commands.
            console: Where screens are drawn.
            initial_query: Submitted automatically once the tools are found.
            structured_logger: Optional JSONL event log.
        """
        self.services = services
        self.console = console
        self.initial_query = initial_query
        self.events = WorkflowLogger(structured_logger) if structured_logger else None

        self.queue: asyncio.Queue = asyncio.Queue()
        self.controller = PipelineController(
            width=console.size.width, height=console.size.height
        )
        self.dispatcher = CommandDispatcher(services, self.post)

    def post(self, item: object) -> None:
        self.queue.put_nowait(item)

    def render(self) -> None:
        self.console.clear()
        self.console.print(render_screen(self.controller))
        if not self.controller.waiting:
            self.console.print("> ", end="")

    def _dispatch(self, command: Optional[Command]) -> None:
        if command is None:
            return
        if self.events:
            self.events.command_dispatched(type(command).__name__, self.controller.state.value)
        self.dispatcher.dispatch(command)

    def _translate(self, item: object) -> list[Event]:
        if isinstance(item, InputLine):
            return parse_input(self.controller.state, item.text)
        if isinstance(item, Event):
            return [item]
        log.debug(f"Ignoring unknown queue item {item!r}")
        return []

    def apply(self, event: Event) -> None:
        """Feeds one event to the controller and dispatches what it asks for."""
        before = self.controller.state
        command = self.controller.handle(event)
        after = self.controller.state

        if self.events:
            if before is not after:
                self.events.state_changed(before.value, after.value)
            if isinstance(event, DownloadFinished):
                if event.ok:
                    result = event.value
                    self.events.download_completed(
                        str(result.path), result.has_lyrics, result.has_cover
                    )
                else:
                    self.events.download_failed(type(event.error).__name__, str(event.error))
            elif after is WorkflowState.SHOWING_ERROR and before is not after:
                error = self.controller.workflow.error
                self.events.workflow_failed(before.value, type(error).__name__, str(error))

        self._dispatch(command)

        if (
            self.initial_query
            and before is WorkflowState.CHECKING_DEPENDENCIES
            and after is WorkflowState.AWAITING_QUERY
        ):
            self.post(Submit(self.initial_query))
            self.initial_query = None

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> list:
        installed = []
        handlers = [(signal.SIGINT, lambda: self.post(Cancel()))]
        if hasattr(signal, "SIGWINCH"):
            handlers.append(
                (
                    signal.SIGWINCH,
                    lambda: self.post(Resize(*self.console.size)),
                )
            )
        for sig, callback in handlers:
            try:
                loop.add_signal_handler(sig, callback)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no signal handler support.
                pass
        return installed

    async def run(self) -> int:
        """
        Runs the wizard.

        Returns:
            The process exit code: 1 if the wizard stopped on a fatal error.
        """
        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop)
        reader = TerminalInput(loop, self.post)
        reader.start()

        try:
            self._dispatch(self.controller.start())
            while not self.controller.quitting:
                self.render()
                item = await self.queue.get()
                for event in self._translate(item):
                    self.apply(event)
                    if self.controller.quitting:
                        break
        finally:
            await self.dispatcher.shutdown()
            for sig in installed:
                loop.remove_signal_handler(sig)

        self.console.print()
        return 1 if self.controller.workflow.fatal else 0
