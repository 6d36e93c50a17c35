"""
Turns commands into background tasks and their results into messages.
"""

import asyncio
import logging
from contextlib import suppress
from typing import Callable, Optional

from musicdl_cli.exceptions import LookupFailedError, MusicDlError, ToolTimeoutError

from .commands import Command, Services
from .events import Completion, Event

log = logging.getLogger(__name__)


class CommandDispatcher:
    """
    Runs one command at a time as an asyncio task.

    Every dispatched command posts exactly one `Completion` through `post`.
    Failures never escape the task: they are converted to typed errors and
    carried in the message.
    """

    def __init__(self, services: Services, post: Callable[[Event], None]):
        """
        Args:
            services: The collaborators handed to each command.
            post: Delivers a message back into the controller's event queue.
        """
        self.services = services
        self.post = post
        self._task: Optional[asyncio.Task] = None
        self._command: Optional[Command] = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> Optional[Command]:
        return self._command if self.busy else None

    def dispatch(self, command: Command) -> asyncio.Task:
        """
        Starts `command` in the background.

        Raises:
            RuntimeError: If a previous command has not finished yet.
        """
        if self.busy:
            raise RuntimeError(
                f"Cannot dispatch {type(command).__name__}: "
                f"{type(self._command).__name__} is still running."
            )
        log.debug(f"Dispatching {type(command).__name__}")
        self._command = command
        self._task = asyncio.create_task(
            self._execute(command), name=f"musicdl-{type(command).__name__}"
        )
        return self._task

    async def _execute(self, command: Command) -> Completion:
        try:
            value = await command.run(self.services)
        except MusicDlError as e:
            message = command.failed(e)
        except asyncio.TimeoutError:
            message = command.failed(ToolTimeoutError(command.label))
        except Exception as e:
            log.debug(f"{command.label} failed unexpectedly", exc_info=True)
            message = command.failed(LookupFailedError(f"{command.label} failed: {e}"))
        else:
            message = command.completed(value)

        if message.ok:
            log.debug(f"{type(command).__name__} completed")
        else:
            log.info(f"{type(command).__name__} failed: {message.error}")
        self.post(message)
        return message

    async def shutdown(self) -> None:
        """Cancels the running command and waits for its cleanup to finish."""
        if self._task and not self._task.done():
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            log.debug("Cancelled in-flight command.")
        self._task = None
        self._command = None
