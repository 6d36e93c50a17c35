"""
Application directory layout and the per-attempt scratch area.
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from musicdl_cli.utils.path import create_dir

log = logging.getLogger(__name__)

DOWNLOADS_DIR = "downloads"
TEMP_DIR = "temp"
LOGS_DIR = "logs"


@dataclass(frozen=True)
class AppDirs:
    """The persistent layout under the application root directory."""

    root: Path

    @property
    def output(self) -> Path:
        return self.root / DOWNLOADS_DIR

    @property
    def scratch(self) -> Path:
        return self.root / TEMP_DIR

    @property
    def logs(self) -> Path:
        return self.root / LOGS_DIR

    def ensure(self) -> "AppDirs":
        """Creates every directory of the layout."""
        for directory in (self.root, self.output, self.scratch, self.logs):
            create_dir(directory)
        return self

    def scratch_area(self) -> "ScratchArea":
        return ScratchArea(self.scratch)


class ScratchArea:
    """
    A uniquely named temporary directory for one download attempt.

    Usage:
        async with dirs.scratch_area() as scratch:
            audio = scratch / "audio.tmp"

    The directory is removed when the block exits for any reason, including
    task cancellation.
    """

    PREFIX = "musicdl_"

    def __init__(self, parent: Path):
        self.parent = parent
        self.path: Optional[Path] = None

    async def __aenter__(self) -> Path:
        # No await between creating the directory and recording it, so a
        # cancellation cannot leave it behind.
        create_dir(self.parent)
        self.path = Path(tempfile.mkdtemp(prefix=self.PREFIX, dir=self.parent))
        log.debug(f"Created scratch area {self.path}")
        return self.path

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        # Removal is synchronous so it still completes while the task is
        # being cancelled.
        if self.path is not None:
            shutil.rmtree(self.path, ignore_errors=True)
            log.debug(f"Removed scratch area {self.path}")
            self.path = None
        return False
