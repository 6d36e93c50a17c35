"""
Structured logging system for better log analysis and debugging.
Provides JSON-formatted logs with context and metadata, plus the setup of the
plain-text diagnostic log.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "musicdl_cli"


def configure_logging(log_dir: Path, verbose: int = 0, console: Console | None = None) -> None:
    """
    Sends the application's log records to `log_dir/debug.log`.

    The wizard owns the terminal, so console logging is only enabled with
    -vv, through a RichHandler.
    """
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(logging.DEBUG)
    log.propagate = False
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_dir / "debug.log", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
    )
    log.addHandler(file_handler)

    if verbose >= 2:
        log.addHandler(
            RichHandler(
                console=console,
                level=logging.DEBUG,
                rich_tracebacks=True,
                show_path=False,
                markup=False,
            )
        )


class StructuredLogger:
    """
    Enhanced logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("musicdl_cli", log_dir=dirs.logs)
        logger.info("state_changed", old="awaiting_query", new="searching_candidates")
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None

        self._logger = logging.getLogger(name)

        self._json_file = None
        self.json_log_path: Path | None = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.json_log_path = log_dir / f"workflow_{timestamp}.jsonl"
            self._json_file = open(self.json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        parts = [f"[{event}]"]
        for key, value in context.items():
            parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except OSError as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._log(logging.INFO, event, **context)

    def error(self, event: str, **context) -> None:
        self._log(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class WorkflowLogger:
    """Specialized logger for wizard events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def state_changed(self, old: str, new: str) -> None:
        self.logger.debug("state_changed", old=old, new=new)

    def command_dispatched(self, command: str, state: str) -> None:
        self.logger.info("command_dispatched", command=command, state=state)

    def download_completed(self, path: str, has_lyrics: bool, has_cover: bool) -> None:
        self.logger.info(
            "download_completed", path=path, has_lyrics=has_lyrics, has_cover=has_cover
        )

    def download_failed(self, error_type: str, error: str) -> None:
        self.logger.error("download_failed", error_type=error_type, error=error)

    def workflow_failed(self, state: str, error_type: str, error: str) -> None:
        self.logger.error("workflow_failed", state=state, error_type=error_type, error=error)
