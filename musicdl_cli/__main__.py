"""
Console entry point: runs the typer app and turns application errors that
escape it into an error panel and exit status 1.
"""

import logging
import sys

from rich.console import Console

from musicdl_cli.cli.app import CONFIG_FILE, app
from musicdl_cli.cli.formatters import format_error_with_suggestions
from musicdl_cli.exceptions import ConfigurationError, MusicDlError
from musicdl_cli.utils.structured_logger import LOGGER_NAME


def main() -> None:
    log = logging.getLogger(LOGGER_NAME)
    console = Console()

    try:
        app()
    except ConfigurationError as e:
        console.print(format_error_with_suggestions(e, {"config file": str(CONFIG_FILE)}))
        sys.exit(1)
    except MusicDlError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(1)
    except Exception as e:
        log.debug("Unhandled error outside the wizard", exc_info=True)
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        sys.exit(1)


if __name__ == "__main__":
    main()
