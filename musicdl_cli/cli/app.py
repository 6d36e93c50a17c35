"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from musicdl_cli import __version__
from musicdl_cli.api.client import MetadataAPIClient
from musicdl_cli.core.commands import Services
from musicdl_cli.exceptions import DependencyMissingError, MusicDlError
from musicdl_cli.media.tools import ToolAdapter, locate_dependencies
from musicdl_cli.models.config import AppConfig
from musicdl_cli.storage.app_dirs import AppDirs
from musicdl_cli.storage.config_manager import ConfigManager
from musicdl_cli.utils.structured_logger import (
    LOGGER_NAME,
    StructuredLogger,
    configure_logging,
)

from .formatters import print_config
from .session import WizardSession

console = Console()
log = logging.getLogger(LOGGER_NAME)

app = typer.Typer(
    name="musicdl",
    help=(
        "An interactive wizard that finds a song on YouTube, tags it from"
        " MusicBrainz and saves it as FLAC with cover art and lyrics."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "musicdl-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def build_services(config: AppConfig, api: MetadataAPIClient) -> Services:
    """Wires the real tool adapter, API client and directories together."""
    dirs = AppDirs(config.app_dir).ensure()

    def tool_factory(paths) -> ToolAdapter:
        return ToolAdapter(
            paths,
            timeout=config.tool_timeout,
            download_timeout=config.download_timeout,
        )

    return Services(
        config=config,
        dirs=dirs,
        api=api,
        tool_factory=tool_factory,
        locate=locate_dependencies,
    )


def _run_wizard(verbose: int, query: Optional[str]) -> None:
    config = ConfigManager(CONFIG_FILE).load_config({"verbose": verbose})
    dirs = AppDirs(config.app_dir).ensure()
    configure_logging(dirs.logs, verbose=config.verbose, console=console)
    log.info(f"musicdl {__version__} starting, output directory {dirs.output}")

    async def _wizard_async() -> int:
        async with MetadataAPIClient(
            config.user_agent, timeout=config.http_timeout
        ) as api:
            with StructuredLogger(
                f"{LOGGER_NAME}.workflow", log_dir=dirs.logs, enable_json=verbose > 0
            ) as events:
                events.set_session_context(version=__version__)
                session = WizardSession(
                    build_services(config, api),
                    console,
                    initial_query=query,
                    structured_logger=events,
                )
                return await session.run()

    try:
        exit_code = asyncio.run(_wizard_async())
    except KeyboardInterrupt:
        # Only reachable before the wizard installs its own SIGINT handler.
        console.print("\n[yellow]Cancelled.[/yellow]")
        exit_code = 0
    if exit_code:
        raise typer.Exit(code=exit_code)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v debug log file, -vv console).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """musicdl: search, tag and download music as FLAC."""
    if version:
        console.print(f"[bold]musicdl[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    ctx.obj = {"verbose": verbose}

    if show_config:
        config = ConfigManager(CONFIG_FILE).load_config()
        config_data = {key: getattr(config, key) for key in sorted(AppConfig.get_ini_keys())}
        source = CONFIG_FILE if CONFIG_FILE.is_file() else Path("(defaults)")
        print_config(source, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        _run_wizard(verbose, None)


@app.command()
def run(
    ctx: typer.Context,
    query: Optional[str] = typer.Argument(
        None, help="Search text or URL to submit right away."
    ),
):
    """Start the interactive wizard."""
    verbose = ctx.obj.get("verbose", 0) if ctx.obj else 0
    _run_wizard(verbose, query)


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing config file without asking."
    ),
):
    """Write a configuration file with the default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(CONFIG_FILE).save_new_config()
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready! Start the wizard with: [cyan]musicdl[/cyan]")


@app.command()
def diagnose():
    """Check the external tools, configuration and connectivity."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False

    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[yellow]![/] No config file; defaults are used."
            " Run [cyan]musicdl init[/cyan] to create one."
        )
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        console.print("[green]✓[/] Configuration is valid.")
    except MusicDlError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        config = AppConfig()
        issues_found = True

    try:
        paths = locate_dependencies()
        console.print(f"[green]✓[/] yt-dlp: [dim]{paths.ytdlp}[/dim]")
        console.print(f"[green]✓[/] ffmpeg: [dim]{paths.ffmpeg}[/dim]")
    except DependencyMissingError as e:
        console.print(f"[red]✗ {e}[/red]")
        issues_found = True

    console.print("\n[dim]Testing connectivity to MusicBrainz...[/dim]")

    async def test_connection():
        import aiohttp

        try:
            timeout = aiohttp.ClientTimeout(total=config.http_timeout)
            headers = {"User-Agent": config.user_agent}
            async with (
                aiohttp.ClientSession(timeout=timeout, headers=headers) as session,
                session.get("https://musicbrainz.org/ws/2/", params={"fmt": "json"}) as resp,
            ):
                if resp.status < 500:
                    console.print("[green]✓[/] Successfully connected to MusicBrainz.")
                    return True
                console.print(
                    f"[red]✗ Could not connect to MusicBrainz (Status: {resp.status}).[/red]"
                )
                return False
        except Exception as e:
            console.print(f"[red]✗ Connection test failed: {e}[/red]")
            return False

    if not asyncio.run(test_connection()):
        issues_found = True
    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
