"""
Functions for formatting and displaying wizard screens in the console using Rich.
"""

from pathlib import Path
from typing import Any, Sequence

from rich import box
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from musicdl_cli import __version__
from musicdl_cli.core.controller import PipelineController, WorkflowState
from musicdl_cli.models.candidate import Candidate
from musicdl_cli.utils.formatting import format_duration, truncate

HEADER = f"🎵 musicdl v{__version__}"

_HELP = {
    WorkflowState.AWAITING_QUERY: "Enter: search | URL: download directly | /quit: exit",
    WorkflowState.SELECTING_SOURCE: "number: choose | s [number]: download without tags | b: back | /quit: exit",
    WorkflowState.SELECTING_RELEASE: "number: choose | s: skip metadata | b: back | /quit: exit",
    WorkflowState.SELECTING_TRACK: "number: choose | b: back | /quit: exit",
    WorkflowState.EDITING_TAGS: "text: replace value | Enter: keep/next | /up /down: move | /clear | /back",
    WorkflowState.CONFIRMING_SKIP_METADATA: "y/Enter: yes | n: no",
    WorkflowState.SHOWING_SUCCESS: "Press Enter to return to the start screen...",
    WorkflowState.SHOWING_ERROR: "Press Enter to return to the start screen...",
}

_LIST_TITLES = {
    WorkflowState.SELECTING_SOURCE: "Which source do you want to download?",
    WorkflowState.SELECTING_RELEASE: "Which release should the tags come from?",
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "DependencyMissingError": [
            "• Install yt-dlp and ffmpeg and make sure they are on your PATH.",
            "• Run `musicdl diagnose` to see what was found.",
        ],
        "ToolTimeoutError": [
            "• The operation took longer than its time budget.",
            "• Check your internet connection, or raise the timeouts in the config.",
        ],
        "LookupFailedError": [
            "• A search or metadata service could not be reached.",
            "• MusicBrainz may be rate-limiting; wait a moment and try again.",
        ],
        "EmptyResultError": [
            "• Try a different query or pick another release.",
            "• You can always download without tags from the source list.",
        ],
        "ExternalToolError": [
            "• yt-dlp or ffmpeg reported an error (output shown above).",
            "• Updating yt-dlp (`yt-dlp -U`) fixes most download failures.",
        ],
        "FileIntegrityError": [
            "• ffmpeg wrote a file that is not a valid FLAC.",
            "• Try another source video.",
        ],
        "ConfigurationError": [
            "• Fix the reported value in your config file.",
            "• Run `musicdl init --force` to write a fresh default config.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def _candidate_table(items: Sequence[Candidate], width: int) -> Table:
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 1), expand=True)
    table.add_column(style="bold magenta", justify="right", no_wrap=True)
    table.add_column()
    column_width = max(20, width - 12)
    for number, item in enumerate(items, start=1):
        description = item.descriptor
        if track := item.track_info():
            if track.length_ms:
                description += f" • {format_duration(track.length_ms // 1000)}"
        table.add_row(
            str(number),
            Text.assemble(
                (truncate(item.title, column_width), "bold cyan"),
                "\n",
                (truncate(description, column_width), "dim"),
            ),
        )
    return table


def _tag_editor_view(controller: PipelineController) -> RenderableType:
    editor = controller.workflow.editor
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold", justify="right")
    table.add_column()
    if editor is not None:
        for index, field in enumerate(editor.fields):
            marker = "▶" if editor.is_focused(index) else " "
            style = "bold cyan" if editor.is_focused(index) else ""
            table.add_row(f"{marker} {field.label}:", Text(field.value, style=style))
    return Group(Text("Check and edit the metadata:\n"), table)


def _body(controller: PipelineController) -> RenderableType:
    state = controller.state
    wf = controller.workflow

    if controller.waiting:
        return Text(f"⏳ {wf.status}", style="magenta")
    if state is WorkflowState.AWAITING_QUERY:
        return Text("Enter an artist and song title, or a YouTube URL:")
    if state in _LIST_TITLES:
        items = wf.videos if state is WorkflowState.SELECTING_SOURCE else wf.releases
        return Group(
            Text(_LIST_TITLES[state], style="bold"),
            _candidate_table(items, controller.width),
        )
    if state is WorkflowState.SELECTING_TRACK:
        title = wf.selected_release.title if wf.selected_release else ""
        return Group(
            Text(f"Choose a track from “{title}”", style="bold"),
            _candidate_table(wf.tracks, controller.width),
        )
    if state is WorkflowState.EDITING_TAGS:
        return _tag_editor_view(controller)
    if state is WorkflowState.CONFIRMING_SKIP_METADATA:
        title = wf.selected_video.title if wf.selected_video else ""
        return Text(
            "No metadata will be used.\n\n"
            f"Download “{title}” without tags, named after its title?"
        )
    if state is WorkflowState.SHOWING_SUCCESS and wf.result is not None:
        return Panel(
            Text.assemble(("✅ Download complete\n", "bold green"), wf.result.describe()),
            border_style="green",
            box=box.DOUBLE,
            expand=False,
        )
    if state is WorkflowState.SHOWING_ERROR and wf.error is not None:
        return format_error_with_suggestions(wf.error)
    return Text("")


def render_screen(controller: PipelineController) -> RenderableType:
    """Builds the full screen for the controller's current state."""
    help_text = _HELP.get(controller.state, "/quit: exit")
    if controller.state is WorkflowState.SHOWING_ERROR and controller.workflow.fatal:
        help_text = "Press Enter to exit..."
    return Group(
        Text(HEADER, style="bold white on purple"),
        Panel(_body(controller), border_style="purple", box=box.ROUNDED),
        Text(f"  {help_text}", style="dim"),
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )
