"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from icerip.core.filter_set import FilterSet
from icerip.core.session_controller import StopReason
from icerip.models.config import RecorderConfig
from icerip.models.stats import SessionStats
from icerip.utils.formatting import format_duration, format_size
from icerip.utils.path import is_valid_destination


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "InvalidStreamUrlError": [
            "• Check that the URL points at the stream itself, not a web page.",
            "• Playlist files (.pls/.m3u) must be opened to find the stream URL.",
            "• Only http:// and https:// streams are supported.",
        ],
        "InvalidDestinationError": [
            "• Create the save directory or pass another one with -o.",
            "• Make sure the directory is writable by your user.",
        ],
        "ReconnectExhaustedError": [
            "• The station may be down. Try again later.",
            "• Increase the retry ceiling with --max-reconnects.",
        ],
        "ConfigurationError": [
            "• Review the settings file shown by `icerip --show-config`.",
            "• Run `icerip init --force` to write a fresh configuration.",
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


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the stored configuration."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        if key == "filter_text":
            phrases = FilterSet(value).phrases
            value = ", ".join(phrases) if phrases else "(none: save every track)"
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{escape(str(config_path))}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: RecorderConfig):
    """Displays a summary of the validated settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    filters = FilterSet(config.filter_text)
    save_ok = is_valid_destination(config.save_path)

    table.add_row("Stream URL:", escape(config.stream_url) or "[yellow]not set[/yellow]")
    table.add_row(
        "Save Path:",
        f"[green]{escape(config.save_path)}[/green]"
        if save_ok
        else f"[red]{escape(config.save_path) or 'not set'} (invalid)[/red]",
    )
    table.add_row(
        "Filters:",
        f"{len(filters)} phrase(s)" if len(filters) else "None (save every track)",
    )
    table.add_row("Max Reconnects:", str(config.max_reconnect_attempts))
    table.add_row("Buffer Limit:", format_size(config.max_buffer_bytes))
    table.add_row("File Type:", f".{config.file_extension}")
    table.add_row("Tag Files:", "✓ Enabled" if config.tag_files else "✗ Disabled")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


STOP_TITLES = {
    None: ("🎵 [bold]Recording Finished[/bold]", "green"),
    StopReason.USER: ("🎵 [bold]Recording Finished[/bold]", "green"),
    StopReason.FIRST_CONNECT_FAILED: ("✗ [bold]Could Not Connect[/bold]", "red"),
    StopReason.RECONNECT_EXHAUSTED: ("⚠ [bold]Stream Lost[/bold]", "yellow"),
}


def print_summary_panel(stats: SessionStats, reason: StopReason | None = None):
    """Displays the final summary of a recording session."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("✓ Saved:", f"[bold green]{stats.tracks_saved}[/bold green]")
    if stats.tracks_skipped > 0:
        stats_table.add_row("○ Skipped:", f"[yellow]{stats.tracks_skipped}[/yellow]")
    if stats.save_failures > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.save_failures}[/bold red]")
    if stats.filter_matches > 0:
        stats_table.add_row("Filter Matches:", str(stats.filter_matches))
    if stats.reconnects > 0:
        stats_table.add_row("Reconnects:", f"[yellow]{stats.reconnects}[/yellow]")

    stats_table.add_row("", "")
    stats_table.add_row("Total Size:", f"[cyan]{format_size(stats.bytes_saved)}[/cyan]")
    stats_table.add_row(
        "Time Elapsed:", f"[blue]{format_duration(stats.elapsed_s)}[/blue]"
    )

    if stats.saved_titles:
        stats_table.add_row("", "")
        for title in stats.saved_titles:
            stats_table.add_row("", f"[dim]{escape(title)}[/dim]")

    title, border_color = STOP_TITLES.get(reason, STOP_TITLES[None])

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
