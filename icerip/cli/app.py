"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from icerip import __version__
from icerip.core.notifier import LoopNotifier
from icerip.core.session_controller import SessionController, StopReason
from icerip.exceptions import (
    IceRipError,
    InvalidDestinationError,
    InvalidStreamUrlError,
    ReconnectExhaustedError,
)
from icerip.media import Tagger, TrackPersister
from icerip.models.config import RecorderConfig
from icerip.models.stats import SessionStats
from icerip.storage.config_manager import ConfigManager
from icerip.stream.icy import IcyStreamClient
from icerip.utils.structured_logger import create_recorder_logger

from .console_notifier import KEYBOARD_HELP, ConsoleNotifier, start_keyboard_listener
from .formatters import print_config, print_summary_panel, print_validation_table

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("icerip")

app = typer.Typer(
    name="icerip",
    help=(
        "Record tracks from live internet radio streams, filtered by what's"
        " playing. Use 'icerip <command> --help' for more info."
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
    return base_dir.expanduser() / "icerip"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Live stream recorder CLI"""
    if version:
        console.print(f"[bold]icerip[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("icerip").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]icerip init[/cyan] first."
            )
            raise typer.Exit(code=1)
        config = ConfigManager(CONFIG_FILE).load_config()
        print_config(CONFIG_FILE, config.model_dump(include=RecorderConfig.get_ini_keys()))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def _filter_text(filters: list[str] | None, filters_file: Path | None) -> str | None:
    """Joins -f phrases and the lines of --filters-file; None if neither was given."""
    if not filters and filters_file is None:
        return None

    lines = list(filters or [])
    if filters_file is not None:
        try:
            lines.extend(filters_file.read_text(encoding="utf-8").splitlines())
        except (OSError, UnicodeDecodeError) as e:
            console.print(f"[red]✗ Could not read filters file {filters_file}: {e}[/red]")
            raise typer.Exit(code=1) from e
    return "\n".join(lines)


def _collect_options(
    url: str | None,
    output: Path | None,
    filters: list[str] | None,
    filters_file: Path | None,
    max_reconnects: int | None,
    tag: bool | None,
) -> dict:
    return {
        key: value
        for key, value in {
            "stream_url": url,
            "save_path": str(output.expanduser()) if output else None,
            "filter_text": _filter_text(filters, filters_file),
            "max_reconnect_attempts": max_reconnects,
            "tag_files": tag,
        }.items()
        if value is not None
    }


@app.command()
def init(
    url: str | None = typer.Argument(None, help="Stream URL to record by default."),
    output: Path | None = typer.Option(  # noqa: B008
        None, "-o", "--output", help="Directory saved tracks are written to."
    ),
    filters: list[str] | None = typer.Option(  # noqa: B008
        None, "-f", "--filter", help="A phrase to match (repeatable)."
    ),
    max_reconnects: int | None = typer.Option(
        None, "--max-reconnects", help="Reconnection attempts before giving up."
    ),
    force: bool = typer.Option(
        False, "--force", help="Overwrite an existing configuration without asking."
    ),
):
    """Write a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = _collect_options(url, output, filters, None, max_reconnects, None)
    config_manager = ConfigManager(CONFIG_FILE)
    config_manager.save_settings(settings)
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready to record! Try: [cyan]icerip record <URL> -o <DIR>[/cyan]")


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_validation_table(config)
    except IceRipError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


async def _record_async(
    config: RecorderConfig, json_log_dir: Path | None
) -> tuple[SessionController, bool]:
    """Runs one recording session. Returns the controller and whether it started."""
    base_logger, recorder_logger = create_recorder_logger(
        json_log_dir, enable_json=json_log_dir is not None
    )
    base_logger.set_session_context(stream_url=config.stream_url)
    persister = TrackPersister(
        config.file_extension, Tagger() if config.tag_files else None
    )
    controller = SessionController(
        config,
        IcyStreamClient(),
        LoopNotifier(ConsoleNotifier(console)),
        persister,
        SessionStats(),
        recorder_logger,
    )

    try:
        if not await controller.start():
            return controller, False

        console.print(KEYBOARD_HELP)
        start_keyboard_listener(controller, asyncio.get_running_loop())
        try:
            await controller.run()
        finally:
            await controller.stop()
            await controller.drain()
    finally:
        base_logger.close()

    return controller, True


@app.command(name="record")
def record_command(
    url: str | None = typer.Argument(
        None, help="Stream URL. Defaults to the last URL recorded."
    ),
    output: Path | None = typer.Option(  # noqa: B008
        None, "-o", "--output", help="Directory saved tracks are written to."
    ),
    filters: list[str] | None = typer.Option(  # noqa: B008
        None,
        "-f",
        "--filter",
        help="Save tracks whose 'Artist - Title' contains this phrase (repeatable).",
    ),
    filters_file: Path | None = typer.Option(  # noqa: B008
        None, "--filters-file", help="Read filter phrases from a file, one per line."
    ),
    max_reconnects: int | None = typer.Option(
        None, "--max-reconnects", help="Reconnection attempts before giving up."
    ),
    tag: bool | None = typer.Option(
        None, "--tag/--no-tag", help="Write artist/title ID3 tags to saved MP3s."
    ),
    json_log: Path | None = typer.Option(  # noqa: B008
        None, "--json-log", help="Directory for a JSON-lines log of session events."
    ),
    save_settings: bool = typer.Option(
        True,
        "--save-settings/--no-save-settings",
        help="Remember URL, directory and filters for next time.",
    ),
):
    """Record a stream, saving tracks that match your filters (or all tracks)."""
    cli_options = _collect_options(
        url, output, filters, filters_file, max_reconnects, tag
    )
    config_manager = ConfigManager(CONFIG_FILE)
    config = config_manager.load_config(cli_options)

    if not config.stream_url:
        console.print(
            "[red]✗ No stream URL provided.[/red] Use: [cyan]icerip record <URL>[/cyan]"
        )
        raise typer.Exit(code=1)

    console.print(
        f"[bold cyan]🎵 Recording[/bold cyan] {escape(config.stream_url)} "
        f"[dim]→ {escape(config.save_path or '?')}[/dim]"
    )
    controller, started = asyncio.run(_record_async(config, json_log))

    if save_settings:
        try:
            config_manager.save_config(controller.config)
        except IceRipError as e:
            log.warning(f"[yellow]Could not save settings:[/] {e}")

    if not started and controller.stop_reason is None:
        raise InvalidDestinationError(
            f"Save directory '{config.save_path}' is missing or not writable."
        )

    print_summary_panel(controller.stats, controller.stop_reason)

    if controller.stop_reason is StopReason.FIRST_CONNECT_FAILED:
        raise InvalidStreamUrlError(f"Could not record from '{config.stream_url}'.")
    if controller.stop_reason is StopReason.RECONNECT_EXHAUSTED:
        raise ReconnectExhaustedError(
            f"Gave up after {config.max_reconnect_attempts} reconnection attempts."
        )
