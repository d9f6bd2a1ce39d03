"""
Renders session notifications on a Rich console, and feeds keyboard commands
back to the session controller.
"""

import asyncio
import logging
import sys
import threading

from rich.console import Console
from rich.markup import escape

from icerip.core.session_controller import SessionController

log = logging.getLogger("icerip")

KEYBOARD_HELP = (
    "[dim]Keys: [bold]Enter[/bold] save current song • "
    "[bold]f a; b[/bold] set filters • [bold]f[/bold] clear filters • "
    "[bold]q[/bold] stop[/dim]"
)


class ConsoleNotifier:
    """Prints status changes, log lines and the save-intent indicator."""

    def __init__(self, console: Console):
        self.console = console
        self._last_status: str | None = None
        self._last_intent: bool | None = None

    def on_status(self, text: str) -> None:
        if text == self._last_status:
            return
        self._last_status = text
        self.console.print(f"[bold cyan]»[/bold cyan] {escape(text)}")

    def on_log(self, text: str, is_also_status: bool = False) -> None:
        if text.strip():
            log.info(escape(text))
        if is_also_status:
            self.on_status(text)

    def on_save_intent_changed(self, value: bool) -> None:
        if value == self._last_intent:
            return
        self._last_intent = value
        if value:
            self.console.print("[green]● Saving currently playing song[/green]")
        else:
            self.console.print(
                "[dim]○ Press Enter to save the currently playing song[/dim]"
            )


def handle_command(
    line: str, controller: SessionController, loop: asyncio.AbstractEventLoop
) -> bool:
    """
    Applies one line of keyboard input. Returns False once the user asked to
    stop, True otherwise.
    """
    command = line.strip()
    lowered = command.lower()

    if lowered in ("q", "quit", "stop"):
        asyncio.run_coroutine_threadsafe(controller.stop(), loop)
        return False
    if lowered in ("", "s", "save"):
        controller.request_save()
    elif lowered == "f" or lowered.startswith("f "):
        phrases = command[1:].replace(";", "\n")
        controller.update_filters(phrases)
        count = len(controller.filters)
        log.info(f"Filters set ({count})." if count else "Filters cleared.")
    else:
        log.info(f"[yellow]Unknown command:[/] {escape(command)}")
    return True


def start_keyboard_listener(
    controller: SessionController, loop: asyncio.AbstractEventLoop
) -> threading.Thread | None:
    """
    Reads commands from stdin on a daemon thread. Returns None when stdin is
    not interactive.
    """
    if not sys.stdin or not sys.stdin.isatty():
        return None

    def _listen() -> None:
        try:
            for line in sys.stdin:
                if not handle_command(line, controller, loop):
                    break
        except (OSError, ValueError) as e:
            log.debug(f"Keyboard listener stopped: {e}")

    thread = threading.Thread(target=_listen, name="icerip-keyboard", daemon=True)
    thread.start()
    return thread
