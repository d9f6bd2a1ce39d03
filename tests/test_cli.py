import asyncio
import io
import json
import logging
import threading

from rich.console import Console

from icerip.cli.console_notifier import ConsoleNotifier, handle_command
from icerip.cli.formatters import format_error_with_suggestions
from icerip.core.notifier import LoopNotifier
from icerip.exceptions import ReconnectExhaustedError
from icerip.utils.structured_logger import create_recorder_logger

from .fakes import RecordingNotifier, settle


def make_console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=120, force_terminal=False), buffer


async def test_enter_requests_a_save(make_controller, notifier):
    controller = make_controller(filter_text="never")
    await controller.start()

    keep_going = handle_command("\n", controller, asyncio.get_running_loop())

    assert keep_going
    assert controller.save_intent.get()
    assert notifier.intents[-1] is True


async def test_filter_command_splits_on_semicolons(make_controller):
    controller = make_controller()

    handle_command("f Daft Punk; Air ;", controller, asyncio.get_running_loop())

    assert controller.filters.phrases == ["Daft Punk", "Air"]
    assert controller.config.filter_text.splitlines() == [" Daft Punk", " Air ", ""]


async def test_bare_f_clears_filters(make_controller):
    controller = make_controller(filter_text="Air")

    handle_command("f", controller, asyncio.get_running_loop())

    assert controller.filters.is_empty()


async def test_quit_stops_the_session_from_another_thread(make_controller, stream_client):
    controller = make_controller()
    await controller.start()
    loop = asyncio.get_running_loop()

    keep_going = await asyncio.to_thread(handle_command, "q", controller, loop)
    await settle()

    assert not keep_going
    assert not controller.running
    assert stream_client.session.stop_calls == 1


async def test_unknown_command_is_reported(make_controller, caplog):
    caplog.set_level(logging.INFO, logger="icerip")
    controller = make_controller()

    assert handle_command("xyzzy", controller, asyncio.get_running_loop())
    assert "Unknown command" in caplog.text


def test_console_notifier_deduplicates_status_and_intent():
    console, buffer = make_console()
    notifier = ConsoleNotifier(console)

    notifier.on_status("Connected!")
    notifier.on_status("Connected!")
    notifier.on_save_intent_changed(True)
    notifier.on_save_intent_changed(True)
    notifier.on_save_intent_changed(False)

    output = buffer.getvalue()
    assert output.count("Connected!") == 1
    assert output.count("Saving currently playing song") == 1
    assert output.count("Press Enter") == 1


def test_console_notifier_escapes_markup_in_titles():
    console, buffer = make_console()

    ConsoleNotifier(console).on_status("Now Playing: [bold]Fake[/bold] - Song")

    assert "[bold]Fake[/bold]" in buffer.getvalue()


def test_console_notifier_logs_lines(caplog):
    caplog.set_level(logging.INFO, logger="icerip")
    console, buffer = make_console()

    ConsoleNotifier(console).on_log("Connected!", is_also_status=True)

    assert "Connected!" in caplog.text
    assert "Connected!" in buffer.getvalue()


async def test_loop_notifier_forwards_to_loop_thread():
    inner = RecordingNotifier()
    seen_threads = []
    inner_on_status = inner.on_status

    def on_status(text):
        seen_threads.append(threading.get_ident())
        inner_on_status(text)

    inner.on_status = on_status
    notifier = LoopNotifier(inner)

    def from_worker():
        notifier.on_status("one")
        notifier.on_log("two", True)
        notifier.on_save_intent_changed(True)

    await asyncio.to_thread(from_worker)
    await settle()

    assert inner.statuses == ["one"]
    assert inner.logs == [("two", True)]
    assert inner.intents == [True]
    assert seen_threads == [threading.get_ident()]


async def test_loop_notifier_runs_inline_on_owner_thread():
    inner = RecordingNotifier()

    LoopNotifier(inner).on_status("now")

    assert inner.statuses == ["now"]


def test_structured_logger_writes_json_lines(tmp_path):
    base, recorder = create_recorder_logger(tmp_path / "logs", enable_json=True)
    recorder.session_started("http://radio.example.com/", 2, 5)
    recorder.track_saved("A - B", "/music/A - B.mp3", 2 * 1024 * 1024)
    recorder.session_stopped("user")
    path = base.json_path
    base.close()

    entries = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]

    assert [e["event"] for e in entries] == [
        "session_started",
        "track_saved",
        "session_stopped",
    ]
    assert entries[1]["size_mb"] == 2.0
    assert len({e["session_id"] for e in entries}) == 1


def test_structured_logger_without_directory_writes_nothing():
    base, recorder = create_recorder_logger(None, enable_json=True)

    recorder.filter_matched("A - B")

    assert base.json_path is None


def test_error_panel_includes_suggestions():
    console, buffer = make_console()

    console.print(format_error_with_suggestions(ReconnectExhaustedError("gone")))

    output = buffer.getvalue()
    assert "ReconnectExhaustedError: gone" in output
    assert "--max-reconnects" in output
