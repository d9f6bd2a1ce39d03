import io
import re

from rich.console import Console

from icerip.cli import formatters
from icerip.models.stats import RECENT_TITLES, SessionStats


def test_record_save_keeps_only_recent_titles():
    stats = SessionStats()

    for n in range(25):
        stats.record_save(f"Band - Song {n}", 100)

    assert stats.tracks_saved == 25
    assert stats.bytes_saved == 2500
    assert len(stats.saved_titles) == RECENT_TITLES
    assert list(stats.saved_titles)[0] == "Band - Song 15"
    assert stats.saved_titles[-1] == "Band - Song 24"


def test_summary_panel_lists_recent_titles(monkeypatch):
    buffer = io.StringIO()
    monkeypatch.setattr(
        formatters, "Console", lambda: Console(file=buffer, width=120)
    )
    stats = SessionStats()
    for n in range(12):
        stats.record_save(f"Band - Song {n}", 1024)

    formatters.print_summary_panel(stats)

    output = buffer.getvalue()
    assert "Song 11" in output
    assert "Song 2" in output
    assert not re.search(r"Song 1\b", output)
