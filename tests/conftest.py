from pathlib import Path

import pytest

from icerip.core.session_controller import SessionController
from icerip.models.config import RecorderConfig

from .fakes import STREAM_URL, FakeStreamClient, RecordingNotifier


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def stream_client() -> FakeStreamClient:
    return FakeStreamClient()


@pytest.fixture
def make_controller(tmp_path: Path, notifier, stream_client):
    """Builds a controller recording into `tmp_path` with a fake stream client."""

    def _make(
        filter_text: str = "",
        max_reconnect_attempts: int = 2,
        stream_url: str = STREAM_URL,
        save_path: Path | str | None = None,
        persister=None,
    ) -> SessionController:
        config = RecorderConfig(
            filter_text=filter_text,
            max_reconnect_attempts=max_reconnect_attempts,
            stream_url=stream_url,
            save_path=str(tmp_path if save_path is None else save_path),
        )
        return SessionController(config, stream_client, notifier, persister=persister)

    return _make
