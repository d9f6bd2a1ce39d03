"""
Structured logging of recording events.
Mirrors session events to the console logger and, optionally, to a JSON-lines file.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Logger that writes events both to `logging` and to a `.jsonl` file.

    Usage:
        logger = StructuredLogger("icerip", log_dir=Path("logs"))
        logger.info("track_saved", title="Artist - Song", size_bytes=4_200_000)
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
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            json_log_path = log_dir / f"icerip_{timestamp}.jsonl"
            self._json_file = open(json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
        }

    @property
    def json_path(self) -> Path | None:
        return Path(self._json_file.name) if self._json_file else None

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all JSON entries."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        parts = [f"[{event}]"]
        parts.extend(f"{key}={value}" for key, value in context.items())
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
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
        except (OSError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _emit(self, level: int, event: str, **context) -> None:
        self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        self._emit(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._emit(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._emit(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._emit(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class RecorderLogger:
    """Specialized logger for recording session events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def session_started(self, url: str, filters: int, max_reconnect_attempts: int):
        self.logger.debug(
            "session_started",
            url=url,
            filters=filters,
            max_reconnect_attempts=max_reconnect_attempts,
        )

    def filter_matched(self, title: str):
        self.logger.debug("filter_matched", title=title)

    def track_saved(self, title: str, path: str, size_bytes: int):
        self.logger.debug(
            "track_saved",
            title=title,
            path=path,
            size_bytes=size_bytes,
            size_mb=round(size_bytes / (1024 * 1024), 2),
        )

    def track_save_failed(self, title: str, error: str):
        self.logger.warning("track_save_failed", title=title, error=error)

    def reconnect_scheduled(self, attempt: int, max_attempts: int):
        self.logger.debug(
            "reconnect_scheduled", attempt=attempt, max_attempts=max_attempts
        )

    def session_stopped(self, reason: str):
        self.logger.debug("session_stopped", reason=reason)


def create_recorder_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, RecorderLogger]:
    """
    Create the structured loggers for a recording run.

    Returns:
        Tuple of (base_logger, recorder_logger)
    """
    base = StructuredLogger("icerip.events", log_dir=log_dir, enable_json=enable_json)
    return base, RecorderLogger(base)
