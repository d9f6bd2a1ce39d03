"""
Connection bookkeeping for a recording session: link status, whether the stream
ever delivered metadata, and the bounded reconnection counter.
"""

import logging
from enum import Enum

log = logging.getLogger(__name__)


class ReconnectDecision(Enum):
    """Outcome of recording a failed connection."""

    RETRY = "retry"
    GIVE_UP = "give_up"


class ConnectionState:
    """
    Tracks the link and decides whether a failure is worth another attempt.

    A session that never succeeded is not retried: the first failure means the
    source is malformed or unreachable. Once it has succeeded, up to
    `max_reconnect_attempts` consecutive failures are retried.
    """

    def __init__(self, max_reconnect_attempts: int = 0):
        if max_reconnect_attempts < 0:
            raise ValueError("max_reconnect_attempts cannot be negative")
        self.max_reconnect_attempts = max_reconnect_attempts
        self.connected = False
        self.ever_succeeded = False
        self.reconnect_attempts = 0

    def on_connected(self) -> None:
        """The stream delivered real data: the link is good."""
        self.connected = True
        self.ever_succeeded = True
        self.reconnect_attempts = 0

    def on_disconnected(self) -> None:
        self.connected = False

    def record_attempt(self) -> ReconnectDecision:
        """Records a failure and returns whether to reconnect."""
        if not self.ever_succeeded:
            return ReconnectDecision.GIVE_UP

        if self.reconnect_attempts >= self.max_reconnect_attempts:
            log.debug(
                f"Reconnect ceiling reached ({self.reconnect_attempts}/"
                f"{self.max_reconnect_attempts})."
            )
            return ReconnectDecision.GIVE_UP

        self.reconnect_attempts += 1
        return ReconnectDecision.RETRY

    def reset(self) -> None:
        self.connected = False
        self.ever_succeeded = False
        self.reconnect_attempts = 0

    def __repr__(self) -> str:
        return (
            f"ConnectionState(connected={self.connected}, "
            f"ever_succeeded={self.ever_succeeded}, "
            f"reconnect_attempts={self.reconnect_attempts}/"
            f"{self.max_reconnect_attempts})"
        )
