"""
Core recording engine.

The `SessionController` is the state machine that reacts to stream events. It
consults the `FilterSet` and the one-shot `SaveIntent` to decide which completed
tracks to persist, and uses `ConnectionState` to decide between reconnecting
and giving up.
"""

from .connection import ConnectionState, ReconnectDecision
from .filter_set import FilterSet
from .notifier import LoopNotifier, Notifier
from .save_intent import SaveIntent
from .session_controller import SessionController, SessionState, StopReason

__all__ = [
    "ConnectionState",
    "FilterSet",
    "LoopNotifier",
    "Notifier",
    "ReconnectDecision",
    "SaveIntent",
    "SessionController",
    "SessionState",
    "StopReason",
]
