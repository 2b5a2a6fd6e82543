"""
Why an interview ended.

Carried on the state for the UI and the logs; it never drives transitions.
"""

from __future__ import annotations

from enum import Enum


class EndReason(str, Enum):
    """Terminal cause recorded when a session enters CLOSING."""

    USER_STOP = "USER_STOP"
    COUNTDOWN_ELAPSED = "COUNTDOWN_ELAPSED"
    REMOTE_CLOSED = "REMOTE_CLOSED"
    REMOTE_ERROR = "REMOTE_ERROR"
    STARTUP_FAILED = "STARTUP_FAILED"
