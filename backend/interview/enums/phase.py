"""
Interview lifecycle phase enumeration.

Rules:
- This enum defines ONLY the lifecycle phases.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class Phase(str, Enum):
    """
    Lifecycle of one voice interview.

    IDLE -> CONNECTING -> ACTIVE -> CLOSING -> CLOSED

    A failed start goes CONNECTING -> CLOSING -> CLOSED without ever
    reaching ACTIVE. A CLOSED session accepts a new start like IDLE.
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    ACTIVE = "ACTIVE"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"
