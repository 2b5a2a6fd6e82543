"""
Event definitions for the interview reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from audio.packets import AudioPacket


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (phase, event_type) pair is explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------
    START_REQUESTED = "START_REQUESTED"
    STOP_REQUESTED = "STOP_REQUESTED"

    # ------------------------------------------------------------------
    # Remote endpoint
    # ------------------------------------------------------------------
    OPENED = "OPENED"
    AUDIO_CHUNK = "AUDIO_CHUNK"
    INTERRUPTED = "INTERRUPTED"
    TRANSCRIPT = "TRANSCRIPT"
    CLOSED = "CLOSED"
    ERRORED = "ERRORED"

    # ------------------------------------------------------------------
    # Runtime-internal
    # ------------------------------------------------------------------
    STARTUP_FAILED = "STARTUP_FAILED"
    TIMER_TICK = "TIMER_TICK"
    PLAYBACK_DRAINED = "PLAYBACK_DRAINED"
    TEARDOWN_COMPLETE = "TEARDOWN_COMPLETE"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# User Actions
# =============================================================================

@dataclass(frozen=True)
class StartRequested(Event):
    """
    User asked to start an interview.

    target_role comes from the prior profile analysis; an empty role
    makes the start a no-op.
    """
    target_role: str
    candidate_context: str = ""


@dataclass(frozen=True)
class StopRequested(Event):
    """User asked to end the interview."""


# =============================================================================
# Remote Endpoint Events
# =============================================================================

@dataclass(frozen=True)
class Opened(Event):
    """Remote session acknowledged setup and is ready for audio."""


@dataclass(frozen=True)
class AudioChunk(Event):
    """One inbound packet of synthesized agent speech."""
    packet: AudioPacket


@dataclass(frozen=True)
class Interrupted(Event):
    """The remote agent was interrupted by the user speaking (barge-in)."""


@dataclass(frozen=True)
class Transcript(Event):
    """
    Optional transcription of either side of the conversation.

    role "user" is the candidate (input), "agent" is the interviewer (output).
    """
    role: Literal["user", "agent"]
    text: str


@dataclass(frozen=True)
class Closed(Event):
    """Remote connection closed."""
    reason: str | None = None


@dataclass(frozen=True)
class Errored(Event):
    """Remote send/receive failure."""
    reason: str


# =============================================================================
# Runtime-internal Events
# =============================================================================

@dataclass(frozen=True)
class StartupFailed(Event):
    """
    Device acquisition or connection open failed while CONNECTING.

    Emitted by the runtime; the original exception is re-raised from start().
    """
    reason: str


@dataclass(frozen=True)
class TimerTick(Event):
    """One countdown period elapsed."""


@dataclass(frozen=True)
class PlaybackDrained(Event):
    """The last scheduled agent audio finished playing naturally."""


@dataclass(frozen=True)
class TeardownComplete(Event):
    """Every release command of the CLOSING phase has been executed."""
