"""
Side-effect command definitions for the interview controller.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from audio.packets import AudioPacket

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    Stable discriminants used for logging and runtime dispatch.
    """

    # Startup (CONNECTING)
    ACQUIRE_CAPTURE = "ACQUIRE_CAPTURE"
    ACQUIRE_OUTPUT = "ACQUIRE_OUTPUT"
    OPEN_TRANSPORT = "OPEN_TRANSPORT"
    START_COUNTDOWN = "START_COUNTDOWN"

    # ACTIVE wiring
    START_CAPTURE = "START_CAPTURE"
    START_VOLUME_MONITOR = "START_VOLUME_MONITOR"

    # Playback
    SCHEDULE_PLAYBACK = "SCHEDULE_PLAYBACK"
    INTERRUPT_PLAYBACK = "INTERRUPT_PLAYBACK"

    # Transcript
    APPEND_TRANSCRIPT = "APPEND_TRANSCRIPT"

    # Teardown (CLOSING)
    CANCEL_COUNTDOWN = "CANCEL_COUNTDOWN"
    STOP_VOLUME_MONITOR = "STOP_VOLUME_MONITOR"
    RELEASE_CAPTURE = "RELEASE_CAPTURE"
    RELEASE_OUTPUT = "RELEASE_OUTPUT"
    CLOSE_TRANSPORT = "CLOSE_TRANSPORT"
    COMPLETE_TEARDOWN = "COMPLETE_TEARDOWN"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Startup Commands
# =============================================================================

@dataclass(frozen=True)
class AcquireCapture(Command):
    """Open the microphone (mono, sample_rate_hz) without streaming yet."""
    sample_rate_hz: int
    frame_size: int
    command_type: CommandType = CommandType.ACQUIRE_CAPTURE


@dataclass(frozen=True)
class AcquireOutput(Command):
    """Open the speaker (mono, sample_rate_hz) and build the scheduler."""
    sample_rate_hz: int
    command_type: CommandType = CommandType.ACQUIRE_OUTPUT


@dataclass(frozen=True)
class OpenTransport(Command):
    """
    Open the remote streaming session.

    Completes when the remote acknowledges setup; the runtime then
    dispatches Opened.
    """
    system_instruction: str
    voice: str
    transcripts: bool
    command_type: CommandType = CommandType.OPEN_TRANSPORT


@dataclass(frozen=True)
class StartCountdown(Command):
    """Arm the periodic countdown; the runtime injects TimerTick events."""
    interval_s: float
    command_type: CommandType = CommandType.START_COUNTDOWN


# =============================================================================
# ACTIVE Wiring Commands
# =============================================================================

@dataclass(frozen=True)
class StartCapture(Command):
    """Wire the capture pipeline's frames into the transport send path."""
    command_type: CommandType = CommandType.START_CAPTURE


@dataclass(frozen=True)
class StartVolumeMonitor(Command):
    """Begin animation-frame sampling of the capture level."""
    command_type: CommandType = CommandType.START_VOLUME_MONITOR


# =============================================================================
# Playback Commands
# =============================================================================

@dataclass(frozen=True)
class SchedulePlayback(Command):
    """Hand one inbound packet to the playback scheduler."""
    packet: AudioPacket
    command_type: CommandType = CommandType.SCHEDULE_PLAYBACK


@dataclass(frozen=True)
class InterruptPlayback(Command):
    """Stop all scheduled/playing agent audio now."""
    command_type: CommandType = CommandType.INTERRUPT_PLAYBACK


# =============================================================================
# Transcript Commands
# =============================================================================

@dataclass(frozen=True)
class AppendTranscript(Command):
    """Record a transcript fragment for post-call evaluation."""
    role: Literal["user", "agent"]
    text: str
    command_type: CommandType = CommandType.APPEND_TRANSCRIPT


# =============================================================================
# Teardown Commands
# =============================================================================

@dataclass(frozen=True)
class CancelCountdown(Command):
    """Stop the countdown timer."""
    command_type: CommandType = CommandType.CANCEL_COUNTDOWN


@dataclass(frozen=True)
class StopVolumeMonitor(Command):
    """Stop volume sampling and reset the published level."""
    command_type: CommandType = CommandType.STOP_VOLUME_MONITOR


@dataclass(frozen=True)
class ReleaseCapture(Command):
    """Stop and close the microphone stream."""
    command_type: CommandType = CommandType.RELEASE_CAPTURE


@dataclass(frozen=True)
class ReleaseOutput(Command):
    """Close the speaker stream."""
    command_type: CommandType = CommandType.RELEASE_OUTPUT


@dataclass(frozen=True)
class CloseTransport(Command):
    """Close the remote connection if still open."""
    command_type: CommandType = CommandType.CLOSE_TRANSPORT


@dataclass(frozen=True)
class CompleteTeardown(Command):
    """
    Emitted last in a teardown batch.

    The runtime answers with TeardownComplete once every earlier release
    command has run (successfully or not).
    """
    command_type: CommandType = CommandType.COMPLETE_TEARDOWN


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT


TEARDOWN_COMMANDS: tuple[Command, ...] = (
    CancelCountdown(),
    StopVolumeMonitor(),
    InterruptPlayback(),
    ReleaseCapture(),
    ReleaseOutput(),
    CloseTransport(),
    CompleteTeardown(),
)
