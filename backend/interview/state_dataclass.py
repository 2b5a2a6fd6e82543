"""
Authoritative interview controller state.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass

from constants import (
    CAPTURE_FRAME_SIZE_DEFAULT,
    CAPTURE_SAMPLE_RATE_HZ,
    COUNTDOWN_TICK_S,
    INTERVIEW_COUNTDOWN_S_DEFAULT,
    PLAYBACK_SAMPLE_RATE_HZ,
)
from interview.enums.end_reason import EndReason
from interview.enums.phase import Phase


@dataclass(frozen=True)
class InterviewState:
    """Immutable snapshot of all controller-owned state."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    phase: Phase = Phase.IDLE

    # ------------------------------------------------------------------
    # Countdown (whole seconds)
    # ------------------------------------------------------------------
    countdown_s: int = INTERVIEW_COUNTDOWN_S_DEFAULT
    remaining_s: int = INTERVIEW_COUNTDOWN_S_DEFAULT
    tick_interval_s: float = COUNTDOWN_TICK_S

    # ------------------------------------------------------------------
    # Interview parameters (set on StartRequested)
    # ------------------------------------------------------------------
    target_role: str = ""
    candidate_context: str = ""

    # ------------------------------------------------------------------
    # Remote session configuration
    # ------------------------------------------------------------------
    voice: str = "Zephyr"
    transcripts: bool = True
    capture_sample_rate_hz: int = CAPTURE_SAMPLE_RATE_HZ
    capture_frame_size: int = CAPTURE_FRAME_SIZE_DEFAULT
    playback_sample_rate_hz: int = PLAYBACK_SAMPLE_RATE_HZ

    # ------------------------------------------------------------------
    # UI-facing flags
    # ------------------------------------------------------------------
    # True from the first scheduled packet until the source set drains
    # or the agent is interrupted.
    agent_speaking: bool = False

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------
    last_error: str | None = None
    end_reason: EndReason | None = None
