"""
Pure interview reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (phase, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from adapters.llm.prompts import PROMPT_VERSION, build_interview_instruction
from interview.commands import (
    TEARDOWN_COMMANDS,
    AcquireCapture,
    AcquireOutput,
    AppendTranscript,
    Command,
    InterruptPlayback,
    LogEvent,
    OpenTransport,
    SchedulePlayback,
    StartCapture,
    StartCountdown,
    StartVolumeMonitor,
)
from interview.enums.end_reason import EndReason
from interview.enums.phase import Phase
from interview.events import (
    AudioChunk,
    Closed,
    Errored,
    Event,
    Interrupted,
    Opened,
    PlaybackDrained,
    StartRequested,
    StartupFailed,
    StopRequested,
    TeardownComplete,
    TimerTick,
    Transcript,
)
from interview.state_dataclass import InterviewState

Result = tuple[InterviewState, tuple[Command, ...]]

# Phases in which the session holds (or is acquiring) resources.
_LIVE_PHASES = frozenset({Phase.CONNECTING, Phase.ACTIVE})

# Phases from which a new interview may start.
_STARTABLE_PHASES = frozenset({Phase.IDLE, Phase.CLOSED})


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: InterviewState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "phase": state.phase.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "agent_speaking": state.agent_speaking,
            "remaining_s": state.remaining_s,
            "details": details or {},
        }
    )


def _state_changed(
    old: InterviewState,
    new: InterviewState,
    event: Event,
    source: str,
) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {
            "from_phase": old.phase.value,
            "to_phase": new.phase.value,
            "source": source,
        },
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(state: InterviewState, event: Event, reason: str) -> Result:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _enter_closing(
    state: InterviewState,
    event: Event,
    end_reason: EndReason,
    error: str | None = None,
) -> Result:
    """
    Leave CONNECTING/ACTIVE and release everything.

    The teardown batch is the same regardless of cause; releasing a resource
    that was never acquired is a no-op in the runtime.
    """
    new_state = replace(
        state,
        phase=Phase.CLOSING,
        agent_speaking=False,
        end_reason=end_reason,
        last_error=error if error is not None else state.last_error,
    )
    details: dict[str, Any] = {"end_reason": end_reason.value}
    if error is not None:
        details["error"] = error

    return new_state, _logs_last(
        TEARDOWN_COMMANDS
        + (
            _log(new_state, event, "enter_closing", details),
            _state_changed(state, new_state, event, end_reason.value.lower()),
        )
    )


# =============================================================================
# Per-event handlers
# =============================================================================

def _on_start(state: InterviewState, event: StartRequested) -> Result:
    if state.phase not in _STARTABLE_PHASES:
        return _ignore(state, event, "session_already_running")

    target_role = event.target_role.strip()
    if not target_role:
        # No analysis result yet; starting is a no-op.
        return _ignore(state, event, "missing_target_role")

    new_state = replace(
        state,
        phase=Phase.CONNECTING,
        remaining_s=state.countdown_s,
        target_role=target_role,
        candidate_context=event.candidate_context,
        agent_speaking=False,
        last_error=None,
        end_reason=None,
    )

    return new_state, _logs_last((
        AcquireCapture(
            sample_rate_hz=state.capture_sample_rate_hz,
            frame_size=state.capture_frame_size,
        ),
        AcquireOutput(sample_rate_hz=state.playback_sample_rate_hz),
        OpenTransport(
            system_instruction=build_interview_instruction(
                target_role, event.candidate_context
            ),
            voice=state.voice,
            transcripts=state.transcripts,
        ),
        StartCountdown(interval_s=state.tick_interval_s),
        _log(
            new_state,
            event,
            "start_interview",
            {
                "target_role": target_role,
                "countdown_s": state.countdown_s,
                "prompt_version": PROMPT_VERSION,
            },
        ),
        _state_changed(state, new_state, event, "start_requested"),
    ))


def _on_opened(state: InterviewState, event: Opened) -> Result:
    if state.phase is not Phase.CONNECTING:
        return _ignore(state, event, "not_connecting")

    new_state = replace(state, phase=Phase.ACTIVE)
    return new_state, _logs_last((
        StartCapture(),
        StartVolumeMonitor(),
        _state_changed(state, new_state, event, "opened"),
    ))


def _on_audio_chunk(state: InterviewState, event: AudioChunk) -> Result:
    if state.phase is not Phase.ACTIVE:
        return _ignore(state, event, "not_active")

    new_state = replace(state, agent_speaking=True)
    commands: tuple[Command, ...] = (SchedulePlayback(packet=event.packet),)
    if not state.agent_speaking:
        commands += (_log(new_state, event, "agent_speaking_started"),)
    return new_state, commands


def _on_interrupted(state: InterviewState, event: Interrupted) -> Result:
    if state.phase is not Phase.ACTIVE:
        return _ignore(state, event, "not_active")

    new_state = replace(state, agent_speaking=False)
    return new_state, _logs_last((
        InterruptPlayback(),
        _log(new_state, event, "barge_in"),
    ))


def _on_playback_drained(state: InterviewState, event: PlaybackDrained) -> Result:
    if state.phase is not Phase.ACTIVE:
        return _ignore(state, event, "not_active")
    if not state.agent_speaking:
        return _ignore(state, event, "agent_not_speaking")

    new_state = replace(state, agent_speaking=False)
    return new_state, (_log(new_state, event, "agent_speaking_finished"),)


def _on_transcript(state: InterviewState, event: Transcript) -> Result:
    if state.phase is not Phase.ACTIVE:
        return _ignore(state, event, "not_active")
    if not event.text:
        return _ignore(state, event, "empty_transcript")

    return state, (AppendTranscript(role=event.role, text=event.text),)


def _on_timer_tick(state: InterviewState, event: TimerTick) -> Result:
    if state.phase not in _LIVE_PHASES:
        return _ignore(state, event, "countdown_not_running")

    remaining = max(0, state.remaining_s - 1)
    new_state = replace(state, remaining_s=remaining)
    if remaining == 0:
        return _enter_closing(new_state, event, EndReason.COUNTDOWN_ELAPSED)
    return new_state, ()


def _on_stop(state: InterviewState, event: StopRequested) -> Result:
    if state.phase not in _LIVE_PHASES:
        # Idempotent stop
        return _ignore(state, event, "no_live_session")
    return _enter_closing(state, event, EndReason.USER_STOP)


def _on_closed(state: InterviewState, event: Closed) -> Result:
    if state.phase not in _LIVE_PHASES:
        return _ignore(state, event, "no_live_session")
    return _enter_closing(state, event, EndReason.REMOTE_CLOSED)


def _on_errored(state: InterviewState, event: Errored) -> Result:
    if state.phase not in _LIVE_PHASES:
        return _ignore(state, event, "no_live_session")
    return _enter_closing(state, event, EndReason.REMOTE_ERROR, event.reason)


def _on_startup_failed(state: InterviewState, event: StartupFailed) -> Result:
    if state.phase is not Phase.CONNECTING:
        return _ignore(state, event, "not_connecting")
    return _enter_closing(state, event, EndReason.STARTUP_FAILED, event.reason)


def _on_teardown_complete(state: InterviewState, event: TeardownComplete) -> Result:
    if state.phase is not Phase.CLOSING:
        return _ignore(state, event, "not_closing")

    new_state = replace(state, phase=Phase.CLOSED, agent_speaking=False)
    return new_state, (
        _state_changed(state, new_state, event, "teardown_complete"),
    )


# =============================================================================
# Reducer
# =============================================================================

def reduce(state: InterviewState, event: Event) -> Result:
    """
    Pure reducer for the interview session state machine.

    Given the current state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (phase, event) pair is handled or explicitly ignored
    - Idempotent stop: StopRequested outside CONNECTING/ACTIVE changes nothing
    """
    if isinstance(event, StartRequested):
        return _on_start(state, event)
    if isinstance(event, Opened):
        return _on_opened(state, event)
    if isinstance(event, AudioChunk):
        return _on_audio_chunk(state, event)
    if isinstance(event, Interrupted):
        return _on_interrupted(state, event)
    if isinstance(event, PlaybackDrained):
        return _on_playback_drained(state, event)
    if isinstance(event, Transcript):
        return _on_transcript(state, event)
    if isinstance(event, TimerTick):
        return _on_timer_tick(state, event)
    if isinstance(event, StopRequested):
        return _on_stop(state, event)
    if isinstance(event, Closed):
        return _on_closed(state, event)
    if isinstance(event, Errored):
        return _on_errored(state, event)
    if isinstance(event, StartupFailed):
        return _on_startup_failed(state, event)
    if isinstance(event, TeardownComplete):
        return _on_teardown_complete(state, event)

    return _ignore(state, event, "unhandled_event_type")
