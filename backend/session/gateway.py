"""
Interview gateway.

Responsibilities:
- Owns the lifecycle of the current InterviewSession and its runtime
- Enforces exactly one active interview: a new start first tears the
  previous one down completely
- Exposes the UI boundary (start/stop actions and a read-only status)
- Keeps the last session's transcript for post-call evaluation

NOT responsible for:
- Any state machine logic (reducer)
- Executing commands (runtime)
- HTTP concerns (server.routes)
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from adapters.live.base import LiveClient
from constants import format_remaining
from interview.enums.phase import Phase
from interview.runtime import InterviewRuntime
from interview.runtime_context import DeviceFactory
from interview.state_dataclass import InterviewState
from observability.logger import log_event
from session.interview_session import InterviewSession

if TYPE_CHECKING:
    from config import AppConfig


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


# ------------------------------------------------------------------
# Status snapshot
# ------------------------------------------------------------------

@dataclass(frozen=True)
class InterviewStatus:
    """Read-only view of the current interview for the UI."""
    session_id: str | None
    phase: str
    agent_speaking: bool
    volume: float
    remaining_s: int
    remaining_label: str
    target_role: str
    last_error: str | None
    end_reason: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ------------------------------------------------------------------
# InterviewGateway
# ------------------------------------------------------------------

class InterviewGateway:
    """
    One gateway per process; at most one live interview at a time.

    Start requests are serialized with an asyncio.Lock. Stop requests are
    not, so a stop can abort a start that is still connecting.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        live_client: LiveClient,
        devices: DeviceFactory,
    ) -> None:
        self._config = config
        self._live_client = live_client
        self._devices = devices
        self._start_lock = asyncio.Lock()

        self.session: InterviewSession | None = None
        self.runtime: InterviewRuntime | None = None

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def start_interview(
        self,
        target_role: str,
        candidate_context: str = "",
    ) -> InterviewStatus:
        """
        Start a new interview for target_role.

        An empty role is a no-op and returns the current status. Startup
        errors (CaptureUnavailable, OutputUnavailable, LiveConnectionError)
        propagate after the failed session has been fully released.
        """
        if not target_role.strip():
            log_event({
                "event_type": "interview_start_ignored",
                "reason": "missing_target_role",
            })
            return self.status()

        async with self._start_lock:
            previous = self.runtime
            if previous is not None:
                await previous.shutdown()

            session = InterviewSession(session_id=_new_session_id())
            runtime = InterviewRuntime(
                initial_state=self._initial_state(),
                session=session,
                devices=self._devices,
                live_client=self._live_client,
            )
            self.session = session
            self.runtime = runtime

            log_event({
                "event_type": "interview_session_created",
                "session_id": session.session_id,
                "replaced_session": previous is not None,
            })

            await runtime.start(target_role, candidate_context)

        return self.status()

    async def stop_interview(self) -> InterviewStatus:
        """Stop the current interview (if any) and wait for teardown."""
        runtime = self.runtime
        if runtime is not None:
            await runtime.stop()
        return self.status()

    async def shutdown(self) -> None:
        """Release everything (process shutdown)."""
        runtime = self.runtime
        if runtime is not None:
            await runtime.shutdown()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def status(self) -> InterviewStatus:
        runtime = self.runtime
        if runtime is None:
            state = self._initial_state()
            session_id = None
            volume = 0.0
        else:
            state = runtime.state
            session_id = runtime.session.session_id
            volume = runtime.volume

        return InterviewStatus(
            session_id=session_id,
            phase=state.phase.value,
            agent_speaking=state.agent_speaking,
            volume=round(volume, 2),
            remaining_s=state.remaining_s,
            remaining_label=format_remaining(state.remaining_s),
            target_role=state.target_role,
            last_error=state.last_error,
            end_reason=state.end_reason.value if state.end_reason else None,
        )

    def is_live(self) -> bool:
        runtime = self.runtime
        return runtime is not None and runtime.phase in (Phase.CONNECTING, Phase.ACTIVE)

    def transcript_text(self) -> str:
        """Transcript of the current or most recent interview."""
        if self.session is None:
            return ""
        return self.session.transcript.as_text()

    def last_target_role(self) -> str:
        runtime = self.runtime
        return runtime.state.target_role if runtime is not None else ""

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _initial_state(self) -> InterviewState:
        return InterviewState(
            countdown_s=self._config.interview_countdown_s,
            remaining_s=self._config.interview_countdown_s,
            voice=self._config.live_voice,
            transcripts=self._config.live_transcripts,
            capture_frame_size=self._config.capture_frame_size,
        )
