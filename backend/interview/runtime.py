"""
Runtime execution shell for a single interview.

Responsibilities:
- Own controller state
- Call the pure reducer
- Execute commands with side effects (devices, transport, countdown,
  playback, volume sampling)
- Convert countdown ticks and playback completion into events

Non-responsibilities:
- Deciding transitions (reducer)
- Enforcing one active interview (gateway)
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Callable, Coroutine

from adapters.live.base import LiveClient, LiveTransport
from audio.capture import CapturePipeline
from audio.playback import PlaybackScheduler
from audio.volume import VolumeMonitor
from constants import VOLUME_SAMPLE_INTERVAL_S
from errors import (
    CaptureUnavailable,
    DeviceUnavailable,
    LiveConnectionError,
    MalformedPacket,
)
from interview.commands import (
    AcquireCapture,
    AcquireOutput,
    AppendTranscript,
    CancelCountdown,
    CloseTransport,
    Command,
    CompleteTeardown,
    InterruptPlayback,
    LogEvent,
    OpenTransport,
    ReleaseCapture,
    ReleaseOutput,
    SchedulePlayback,
    StartCapture,
    StartCountdown,
    StartVolumeMonitor,
    StopVolumeMonitor,
)
from interview.enums.phase import Phase
from interview.events import (
    Errored,
    Event,
    EventType,
    Opened,
    PlaybackDrained,
    StartRequested,
    StartupFailed,
    StopRequested,
    TeardownComplete,
    TimerTick,
)
from interview.reducer import reduce
from interview.runtime_context import DeviceFactory
from interview.state_dataclass import InterviewState
from observability.logger import exception_fields, log_event, now_ms
from observability.metrics import timed
from session.interview_session import InterviewSession

# Commands whose failure aborts startup. Anything after a failed one in the
# same batch is skipped (so a missing mic never opens a remote connection).
_STARTUP_COMMANDS = (AcquireCapture, AcquireOutput, OpenTransport, StartCountdown)


class InterviewRuntime:
    """
    Runtime execution boundary for a single interview.

    Guarantees:
    - Reducer is called exactly once per incoming event
    - Events are serialized: an event raised while another is being
      processed is queued and handled afterwards, in arrival order
    - All side effects occur *after* state has been updated
    - Commands are executed in reducer-emitted order
    - Every resource is released at most once
    """

    def __init__(
        self,
        *,
        initial_state: InterviewState,
        session: InterviewSession,
        devices: DeviceFactory,
        live_client: LiveClient,
        volume_interval_s: float = VOLUME_SAMPLE_INTERVAL_S,
    ) -> None:
        self._state = initial_state
        self._session = session
        self._devices = devices
        self._live_client = live_client
        self._volume_interval_s = volume_interval_s

        self._pending: deque[Event] = deque()
        self._dispatching = False

        self._countdown_task: asyncio.Task[None] | None = None
        self._open_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()

        self._startup_error: Exception | None = None
        self._closed = asyncio.Event()
        self._volume = 0.0

    # ------------------------------------------------------------------
    # Read-only views (UI boundary)
    # ------------------------------------------------------------------

    @property
    def state(self) -> InterviewState:
        """Current immutable state. Only the reducer produces new ones."""
        return self._state

    @property
    def session(self) -> InterviewSession:
        return self._session

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def agent_speaking(self) -> bool:
        return self._state.agent_speaking

    @property
    def remaining_s(self) -> int:
        return self._state.remaining_s

    @property
    def volume(self) -> float:
        return self._volume

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def start(self, target_role: str, candidate_context: str = "") -> None:
        """
        Start the interview and wait until it is ACTIVE (or failed).

        An empty role is a no-op. If device acquisition or the connection
        open fails, every acquired resource is released and the original
        error is re-raised once the session is CLOSED.
        """
        self._startup_error = None
        await self.handle_event(StartRequested(
            event_type=EventType.START_REQUESTED,
            ts_ms=now_ms(),
            target_role=target_role,
            candidate_context=candidate_context,
        ))

        open_task = self._open_task
        if open_task is not None:
            # asyncio.wait never raises, even if stop() cancels the open.
            await asyncio.wait({open_task})

        error = self._startup_error
        if error is not None:
            self._startup_error = None
            await self.wait_closed()
            raise error

    async def stop(self) -> None:
        """Request a stop and wait for teardown. Idempotent."""
        await self.handle_event(StopRequested(
            event_type=EventType.STOP_REQUESTED,
            ts_ms=now_ms(),
        ))
        await self.wait_closed()

    async def wait_closed(self) -> None:
        """Return once no resources are held (IDLE or CLOSED)."""
        if self._state.phase in (Phase.IDLE, Phase.CLOSED):
            return
        await self._closed.wait()

    async def shutdown(self) -> None:
        """Stop the session and wait for every background task."""
        await self.stop()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ------------------------------------------------------------------
    # Event entry point
    # ------------------------------------------------------------------

    async def handle_event(self, event: Event) -> None:
        """
        Process an event through the reducer and execute its commands.

        This method is the *only* entry point for events affecting state.
        All event sources converge here:
        - User actions (start/stop)
        - Transport (audio, interruption, transcripts, close, error)
        - Countdown ticks and playback completion

        If another event is already being processed, this one is queued
        and handled by the active dispatch loop before it returns.
        """
        self._pending.append(event)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._pending:
                await self._dispatch(self._pending.popleft())
        finally:
            self._dispatching = False

    async def _dispatch(self, event: Event) -> None:
        prev_phase = self._state.phase
        self._state, commands = reduce(self._state, event)

        if self._state.phase is not prev_phase:
            if self._state.phase is Phase.CLOSED:
                self._closed.set()
            elif prev_phase in (Phase.IDLE, Phase.CLOSED):
                self._closed.clear()

        aborted = False
        for cmd in commands:
            if aborted and not isinstance(cmd, LogEvent):
                log_event({
                    "event_type": "command_skipped",
                    "session_id": self._session.session_id,
                    "command_type": cmd.command_type.value,
                    "reason": "startup_aborted",
                })
                continue
            try:
                await self._execute_command(cmd)
            except DeviceUnavailable as e:
                if not isinstance(cmd, _STARTUP_COMMANDS):
                    raise
                aborted = True
                self._pending.append(self._startup_failed(e))

    def _startup_failed(self, error: Exception) -> StartupFailed:
        """Record a startup error for start() and build the matching event."""
        self._startup_error = error
        log_event({
            "event_type": "startup_failed",
            "session_id": self._session.session_id,
            **exception_fields(error),
        })
        return StartupFailed(
            event_type=EventType.STARTUP_FAILED,
            ts_ms=now_ms(),
            reason=f"{type(error).__name__}: {error}",
        )

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._session.session_id,
            })

        # ------------------------------------------------------------
        # Startup
        # ------------------------------------------------------------

        elif isinstance(cmd, AcquireCapture):
            self._session.capture = self._devices.open_capture(
                loop=asyncio.get_running_loop(),
                sample_rate_hz=cmd.sample_rate_hz,
                frame_size=cmd.frame_size,
            )

        elif isinstance(cmd, AcquireOutput):
            output = self._devices.open_output(
                loop=asyncio.get_running_loop(),
                sample_rate_hz=cmd.sample_rate_hz,
            )
            self._session.output = output
            self._session.scheduler = PlaybackScheduler(
                output=output,
                on_drained=self._on_playback_drained,
            )

        elif isinstance(cmd, OpenTransport):
            transport = self._live_client.create_transport(
                emit_event=self.handle_event,
                session_id=self._session.session_id,
            )
            self._session.transport = transport
            self._open_task = asyncio.create_task(self._open_transport(transport, cmd))

        elif isinstance(cmd, StartCountdown):
            self._cancel_countdown()
            self._countdown_task = asyncio.create_task(self._countdown(cmd.interval_s))

        # ------------------------------------------------------------
        # ACTIVE wiring
        # ------------------------------------------------------------

        elif isinstance(cmd, StartCapture):
            capture = self._session.capture
            transport = self._session.transport
            assert capture is not None and transport is not None, "capture wiring before startup"
            pipeline = CapturePipeline(
                device=capture,
                send=transport.send_audio,
                frame_size=self._state.capture_frame_size,
            )
            self._session.pipeline = pipeline
            try:
                pipeline.start()
            except CaptureUnavailable as e:
                # Mid-session device loss ends the interview like a remote error
                self._pending.append(Errored(
                    event_type=EventType.ERRORED,
                    ts_ms=now_ms(),
                    reason=f"{type(e).__name__}: {e}",
                ))

        elif isinstance(cmd, StartVolumeMonitor):
            capture = self._session.capture
            assert capture is not None, "volume monitor before capture"
            monitor = VolumeMonitor(
                read_block=capture.latest_block,
                publish=self._publish_volume,
                interval_s=self._volume_interval_s,
            )
            self._session.volume_monitor = monitor
            monitor.start()

        # ------------------------------------------------------------
        # Playback
        # ------------------------------------------------------------

        elif isinstance(cmd, SchedulePlayback):
            scheduler = self._session.scheduler
            if scheduler is None:
                return
            try:
                scheduler.enqueue(cmd.packet)
            except MalformedPacket as e:
                log_event({
                    "event_type": "inbound_packet_dropped",
                    "session_id": self._session.session_id,
                    "mime_type": cmd.packet.mime_type,
                    **exception_fields(e),
                })

        elif isinstance(cmd, InterruptPlayback):
            scheduler = self._session.scheduler
            if scheduler is not None:
                stopped = scheduler.interrupt()
                log_event({
                    "event_type": "playback_interrupted",
                    "session_id": self._session.session_id,
                    "sources_stopped": stopped,
                })

        # ------------------------------------------------------------
        # Transcript
        # ------------------------------------------------------------

        elif isinstance(cmd, AppendTranscript):
            self._session.transcript.append(cmd.role, cmd.text)

        # ------------------------------------------------------------
        # Teardown (each release runs at most once, failures are logged)
        # ------------------------------------------------------------

        elif isinstance(cmd, CancelCountdown):
            self._cancel_countdown()

        elif isinstance(cmd, StopVolumeMonitor):
            monitor, self._session.volume_monitor = self._session.volume_monitor, None
            if monitor is not None:
                await monitor.stop()
            self._volume = 0.0

        elif isinstance(cmd, ReleaseCapture):
            pipeline, self._session.pipeline = self._session.pipeline, None
            if pipeline is not None:
                pipeline.stop()
            capture, self._session.capture = self._session.capture, None
            if capture is not None:
                self._release("capture", capture.close)

        elif isinstance(cmd, ReleaseOutput):
            self._session.scheduler = None
            output, self._session.output = self._session.output, None
            if output is not None:
                self._release("output", output.close)

        elif isinstance(cmd, CloseTransport):
            await self._cancel_open()
            transport, self._session.transport = self._session.transport, None
            if transport is not None:
                try:
                    await transport.close()
                except Exception as e:  # pylint: disable=broad-exception-caught
                    self._log_release_error("transport", e)

        elif isinstance(cmd, CompleteTeardown):
            self._pending.append(TeardownComplete(
                event_type=EventType.TEARDOWN_COMPLETE,
                ts_ms=now_ms(),
            ))

        else:
            raise TypeError(f"Unhandled command: {type(cmd).__name__}")

    # ------------------------------------------------------------------
    # Transport open
    # ------------------------------------------------------------------

    async def _open_transport(self, transport: LiveTransport, cmd: OpenTransport) -> None:
        try:
            with timed("live_open_latency", session_id=self._session.session_id):
                await transport.open(
                    system_instruction=cmd.system_instruction,
                    voice=cmd.voice,
                    transcripts=cmd.transcripts,
                )
        except LiveConnectionError as e:
            # Detach first: teardown runs inside this task
            self._open_task = None
            await self.handle_event(self._startup_failed(e))
            return

        self._open_task = None
        await self.handle_event(Opened(event_type=EventType.OPENED, ts_ms=now_ms()))

    async def _cancel_open(self) -> None:
        """Abort a connection open still in flight (stop while CONNECTING)."""
        task, self._open_task = self._open_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        await asyncio.wait({task})
        log_event({
            "event_type": "live_open_cancelled",
            "session_id": self._session.session_id,
        })

    # ------------------------------------------------------------------
    # Countdown
    # ------------------------------------------------------------------

    async def _countdown(self, interval_s: float) -> None:
        me = asyncio.current_task()
        while self._countdown_task is me:
            await asyncio.sleep(interval_s)
            if self._countdown_task is not me:
                return
            await self.handle_event(TimerTick(event_type=EventType.TIMER_TICK, ts_ms=now_ms()))

    def _cancel_countdown(self) -> None:
        """
        Idempotent. When the final tick itself triggers teardown, the running
        countdown task just sees it was detached and exits on its own.
        """
        task, self._countdown_task = self._countdown_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    # ------------------------------------------------------------------
    # Device callbacks (loop thread)
    # ------------------------------------------------------------------

    def _on_playback_drained(self) -> None:
        self._spawn(self.handle_event(PlaybackDrained(
            event_type=EventType.PLAYBACK_DRAINED,
            ts_ms=now_ms(),
        )))

    def _publish_volume(self, level: float) -> None:
        self._volume = level

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _release(self, resource: str, close: Callable[[], None]) -> None:
        try:
            close()
        except Exception as e:  # pylint: disable=broad-exception-caught
            # Teardown always runs to CLOSED; a driver fault only gets logged.
            self._log_release_error(resource, e)

    def _log_release_error(self, resource: str, error: Exception) -> None:
        log_event({
            "event_type": "release_failed",
            "session_id": self._session.session_id,
            "resource": resource,
            **exception_fields(error),
        })
