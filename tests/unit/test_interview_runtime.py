# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
import json

import numpy as np
import pytest

import observability.logger as logger
from audio.packets import AudioPacket
from audio.pcm import encode_packet
from errors import (
    CaptureUnavailable,
    DeviceReleaseError,
    LiveConnectionError,
    OutputUnavailable,
)
from fakes import FakeDevices, FakeLiveClient
from interview.enums.end_reason import EndReason
from interview.enums.phase import Phase
from interview.events import (
    AudioChunk,
    Closed,
    Errored,
    EventType,
    Interrupted,
    Transcript,
)
from interview.runtime import InterviewRuntime
from interview.state_dataclass import InterviewState
from session.interview_session import InterviewSession


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def capture_logs(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    lines: list[dict] = []
    monkeypatch.setattr(logger, "_print", lambda line: lines.append(json.loads(line)))
    return lines


def make_runtime(devices: FakeDevices, client: FakeLiveClient, **state) -> InterviewRuntime:
    state.setdefault("tick_interval_s", 3600.0)
    return InterviewRuntime(
        initial_state=InterviewState(**state),
        session=InterviewSession(session_id="sess_test"),
        devices=devices,
        live_client=client,
        volume_interval_s=0.001,
    )


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def speech(seconds: float = 0.1) -> AudioChunk:
    packet = encode_packet(np.zeros(int(seconds * 24000), dtype=np.float32), sample_rate_hz=24000)
    return AudioChunk(event_type=EventType.AUDIO_CHUNK, ts_ms=0, packet=packet)


def transcript(role: str, text: str) -> Transcript:
    return Transcript(event_type=EventType.TRANSCRIPT, ts_ms=0, role=role, text=text)  # type: ignore[arg-type]


# ---------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------

def test_start_reaches_active_and_stop_releases_everything_once() -> None:
    devices = FakeDevices()
    client = FakeLiveClient()

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, client)
        await runtime.start("Data Analyst", "final-year student")

        assert runtime.phase is Phase.ACTIVE
        assert devices.captures[0].on_block is not None
        assert runtime.session.volume_monitor is not None
        assert client.transports[0].opened

        await runtime.stop()
        await runtime.stop()
        return runtime

    runtime = asyncio.run(run())

    capture, output, transport = devices.captures[0], devices.outputs[0], client.transports[0]
    assert runtime.phase is Phase.CLOSED
    assert runtime.state.end_reason is EndReason.USER_STOP
    assert (capture.close_calls, output.close_calls, transport.close_calls) == (1, 1, 1)
    assert runtime.volume == 0.0
    assert not runtime.session.holds_resources()
    assert "Data Analyst" in transport.open_kwargs["system_instruction"]
    assert "final-year student" in transport.open_kwargs["system_instruction"]


def test_empty_role_starts_nothing() -> None:
    devices = FakeDevices()
    client = FakeLiveClient()

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, client)
        await runtime.start("")
        return runtime

    runtime = asyncio.run(run())

    assert runtime.phase is Phase.IDLE
    assert devices.captures == []
    assert client.transports == []


def test_shutdown_stops_a_live_interview() -> None:
    devices = FakeDevices()

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, FakeLiveClient())
        await runtime.start("Data Analyst")
        await runtime.shutdown()
        return runtime

    runtime = asyncio.run(run())

    assert runtime.phase is Phase.CLOSED
    assert devices.captures[0].close_calls == 1


# ---------------------------------------------------------------------
# Startup failures
# ---------------------------------------------------------------------

def test_missing_microphone_never_opens_the_connection(monkeypatch: pytest.MonkeyPatch) -> None:
    lines = capture_logs(monkeypatch)
    devices = FakeDevices(capture_error=CaptureUnavailable("no microphone"))
    client = FakeLiveClient()

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, client)
        with pytest.raises(CaptureUnavailable):
            await runtime.start("Data Analyst")
        return runtime

    runtime = asyncio.run(run())

    assert client.transports == []
    assert devices.outputs == []
    assert runtime.phase is Phase.CLOSED
    assert runtime.state.end_reason is EndReason.STARTUP_FAILED
    assert "no microphone" in runtime.state.last_error

    skipped = [e["command_type"] for e in lines if e.get("event_type") == "command_skipped"]
    assert skipped == ["ACQUIRE_OUTPUT", "OPEN_TRANSPORT", "START_COUNTDOWN"]


def test_missing_speaker_releases_the_microphone() -> None:
    devices = FakeDevices(output_error=OutputUnavailable("no speaker"))
    client = FakeLiveClient()

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, client)
        with pytest.raises(OutputUnavailable):
            await runtime.start("Data Analyst")
        return runtime

    runtime = asyncio.run(run())

    assert devices.captures[0].close_calls == 1
    assert client.transports == []
    assert runtime.phase is Phase.CLOSED


def test_connection_failure_releases_devices_and_reraises() -> None:
    devices = FakeDevices()
    client = FakeLiveClient(open_error=LiveConnectionError("handshake refused"))

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, client)
        with pytest.raises(LiveConnectionError, match="handshake refused"):
            await runtime.start("Data Analyst")
        return runtime

    runtime = asyncio.run(run())

    assert runtime.phase is Phase.CLOSED
    assert runtime.state.end_reason is EndReason.STARTUP_FAILED
    assert devices.captures[0].close_calls == 1
    assert devices.outputs[0].close_calls == 1
    assert client.transports[0].close_calls == 1
    assert not runtime.session.holds_resources()


def test_stop_while_connecting_cancels_the_open() -> None:
    devices = FakeDevices()

    async def run() -> tuple[InterviewRuntime, FakeLiveClient]:
        client = FakeLiveClient(gate=asyncio.Event())
        runtime = make_runtime(devices, client)
        start_task = asyncio.create_task(runtime.start("Data Analyst"))
        await settle()
        assert runtime.phase is Phase.CONNECTING

        await runtime.stop()
        await start_task  # user stop is not a startup error
        return runtime, client

    runtime, client = asyncio.run(run())

    transport = client.transports[0]
    assert transport.open_cancelled
    assert not transport.opened
    assert transport.close_calls == 1
    assert runtime.phase is Phase.CLOSED
    assert runtime.state.end_reason is EndReason.USER_STOP


def test_restart_after_stop() -> None:
    devices = FakeDevices()

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, FakeLiveClient())
        await runtime.start("Data Analyst")
        await runtime.stop()
        await runtime.start("Data Analyst")
        return runtime

    runtime = asyncio.run(run())

    assert runtime.phase is Phase.ACTIVE
    assert len(devices.captures) == 2


# ---------------------------------------------------------------------
# Session end causes
# ---------------------------------------------------------------------

def test_countdown_expiry_ends_the_interview() -> None:
    devices = FakeDevices()
    client = FakeLiveClient()

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, client, countdown_s=2, remaining_s=2, tick_interval_s=0.01)
        await runtime.start("Data Analyst")
        await asyncio.wait_for(runtime.wait_closed(), timeout=2.0)
        return runtime

    runtime = asyncio.run(run())

    assert runtime.phase is Phase.CLOSED
    assert runtime.remaining_s == 0
    assert runtime.state.end_reason is EndReason.COUNTDOWN_ELAPSED
    assert devices.captures[0].close_calls == 1
    assert client.transports[0].close_calls == 1


def test_remote_close_ends_the_interview() -> None:
    devices = FakeDevices()
    client = FakeLiveClient()

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, client)
        await runtime.start("Data Analyst")
        await client.transports[0].emit(Closed(event_type=EventType.CLOSED, ts_ms=0, reason="done"))
        return runtime

    runtime = asyncio.run(run())

    assert runtime.phase is Phase.CLOSED
    assert runtime.state.end_reason is EndReason.REMOTE_CLOSED
    assert devices.outputs[0].close_calls == 1


def test_remote_error_is_recorded() -> None:
    client = FakeLiveClient()

    async def run() -> InterviewRuntime:
        runtime = make_runtime(FakeDevices(), client)
        await runtime.start("Data Analyst")
        await client.transports[0].emit(Errored(event_type=EventType.ERRORED, ts_ms=0, reason="connection lost"))
        return runtime

    runtime = asyncio.run(run())

    assert runtime.phase is Phase.CLOSED
    assert runtime.state.end_reason is EndReason.REMOTE_ERROR
    assert runtime.state.last_error == "connection lost"


def test_release_failure_is_logged_and_teardown_continues(monkeypatch: pytest.MonkeyPatch) -> None:
    lines = capture_logs(monkeypatch)
    devices = FakeDevices(capture_close_error=DeviceReleaseError("stream stuck"))

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, FakeLiveClient())
        await runtime.start("Data Analyst")
        await runtime.stop()
        return runtime

    runtime = asyncio.run(run())

    assert runtime.phase is Phase.CLOSED
    assert devices.outputs[0].close_calls == 1
    failures = [e for e in lines if e.get("event_type") == "release_failed"]
    assert [e["resource"] for e in failures] == ["capture"]


def test_unexpected_driver_fault_still_reaches_closed(monkeypatch: pytest.MonkeyPatch) -> None:
    lines = capture_logs(monkeypatch)
    devices = FakeDevices(capture_close_error=RuntimeError("driver crashed"))
    client = FakeLiveClient(close_error=OSError("socket reset"))

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, client)
        await runtime.start("Backend Engineer")
        await runtime.stop()
        await asyncio.wait_for(runtime.stop(), timeout=1.0)
        return runtime

    runtime = asyncio.run(run())

    assert runtime.phase is Phase.CLOSED
    assert devices.captures[0].close_calls == 1
    assert devices.outputs[0].close_calls == 1
    assert client.transports[0].close_calls == 1
    failures = [e for e in lines if e.get("event_type") == "release_failed"]
    assert [(e["resource"], e["exception"]) for e in failures] == [
        ("capture", "RuntimeError"),
        ("transport", "OSError"),
    ]


# ---------------------------------------------------------------------
# Audio paths
# ---------------------------------------------------------------------

def test_mic_frames_flow_to_the_transport() -> None:
    devices = FakeDevices()
    client = FakeLiveClient()

    async def run() -> None:
        runtime = make_runtime(devices, client, capture_frame_size=512)
        await runtime.start("Data Analyst")
        devices.captures[0].deliver(np.zeros(1024, dtype=np.float32))
        await runtime.stop()

    asyncio.run(run())

    sent = client.transports[0].sent
    assert [p.num_samples for p in sent] == [512, 512]
    assert sent[0].mime_type == "audio/pcm;rate=16000"


def test_agent_speech_is_scheduled_and_drains() -> None:
    devices = FakeDevices()
    client = FakeLiveClient()

    async def run() -> None:
        runtime = make_runtime(devices, client)
        await runtime.start("Data Analyst")
        transport = client.transports[0]

        await transport.emit(speech(0.5))
        await transport.emit(speech(0.5))
        assert runtime.agent_speaking
        output = devices.outputs[0]
        assert [h.start_time for h in output.handles] == pytest.approx([0.0, 0.5])

        output.finish_all()
        await settle()
        assert not runtime.agent_speaking
        await runtime.stop()

    asyncio.run(run())


def test_barge_in_stops_playback() -> None:
    devices = FakeDevices()
    client = FakeLiveClient()

    async def run() -> None:
        runtime = make_runtime(devices, client)
        await runtime.start("Data Analyst")
        transport = client.transports[0]
        await transport.emit(speech())
        await transport.emit(speech())

        await transport.emit(Interrupted(event_type=EventType.INTERRUPTED, ts_ms=0))

        assert all(h.stopped for h in devices.outputs[0].handles)
        assert not runtime.agent_speaking
        assert runtime.phase is Phase.ACTIVE
        await runtime.stop()

    asyncio.run(run())


def test_malformed_packet_is_dropped_and_session_continues(monkeypatch: pytest.MonkeyPatch) -> None:
    lines = capture_logs(monkeypatch)
    devices = FakeDevices()
    client = FakeLiveClient()
    bad = AudioPacket(data="@@@", mime_type="audio/pcm;rate=24000", sample_rate_hz=24000, num_samples=1)

    async def run() -> InterviewRuntime:
        runtime = make_runtime(devices, client)
        await runtime.start("Data Analyst")
        await client.transports[0].emit(AudioChunk(event_type=EventType.AUDIO_CHUNK, ts_ms=0, packet=bad))
        await client.transports[0].emit(speech())
        return runtime

    runtime = asyncio.run(run())

    assert runtime.phase is Phase.ACTIVE
    assert len(devices.outputs[0].handles) == 1
    assert any(e.get("event_type") == "inbound_packet_dropped" for e in lines)


def test_volume_follows_the_microphone() -> None:
    devices = FakeDevices()

    async def run() -> tuple[float, float]:
        runtime = make_runtime(devices, FakeLiveClient())
        await runtime.start("Data Analyst")
        t = np.arange(1024) / 16000
        devices.captures[0].deliver((0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32))
        await asyncio.sleep(0.02)
        during = runtime.volume
        await runtime.stop()
        return during, runtime.volume

    during, after = asyncio.run(run())

    assert during > 0.0
    assert after == 0.0


# ---------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------

def test_transcripts_are_collected() -> None:
    client = FakeLiveClient()

    async def run() -> InterviewRuntime:
        runtime = make_runtime(FakeDevices(), client)
        await runtime.start("Data Analyst")
        transport = client.transports[0]
        await transport.emit(transcript("agent", "Welcome. "))
        await transport.emit(transcript("agent", "Tell me about yourself."))
        await transport.emit(transcript("user", "I studied statistics."))
        await runtime.stop()
        return runtime

    runtime = asyncio.run(run())

    assert runtime.session.transcript.as_text() == (
        "Interviewer: Welcome. Tell me about yourself.\n"
        "Candidate: I studied statistics."
    )
