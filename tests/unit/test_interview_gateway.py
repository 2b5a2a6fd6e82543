# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio

import pytest

from config import AppConfig
from errors import CaptureUnavailable
from fakes import FakeDevices, FakeLiveClient
from interview.events import EventType, Transcript
from session.gateway import InterviewGateway


def make_gateway(devices: FakeDevices, client: FakeLiveClient, **config) -> InterviewGateway:
    return InterviewGateway(config=AppConfig(**config), live_client=client, devices=devices)


def test_status_before_any_interview() -> None:
    gateway = make_gateway(FakeDevices(), FakeLiveClient(), interview_countdown_s=600)

    status = gateway.status().to_dict()

    assert status["session_id"] is None
    assert status["phase"] == "IDLE"
    assert status["remaining_s"] == 600
    assert status["remaining_label"] == "10:00"
    assert gateway.transcript_text() == ""
    assert not gateway.is_live()


def test_empty_role_is_a_no_op() -> None:
    devices = FakeDevices()
    gateway = make_gateway(devices, FakeLiveClient())

    status = asyncio.run(gateway.start_interview("  "))

    assert status.phase == "IDLE"
    assert gateway.runtime is None
    assert devices.captures == []


def test_start_and_stop() -> None:
    devices = FakeDevices()
    gateway = make_gateway(devices, FakeLiveClient())

    async def run():
        started = await gateway.start_interview("Data Analyst")
        live = gateway.is_live()
        stopped = await gateway.stop_interview()
        return started, live, stopped

    started, live, stopped = asyncio.run(run())

    assert started.phase == "ACTIVE"
    assert started.session_id.startswith("sess_")
    assert started.target_role == "Data Analyst"
    assert started.remaining_label == "15:00"
    assert live
    assert stopped.phase == "CLOSED"
    assert stopped.end_reason == "USER_STOP"
    assert not gateway.is_live()
    assert gateway.last_target_role() == "Data Analyst"


def test_new_start_tears_down_the_previous_interview() -> None:
    devices = FakeDevices()
    gateway = make_gateway(devices, FakeLiveClient())

    async def run():
        await gateway.start_interview("Data Analyst")
        first = gateway.runtime
        await gateway.start_interview("Backend Developer")
        second = gateway.runtime
        await gateway.shutdown()
        return first, second

    first, second = asyncio.run(run())

    assert first is not second
    assert first.phase.value == "CLOSED"
    assert first.session.session_id != second.session.session_id
    assert devices.captures[0].close_calls == 1
    assert len(devices.captures) == 2
    assert second.state.target_role == "Backend Developer"


def test_startup_error_propagates_after_cleanup() -> None:
    gateway = make_gateway(FakeDevices(capture_error=CaptureUnavailable("denied")), FakeLiveClient())

    with pytest.raises(CaptureUnavailable):
        asyncio.run(gateway.start_interview("Data Analyst"))

    status = gateway.status()
    assert status.phase == "CLOSED"
    assert status.end_reason == "STARTUP_FAILED"
    assert "denied" in status.last_error


def test_transcript_survives_the_session() -> None:
    client = FakeLiveClient()
    gateway = make_gateway(FakeDevices(), client)

    async def run() -> None:
        await gateway.start_interview("Data Analyst")
        await client.transports[0].emit(Transcript(
            event_type=EventType.TRANSCRIPT, ts_ms=0, role="user", text="I like SQL"
        ))
        await gateway.stop_interview()

    asyncio.run(run())

    assert gateway.transcript_text() == "Candidate: I like SQL"


def test_stop_without_interview_is_harmless() -> None:
    gateway = make_gateway(FakeDevices(), FakeLiveClient())

    status = asyncio.run(gateway.stop_interview())

    assert status.phase == "IDLE"
