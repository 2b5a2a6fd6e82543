# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring
import threading
from typing import Callable

import numpy as np

from audio.output_device import SoundDeviceOutput


RATE = 24000
BLOCK = 512


class RecordingLoop:
    def __init__(self) -> None:
        self.closed = False
        self.scheduled: list[Callable[[], None]] = []

    def is_closed(self) -> bool:
        return self.closed

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None:
        self.scheduled.append(callback)

    def run_pending(self) -> None:
        pending, self.scheduled = self.scheduled, []
        for callback in pending:
            callback()


class StubStream:
    def __init__(self) -> None:
        self.stop_calls = 0
        self.close_calls = 0

    def stop(self) -> None:
        self.stop_calls += 1

    def close(self) -> None:
        self.close_calls += 1


def make_device(loop: RecordingLoop) -> SoundDeviceOutput:
    """A device with the PortAudio stream replaced; _render is driven by hand."""
    device = SoundDeviceOutput.__new__(SoundDeviceOutput)
    device.sample_rate_hz = RATE
    device._loop = loop  # pylint: disable=protected-access
    device._lock = threading.Lock()  # pylint: disable=protected-access
    device._voices = []  # pylint: disable=protected-access
    device._frame_pos = 0  # pylint: disable=protected-access
    device._closed = False  # pylint: disable=protected-access
    device._stream = StubStream()  # pylint: disable=protected-access
    return device


def render(device: SoundDeviceOutput, blocks: int = 1) -> np.ndarray:
    rendered = []
    for _ in range(blocks):
        outdata = np.full((BLOCK, 1), 9.0, dtype=np.float32)
        device._render(outdata, BLOCK, None, None)  # pylint: disable=protected-access
        rendered.append(outdata[:, 0].copy())
    return np.concatenate(rendered)


def tone(seconds: float, value: float = 0.25) -> np.ndarray:
    return np.full(int(seconds * RATE), value, dtype=np.float32)


# ---------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------

def test_clock_advances_one_block_per_render() -> None:
    device = make_device(RecordingLoop())

    silence = render(device, blocks=3)

    assert device.current_time == 3 * BLOCK / RATE
    assert not silence.any()


# ---------------------------------------------------------------------
# Mixing
# ---------------------------------------------------------------------

def test_back_to_back_buffers_are_contiguous_across_block_boundaries() -> None:
    loop = RecordingLoop()
    device = make_device(loop)
    ended: list[str] = []

    device.schedule(tone(0.5), 0.0, lambda: ended.append("a"))
    out = render(device, blocks=10)
    device.schedule(tone(0.5), 0.5, lambda: ended.append("b"))
    out = np.concatenate([out, render(device, blocks=35)])
    device.schedule(tone(0.5), 1.0, lambda: ended.append("c"))
    out = np.concatenate([out, render(device, blocks=35)])
    loop.run_pending()

    voiced = np.flatnonzero(out)
    assert voiced[0] == 0
    assert voiced[-1] == 3 * RATE // 2 - 1
    assert len(voiced) == 3 * RATE // 2
    assert np.all(out[voiced] == np.float32(0.25))
    assert ended == ["a", "b", "c"]


def test_late_buffer_plays_only_its_remaining_tail() -> None:
    device = make_device(RecordingLoop())
    render(device, blocks=2)
    ramp = np.linspace(0.0, 0.5, 4 * BLOCK, dtype=np.float32)

    device.schedule(ramp, 0.0, lambda: None)
    out = render(device, blocks=2)

    np.testing.assert_array_equal(out, ramp[2 * BLOCK:])


def test_overlapping_buffers_are_summed_and_clipped() -> None:
    device = make_device(RecordingLoop())

    device.schedule(tone(0.1, 0.75), 0.0, lambda: None)
    device.schedule(tone(0.1, 0.75), 0.0, lambda: None)
    out = render(device)

    assert np.all(out == 1.0)


# ---------------------------------------------------------------------
# Completion and interruption
# ---------------------------------------------------------------------

def test_completion_is_delivered_through_the_loop() -> None:
    loop = RecordingLoop()
    device = make_device(loop)
    ended: list[bool] = []

    device.schedule(tone(0.01), 0.0, lambda: ended.append(True))
    render(device)

    assert ended == []
    assert len(loop.scheduled) == 1
    loop.run_pending()
    assert ended == [True]


def test_stopped_buffer_goes_silent_without_a_callback() -> None:
    loop = RecordingLoop()
    device = make_device(loop)
    ended: list[bool] = []

    handle = device.schedule(tone(1.0), 0.0, lambda: ended.append(True))
    assert render(device).all()
    handle.stop()
    handle.stop()
    after = render(device, blocks=60)

    assert not after.any()
    assert loop.scheduled == []
    assert ended == []


def test_no_callbacks_once_the_loop_is_closed() -> None:
    loop = RecordingLoop()
    device = make_device(loop)
    device.schedule(tone(0.01), 0.0, lambda: None)
    loop.closed = True

    render(device)

    assert loop.scheduled == []


def test_close_drops_voices_and_is_idempotent() -> None:
    device = make_device(RecordingLoop())
    device.schedule(tone(1.0), 0.0, lambda: None)

    device.close()
    device.close()

    stream = device._stream  # pylint: disable=protected-access
    assert (stream.stop_calls, stream.close_calls) == (1, 1)
    assert not render(device).any()
