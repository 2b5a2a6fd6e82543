"""
Playback device with a sample-accurate clock and time-scheduled buffers.

The device exposes the two primitives the playback scheduler needs:
- current_time: seconds of audio rendered since the device was opened
- schedule(samples, start_time, on_ended): play a buffer starting at start_time

Scheduled buffers are mixed in the PortAudio callback. The voice list is
shared with that OS thread, so it is guarded by a threading.Lock. Completion
callbacks are delivered on the event loop thread via call_soon_threadsafe.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Callable, Protocol

import numpy as np

from constants import PLAYBACK_BLOCK_SIZE, PLAYBACK_CHANNELS, PLAYBACK_SAMPLE_RATE_HZ
from errors import DeviceReleaseError, OutputUnavailable
from observability.logger import log_event


class PlaybackHandle(Protocol):
    """A scheduled buffer that can be cut off early."""

    def stop(self) -> None: ...


class OutputDevice(Protocol):
    """Mono output device as seen by the playback scheduler."""

    sample_rate_hz: int

    @property
    def current_time(self) -> float: ...

    def schedule(
        self,
        samples: np.ndarray,
        start_time: float,
        on_ended: Callable[[], None],
    ) -> PlaybackHandle: ...

    def close(self) -> None: ...


class _Voice:
    """One scheduled buffer inside the mixer."""

    def __init__(
        self,
        *,
        device: SoundDeviceOutput,
        samples: np.ndarray,
        start_frame: int,
        on_ended: Callable[[], None],
    ) -> None:
        self.device = device
        self.samples = samples
        self.start_frame = start_frame
        self.on_ended = on_ended

    @property
    def end_frame(self) -> int:
        return self.start_frame + len(self.samples)

    def stop(self) -> None:
        """Remove from the mixer immediately. No completion callback fires."""
        self.device.remove(self)


class SoundDeviceOutput:
    """
    Speaker output through a sounddevice OutputStream.

    Opening the stream starts the clock; silence is rendered whenever no
    voice overlaps the current block.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        sample_rate_hz: int = PLAYBACK_SAMPLE_RATE_HZ,
        block_size: int = PLAYBACK_BLOCK_SIZE,
        device: Any = None,
    ) -> None:
        self.sample_rate_hz = sample_rate_hz
        self._loop = loop
        self._lock = threading.Lock()
        self._voices: list[_Voice] = []
        self._frame_pos = 0
        self._closed = False

        # PortAudio is loaded at import time; a host without it has no speaker.
        try:
            import sounddevice as sd  # pylint: disable=import-outside-toplevel
        except OSError as e:
            raise OutputUnavailable(f"audio backend unavailable: {e}") from e
        self._sd = sd

        try:
            self._stream = sd.OutputStream(
                samplerate=sample_rate_hz,
                channels=PLAYBACK_CHANNELS,
                dtype="float32",
                blocksize=block_size,
                callback=self._render,
                device=device,
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as e:
            raise OutputUnavailable(f"speaker unavailable: {e}") from e

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._frame_pos / self.sample_rate_hz

    def schedule(
        self,
        samples: np.ndarray,
        start_time: float,
        on_ended: Callable[[], None],
    ) -> _Voice:
        """Queue samples to start at start_time on this device's clock."""
        voice = _Voice(
            device=self,
            samples=np.asarray(samples, dtype=np.float32),
            start_frame=int(round(start_time * self.sample_rate_hz)),
            on_ended=on_ended,
        )
        with self._lock:
            self._voices.append(voice)
        return voice

    def remove(self, voice: _Voice) -> None:
        with self._lock:
            if voice in self._voices:
                self._voices.remove(voice)

    def close(self) -> None:
        """Stop rendering and release the stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        with self._lock:
            self._voices.clear()
        try:
            self._stream.stop()
            self._stream.close()
        except self._sd.PortAudioError as e:
            raise DeviceReleaseError(f"speaker failed to close: {e}") from e

    # ------------------------------------------------------------------
    # PortAudio thread
    # ------------------------------------------------------------------

    def _render(self, outdata: np.ndarray, frames: int, time: Any, status: Any) -> None:  # pylint: disable=unused-argument
        if status:
            log_event({
                "event_type": "PLAYBACK_STATUS",
                "status": str(status),
            })

        out = outdata[:, 0]
        out.fill(0.0)
        ended: list[Callable[[], None]] = []

        with self._lock:
            block_start = self._frame_pos
            block_end = block_start + frames

            for voice in list(self._voices):
                lo = max(block_start, voice.start_frame)
                hi = min(block_end, voice.end_frame)
                if hi > lo:
                    out[lo - block_start : hi - block_start] += voice.samples[
                        lo - voice.start_frame : hi - voice.start_frame
                    ]
                if voice.end_frame <= block_end:
                    self._voices.remove(voice)
                    ended.append(voice.on_ended)

            self._frame_pos = block_end

        np.clip(out, -1.0, 1.0, out=out)

        if ended and not self._loop.is_closed():
            for callback in ended:
                self._loop.call_soon_threadsafe(callback)
