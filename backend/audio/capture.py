"""
Microphone capture pipeline.

Device -> fixed-size frames -> PCM16/base64 packets -> transport send.

Threading:
- sounddevice invokes the stream callback on a PortAudio thread.
- The callback only copies the block and hops onto the event loop with
  call_soon_threadsafe; framing, encoding and sending run on the loop thread.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol

import numpy as np

from audio.packets import AudioPacket
from audio.pcm import encode_packet
from constants import CAPTURE_CHANNELS, CAPTURE_SAMPLE_RATE_HZ
from errors import CaptureUnavailable, DeviceReleaseError
from observability.logger import log_event


BlockHandler = Callable[[np.ndarray], None]
PacketSink = Callable[[AudioPacket], None]


class CaptureDevice(Protocol):
    """Mono float32 input device as seen by the pipeline."""

    sample_rate_hz: int

    def start(self, on_block: BlockHandler) -> None: ...
    def latest_block(self) -> np.ndarray | None: ...
    def close(self) -> None: ...


class SoundDeviceCapture:
    """
    Microphone input through sounddevice.

    Construction acquires the device (opens the stream) without starting it,
    so an unavailable microphone fails fast, before any remote connection.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        sample_rate_hz: int = CAPTURE_SAMPLE_RATE_HZ,
        block_size: int,
        device: Any = None,
    ) -> None:
        self.sample_rate_hz = sample_rate_hz
        self._loop = loop
        self._on_block: BlockHandler | None = None
        self._latest: np.ndarray | None = None
        self._closed = False

        # PortAudio is loaded at import time; a host without it has no mic.
        try:
            import sounddevice as sd  # pylint: disable=import-outside-toplevel
        except OSError as e:
            raise CaptureUnavailable(f"audio backend unavailable: {e}") from e
        self._sd = sd

        try:
            self._stream = sd.InputStream(
                samplerate=sample_rate_hz,
                channels=CAPTURE_CHANNELS,
                dtype="float32",
                blocksize=block_size,
                callback=self._callback,
                device=device,
            )
        except (sd.PortAudioError, ValueError) as e:
            raise CaptureUnavailable(f"microphone unavailable: {e}") from e

    def start(self, on_block: BlockHandler) -> None:
        """Begin delivering blocks to on_block on the event loop thread."""
        self._on_block = on_block
        try:
            self._stream.start()
        except self._sd.PortAudioError as e:
            raise CaptureUnavailable(f"microphone failed to start: {e}") from e

    def latest_block(self) -> np.ndarray | None:
        """Most recent captured block (read by the volume monitor)."""
        return self._latest

    def close(self) -> None:
        """Stop and close the stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._on_block = None
        try:
            self._stream.stop()
            self._stream.close()
        except self._sd.PortAudioError as e:
            raise DeviceReleaseError(f"microphone failed to close: {e}") from e

    def _callback(self, indata: np.ndarray, frames: int, time: Any, status: Any) -> None:  # pylint: disable=unused-argument
        if status:
            log_event({
                "event_type": "CAPTURE_STATUS",
                "status": str(status),
            })
        block = indata[:, 0].copy()
        self._latest = block
        if self._on_block is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._deliver, block)

    def _deliver(self, block: np.ndarray) -> None:
        handler = self._on_block
        if handler is not None:
            handler(block)


class FrameAssembler:
    """Rechunk captured audio to exact frame boundaries without loss."""

    def __init__(self, frame_size: int) -> None:
        if frame_size <= 0:
            raise ValueError("frame_size must be > 0")
        self.frame_size = frame_size
        self._buffer = np.zeros(0, dtype=np.float32)

    def add(self, block: np.ndarray) -> list[np.ndarray]:
        """Add samples and return all complete frames, oldest first."""
        self._buffer = np.concatenate((self._buffer, np.asarray(block, dtype=np.float32)))
        whole = len(self._buffer) // self.frame_size
        if whole == 0:
            return []

        end = whole * self.frame_size
        frames = [
            self._buffer[offset : offset + self.frame_size]
            for offset in range(0, end, self.frame_size)
        ]
        self._buffer = self._buffer[end:].copy()
        return frames

    def clear(self) -> None:
        """Drop any partial frame."""
        self._buffer = np.zeros(0, dtype=np.float32)


class CapturePipeline:
    """
    Continuous mic -> transport path for the lifetime of a session.

    Not gated by session flags: it runs until the controller closes the
    device. The sink (transport.send_audio) queues frames until the remote
    connection is ready; nothing is dropped here.
    """

    def __init__(
        self,
        *,
        device: CaptureDevice,
        send: PacketSink,
        frame_size: int,
    ) -> None:
        self._device = device
        self._send = send
        self._assembler = FrameAssembler(frame_size)
        self.frames_sent = 0

    def start(self) -> None:
        """Wire the device's blocks into the send path."""
        self._device.start(self.on_block)

    def on_block(self, block: np.ndarray) -> None:
        """Frame, encode and send one captured block (loop thread)."""
        for frame in self._assembler.add(block):
            self._send(encode_packet(frame, sample_rate_hz=self._device.sample_rate_hz))
            self.frames_sent += 1

    def stop(self) -> None:
        """Discard any partial frame. The controller closes the device."""
        self._assembler.clear()
