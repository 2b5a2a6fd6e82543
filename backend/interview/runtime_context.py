"""
Runtime execution context.

Provides the interview runtime with the capabilities it needs to acquire
platform resources.

This module contains:
- Narrow Protocols (capabilities, not implementations)
- The default sounddevice-backed implementation
- Zero orchestration logic
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

from audio.capture import CaptureDevice, SoundDeviceCapture
from audio.output_device import OutputDevice, SoundDeviceOutput


@runtime_checkable
class DeviceFactory(Protocol):
    """
    Acquires the microphone and the speaker for one session.

    Contract:
    - open_capture raises CaptureUnavailable if the mic cannot be acquired
    - open_output raises OutputUnavailable if the speaker cannot be opened
    - Returned devices are not streaming yet (capture) or render silence
      until something is scheduled (output)
    """

    def open_capture(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        sample_rate_hz: int,
        frame_size: int,
    ) -> CaptureDevice: ...

    def open_output(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        sample_rate_hz: int,
    ) -> OutputDevice: ...


class SoundDeviceFactory:
    """Default host audio via PortAudio."""

    def __init__(self, *, input_device: object = None, output_device: object = None) -> None:
        self._input_device = input_device
        self._output_device = output_device

    def open_capture(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        sample_rate_hz: int,
        frame_size: int,
    ) -> CaptureDevice:
        return SoundDeviceCapture(
            loop=loop,
            sample_rate_hz=sample_rate_hz,
            block_size=frame_size,
            device=self._input_device,
        )

    def open_output(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        sample_rate_hz: int,
    ) -> OutputDevice:
        return SoundDeviceOutput(
            loop=loop,
            sample_rate_hz=sample_rate_hz,
            device=self._output_device,
        )
