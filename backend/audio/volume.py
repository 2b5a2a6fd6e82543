"""
Speaking-volume monitor for the "who is speaking" indicator.

Purely observational: reads the capture device's most recent block on an
animation-frame cadence and publishes one scalar. Never touches the data path.
"""

from __future__ import annotations

import asyncio
from typing import Callable

import numpy as np

from constants import (
    VOLUME_MAX_DECIBELS,
    VOLUME_MIN_DECIBELS,
    VOLUME_SAMPLE_INTERVAL_S,
)


def byte_frequency_data(block: np.ndarray) -> np.ndarray:
    """
    Byte-scaled magnitude spectrum of one block.

    Mirrors a browser analyser node: Blackman window, magnitude in dB,
    then [min_db, max_db] mapped linearly onto [0, 255].
    """
    samples = np.asarray(block, dtype=np.float64)
    if samples.size == 0:
        return np.zeros(0, dtype=np.uint8)

    window = np.blackman(samples.size)
    spectrum = np.abs(np.fft.rfft(samples * window)) / samples.size
    with np.errstate(divide="ignore"):
        db = 20.0 * np.log10(spectrum)

    scaled = (db - VOLUME_MIN_DECIBELS) * (255.0 / (VOLUME_MAX_DECIBELS - VOLUME_MIN_DECIBELS))
    return np.clip(np.nan_to_num(scaled, neginf=0.0), 0.0, 255.0).astype(np.uint8)


def mean_level(block: np.ndarray) -> float:
    """Mean of the byte frequency data; 0.0 for silence or an empty block."""
    bins = byte_frequency_data(block)
    if bins.size == 0:
        return 0.0
    return float(bins.mean())


class VolumeMonitor:
    """
    Samples `read_block()` every interval and publishes mean_level().

    start()/stop() are idempotent. stop() publishes 0.0 once so the UI
    indicator resets when the session leaves Active.
    """

    def __init__(
        self,
        *,
        read_block: Callable[[], np.ndarray | None],
        publish: Callable[[float], None],
        interval_s: float = VOLUME_SAMPLE_INTERVAL_S,
    ) -> None:
        self._read_block = read_block
        self._publish = publish
        self._interval_s = interval_s
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._publish(0.0)

    async def _run(self) -> None:
        while True:
            block = self._read_block()
            if block is not None:
                self._publish(mean_level(block))
            await asyncio.sleep(self._interval_s)
