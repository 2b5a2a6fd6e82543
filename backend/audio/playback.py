"""
Gapless, in-order playback of inbound agent speech.

Packets arrive in irregular bursts relative to their duration. Each one is
scheduled to start exactly where the previous one ends:

    start_time = max(next_available_time, output.current_time)
    next_available_time = start_time + duration

so playback is back-to-back with no gap and no overlap, without a fixed
pre-buffer delay. Interruption (barge-in) stops everything and resets the
clock to "now", discarding any audio still queued for the future.

Threading: every method here runs on the event loop thread. The output
device delivers completion callbacks on the loop, so the live set and
next_available_time need no lock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from audio.output_device import OutputDevice, PlaybackHandle
from audio.packets import AudioPacket
from audio.pcm import decode_packet, to_float_samples
from constants import samples_to_seconds


@dataclass(eq=False)
class ScheduledSource:
    """A decoded buffer that is queued or currently playing."""
    samples: np.ndarray
    start_time: float
    duration_s: float
    handle: PlaybackHandle | None = None
    ended: bool = field(default=False)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration_s


class PlaybackScheduler:
    """
    Owns the live source set and the next-available playback timestamp.

    on_drained is called whenever the last live source finishes naturally
    ("agent finished speaking").
    """

    def __init__(
        self,
        *,
        output: OutputDevice,
        on_drained: Callable[[], None] | None = None,
    ) -> None:
        self._output = output
        self._on_drained = on_drained
        self._live: list[ScheduledSource] = []
        self._next_available_time: float = output.current_time

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def next_available_time(self) -> float:
        return self._next_available_time

    @property
    def live_sources(self) -> tuple[ScheduledSource, ...]:
        return tuple(self._live)

    @property
    def is_playing(self) -> bool:
        return bool(self._live)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def enqueue(self, packet: AudioPacket) -> ScheduledSource:
        """
        Decode a packet and schedule it right after everything already queued.

        Raises:
            MalformedPacket if the payload cannot be decoded. Nothing is
            scheduled and the clock is unchanged.
        """
        samples = to_float_samples(decode_packet(packet.data))
        start_time = max(self._next_available_time, self._output.current_time)
        source = ScheduledSource(
            samples=samples,
            start_time=start_time,
            duration_s=samples_to_seconds(len(samples), packet.sample_rate_hz),
        )
        source.handle = self._output.schedule(
            samples,
            start_time,
            lambda: self._on_source_ended(source),
        )
        self._next_available_time = source.end_time
        self._live.append(source)
        return source

    def interrupt(self) -> int:
        """
        Stop every queued or playing source immediately.

        Returns the number of sources stopped.
        """
        stopped = 0
        for source in self._live:
            source.ended = True
            if source.handle is not None:
                source.handle.stop()
            stopped += 1
        self._live.clear()
        self._next_available_time = self._output.current_time
        return stopped

    # ------------------------------------------------------------------
    # Device callbacks
    # ------------------------------------------------------------------

    def _on_source_ended(self, source: ScheduledSource) -> None:
        if source.ended:
            # Already cut off by interrupt()
            return
        source.ended = True
        if source in self._live:
            self._live.remove(source)
        if not self._live and self._on_drained is not None:
            self._on_drained()
