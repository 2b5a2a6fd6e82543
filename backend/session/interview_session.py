"""
Interview session container.

- Owns the imperative handles of one interview (devices, scheduler,
  transport, pipelines, transcript)
- Owned by the gateway, mutated only by the runtime
- NOT a state machine
- Contains no orchestration logic
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from context.transcript import InterviewTranscript

if TYPE_CHECKING:
    from adapters.live.base import LiveTransport
    from audio.capture import CaptureDevice, CapturePipeline
    from audio.output_device import OutputDevice
    from audio.playback import PlaybackScheduler
    from audio.volume import VolumeMonitor


@dataclass
class InterviewSession:
    """Mutable runtime container for a single interview."""

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    session_id: str

    # ------------------------------------------------------------------
    # Capture side
    # ------------------------------------------------------------------

    capture: CaptureDevice | None = None
    pipeline: CapturePipeline | None = None
    volume_monitor: VolumeMonitor | None = None

    # ------------------------------------------------------------------
    # Playback side
    # ------------------------------------------------------------------

    output: OutputDevice | None = None
    scheduler: PlaybackScheduler | None = None

    # ------------------------------------------------------------------
    # Remote endpoint
    # ------------------------------------------------------------------

    transport: LiveTransport | None = None

    # ------------------------------------------------------------------
    # Post-call material
    # ------------------------------------------------------------------

    transcript: InterviewTranscript = field(init=False)

    def __post_init__(self) -> None:
        self.transcript = InterviewTranscript(session_id=self.session_id)

    def holds_resources(self) -> bool:
        """True while any device or connection handle is still held."""
        return any(
            handle is not None
            for handle in (self.capture, self.output, self.transport)
        )
