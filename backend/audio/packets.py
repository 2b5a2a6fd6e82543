"""
Audio packet primitives.

Pure data containers only.
No behavior, no queues, no timing logic.
"""

from __future__ import annotations
from dataclasses import dataclass

from constants import samples_to_seconds


@dataclass(frozen=True)
class AudioPacket:
    """
    One unit of outbound (mic) or inbound (agent speech) audio.

    data:
        Base64 text of little-endian PCM16 mono bytes.

    mime_type:
        Media-type tag, e.g. "audio/pcm;rate=16000".

    sample_rate_hz:
        16000 for outbound packets, 24000 for inbound packets.

    num_samples:
        Sample count of the underlying buffer. Fixed for outbound packets
        (the capture frame size), variable for inbound packets.
    """
    data: str
    mime_type: str
    sample_rate_hz: int
    num_samples: int

    @property
    def duration_s(self) -> float:
        """Playback duration of the packet."""
        return samples_to_seconds(self.num_samples, self.sample_rate_hz)
