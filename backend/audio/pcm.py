"""PCM conversion utilities."""
from __future__ import annotations

import base64
import binascii
from typing import Sequence

import numpy as np

from audio.packets import AudioPacket
from constants import (
    CAPTURE_SAMPLE_RATE_HZ,
    PCM16_MAX,
    PCM16_MIN,
    PCM16_SAMPLE_WIDTH_BYTES,
    PCM16_SCALE,
    PCM_MIME_PREFIX,
    PLAYBACK_SAMPLE_RATE_HZ,
)
from errors import MalformedPacket


def float_to_pcm16(samples: Sequence[float] | np.ndarray) -> np.ndarray:
    """
    Convert float samples in [-1.0, 1.0] to int16.

    Scales by 32768 and truncates toward zero. Out-of-range values are
    saturated to the int16 range, so 1.0 maps to 32767 instead of wrapping
    to -32768.
    """
    scaled = np.asarray(samples, dtype=np.float32) * np.float32(PCM16_SCALE)
    return np.clip(np.trunc(scaled), PCM16_MIN, PCM16_MAX).astype("<i2")


def to_float_samples(pcm: np.ndarray) -> np.ndarray:
    """
    Convert int16 samples to float32 in [-1.0, 1.0).

    No resampling. No channel mixing.
    """
    return pcm.astype(np.float32) / np.float32(PCM16_SCALE)


def encode_packet(
    samples: Sequence[float] | np.ndarray,
    *,
    sample_rate_hz: int = CAPTURE_SAMPLE_RATE_HZ,
) -> AudioPacket:
    """
    Encode one frame of float samples as a transport-ready packet.

    PCM16 little-endian bytes, base64 text, tagged audio/pcm;rate=<rate>.
    """
    pcm = float_to_pcm16(samples)
    return AudioPacket(
        data=base64.b64encode(pcm.tobytes()).decode("ascii"),
        mime_type=f"{PCM_MIME_PREFIX};rate={sample_rate_hz}",
        sample_rate_hz=sample_rate_hz,
        num_samples=int(pcm.shape[0]),
    )


def decode_packet(encoded: str) -> np.ndarray:
    """
    Decode base64 text into PCM16 little-endian samples.

    Raises:
        MalformedPacket if the text is not valid base64 or the decoded
        byte length is not a multiple of 2.
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedPacket(f"invalid base64 audio payload: {e}") from e

    if len(raw) % PCM16_SAMPLE_WIDTH_BYTES != 0:
        raise MalformedPacket(f"odd PCM16 byte length {len(raw)}")

    return np.frombuffer(raw, dtype="<i2")


def parse_sample_rate(mime_type: str | None, default: int = PLAYBACK_SAMPLE_RATE_HZ) -> int:
    """
    Read the rate parameter from a media-type tag.

    "audio/pcm;rate=24000" -> 24000. Missing or unparsable rates give default.
    """
    if not mime_type:
        return default
    for param in mime_type.split(";")[1:]:
        key, _, value = param.strip().partition("=")
        if key.strip().lower() == "rate":
            try:
                rate = int(value.strip())
            except ValueError:
                return default
            return rate if rate > 0 else default
    return default


def inbound_packet(data: str, mime_type: str | None) -> AudioPacket:
    """
    Wrap a received base64 payload without decoding it.

    The sample count is derived from the encoded length; decoding (and
    validation) happens at playback time.
    """
    rate = parse_sample_rate(mime_type)
    byte_len = (len(data) * 3) // 4 - data.count("=", max(0, len(data) - 2))
    return AudioPacket(
        data=data,
        mime_type=mime_type or f"{PCM_MIME_PREFIX};rate={rate}",
        sample_rate_hz=rate,
        num_samples=max(0, byte_len) // PCM16_SAMPLE_WIDTH_BYTES,
    )
