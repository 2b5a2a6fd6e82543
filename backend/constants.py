"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for the behavioral constants of the interview pipeline.

Rules:
- If changing a value changes runtime behavior, it belongs here
  (deployment settings such as API keys and model names live in config.py).
- No magic numbers elsewhere in the codebase.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Capture format (mic -> remote): PCM16 mono @ 16kHz
# =============================================================================

CAPTURE_SAMPLE_RATE_HZ: Final[int] = 16_000
CAPTURE_CHANNELS: Final[int] = 1

# Smallest block the capture path reliably supports; overridable via config.
CAPTURE_FRAME_SIZE_DEFAULT: Final[int] = 512
CAPTURE_FRAME_SIZE_MIN: Final[int] = 256
CAPTURE_FRAME_SIZE_MAX: Final[int] = 4096

# =============================================================================
# Playback format (remote -> speaker): PCM16 mono @ 24kHz
# =============================================================================

PLAYBACK_SAMPLE_RATE_HZ: Final[int] = 24_000
PLAYBACK_CHANNELS: Final[int] = 1
PLAYBACK_BLOCK_SIZE: Final[int] = 480  # 20ms at 24kHz

# =============================================================================
# PCM16 conversion
# =============================================================================

PCM16_SCALE: Final[float] = 32768.0
PCM16_MIN: Final[int] = -32768
PCM16_MAX: Final[int] = 32767
PCM16_SAMPLE_WIDTH_BYTES: Final[int] = 2

PCM_MIME_PREFIX: Final[str] = "audio/pcm"

# =============================================================================
# Session timing
# =============================================================================

INTERVIEW_COUNTDOWN_S_DEFAULT: Final[int] = 15 * 60
COUNTDOWN_TICK_S: Final[float] = 1.0

# Upper bound on waiting for the remote setup acknowledgement.
LIVE_SETUP_TIMEOUT_S: Final[float] = 10.0

# Mic packets held while the socket is not sending (~2 min of 512-sample
# frames at 16 kHz). Past this the oldest packets are dropped.
LIVE_OUTBOX_MAX_PACKETS: Final[int] = 4096

# =============================================================================
# Volume monitor (analyser-node emulation)
# =============================================================================

VOLUME_SAMPLE_INTERVAL_S: Final[float] = 1.0 / 60.0
VOLUME_MIN_DECIBELS: Final[float] = -100.0
VOLUME_MAX_DECIBELS: Final[float] = -30.0

# =============================================================================
# Transcript bounds (post-call evaluation input)
# =============================================================================

MAX_TRANSCRIPT_CHARS: Final[int] = 20_000

# =============================================================================
# UI status push
# =============================================================================

STATUS_PUSH_INTERVAL_MS: Final[int] = 100


# =============================================================================
# Helper Functions
# =============================================================================

def samples_to_seconds(num_samples: int, sample_rate_hz: int) -> float:
    """
    Convert a sample count to a duration in seconds.

    Non-positive input returns 0.0.
    """
    if num_samples <= 0:
        return 0.0
    return num_samples / float(sample_rate_hz)


def format_remaining(seconds: int) -> str:
    """Render a countdown value as MM:SS."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
