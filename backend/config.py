"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No session logic
- No wire constants
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    CAPTURE_FRAME_SIZE_DEFAULT,
    CAPTURE_FRAME_SIZE_MAX,
    CAPTURE_FRAME_SIZE_MIN,
    INTERVIEW_COUNTDOWN_S_DEFAULT,
)

LIVE_URL_DEFAULT = (
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the interview gateway and the career service.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Text generation (analysis, roadmap, CV, chat, evaluation)
    # ------------------------------------------------------------------

    text_provider: str = "gemini"
    text_model: str = "gemini-2.5-flash"
    gemini_api_key: str | None = None
    openai_api_key: str | None = None

    # ------------------------------------------------------------------
    # Live voice interview
    # ------------------------------------------------------------------

    live_model: str = "gemini-2.5-flash-native-audio-preview-09-2025"
    live_voice: str = "Zephyr"
    live_url: str = LIVE_URL_DEFAULT
    live_transcripts: bool = True
    interview_countdown_s: int = INTERVIEW_COUNTDOWN_S_DEFAULT
    capture_frame_size: int = CAPTURE_FRAME_SIZE_DEFAULT

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric setting is malformed or out of range.
        """
        frame_size = int(os.environ.get("CAPTURE_FRAME_SIZE", CAPTURE_FRAME_SIZE_DEFAULT))
        if not CAPTURE_FRAME_SIZE_MIN <= frame_size <= CAPTURE_FRAME_SIZE_MAX:
            raise ValueError(
                f"CAPTURE_FRAME_SIZE must be within "
                f"[{CAPTURE_FRAME_SIZE_MIN}, {CAPTURE_FRAME_SIZE_MAX}], got {frame_size}"
            )

        countdown_s = int(os.environ.get("INTERVIEW_COUNTDOWN_S", INTERVIEW_COUNTDOWN_S_DEFAULT))
        if countdown_s <= 0:
            raise ValueError("INTERVIEW_COUNTDOWN_S must be > 0")

        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            text_provider=os.environ.get("TEXT_PROVIDER", "gemini"),
            text_model=os.environ.get("TEXT_MODEL", "gemini-2.5-flash"),
            gemini_api_key=os.environ.get("GEMINI_API_KEY"),
            openai_api_key=os.environ.get("OPENAI_API_KEY"),

            live_model=os.environ.get(
                "LIVE_MODEL", "gemini-2.5-flash-native-audio-preview-09-2025"
            ),
            live_voice=os.environ.get("LIVE_VOICE", "Zephyr"),
            live_url=os.environ.get("LIVE_URL", LIVE_URL_DEFAULT),
            live_transcripts=os.environ.get("LIVE_TRANSCRIPTS", "1") == "1",
            interview_countdown_s=countdown_s,
            capture_frame_size=frame_size,
        )
