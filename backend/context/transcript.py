"""
Interview transcript capture.

Responsibilities:
- Store ordered candidate/interviewer utterances
- Merge streamed transcription fragments of the same speaker
- Enforce a character bound (drop oldest entries first)
- Render plain text for post-call evaluation

Non-responsibilities:
- No reducer logic
- No prompt formatting beyond speaker labels
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from constants import MAX_TRANSCRIPT_CHARS
from observability.logger import log_event


Role = Literal["user", "agent"]

SPEAKER_LABELS: dict[str, str] = {
    "user": "Candidate",
    "agent": "Interviewer",
}


@dataclass
class Utterance:
    """Consecutive speech from one side of the call."""
    role: Role
    text: str


class InterviewTranscript:
    """
    Mutable transcript owned by one interview session.

    Live transcription arrives as short fragments; consecutive fragments
    from the same speaker are joined into one utterance.
    """

    def __init__(
        self,
        session_id: str | None = None,
        max_chars: int = MAX_TRANSCRIPT_CHARS,
    ) -> None:
        self._session_id = session_id
        self._max_chars = max_chars
        self._entries: list[Utterance] = []

    @property
    def entries(self) -> tuple[Utterance, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, role: Role, text: str) -> None:
        """Add a fragment and enforce the size bound."""
        if not text:
            return
        if self._entries and self._entries[-1].role == role:
            self._entries[-1].text += text
        else:
            self._entries.append(Utterance(role=role, text=text))
        self._truncate()

    def as_text(self) -> str:
        """One line per utterance, prefixed by the speaker label."""
        return "\n".join(
            f"{SPEAKER_LABELS[u.role]}: {u.text.strip()}"
            for u in self._entries
        )

    def _truncate(self) -> None:
        while sum(len(u.text) for u in self._entries) > self._max_chars:
            if len(self._entries) == 1:
                # Keep the tail of a single oversized utterance
                only = self._entries[0]
                only.text = only.text[-self._max_chars:]
                break

            dropped = self._entries.pop(0)
            log_event({
                "event_type": "transcript_utterance_dropped",
                "session_id": self._session_id,
                "role": dropped.role,
                "char_count": len(dropped.text),
            })
