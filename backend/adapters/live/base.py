"""
Live conversational endpoint contract.

Purpose:
- Define the interface the interview runtime uses to talk to a remote
  speech-to-speech model.
- Keep all session semantics (countdown, teardown order, playback) OUT
  of the transport.

Rules:
- This file contains NO logic.
- No reconnects: a dropped connection ends the interview.
- Inbound traffic is surfaced only as interview events.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from audio.packets import AudioPacket
from interview.events import Event

EmitEvent = Callable[[Event], Awaitable[None]]


class LiveTransport(ABC):
    """
    One bidirectional audio session with the remote model.

    The transport is a *dumb pipe*:
    mic packets -> vendor, vendor messages -> events.

    Events it may emit through emit_event (only after open() returned):
    - AudioChunk, Interrupted, Transcript
    - Closed (remote ended the session)
    - Errored (send/receive failure)
    """

    @abstractmethod
    async def open(
        self,
        *,
        system_instruction: str,
        voice: str,
        transcripts: bool,
    ) -> None:
        """
        Connect and complete the setup handshake.

        Contract:
        - Returns only once the remote acknowledged setup.
        - Raises LiveConnectionError on any failure; nothing is left open.
        - Cancellation closes whatever was opened and re-raises.
        """
        raise NotImplementedError

    @abstractmethod
    def send_audio(self, packet: AudioPacket) -> None:
        """
        Queue one outbound packet.

        Contract:
        - Never blocks and never drops: packets sent before the connection
          is ready are held and flushed in order once it is.
        - Packets after close() are discarded.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """
        Close the connection if still open.

        Contract:
        - Idempotent.
        - Emits no further events.
        """
        raise NotImplementedError


class LiveClient(ABC):
    """Factory for per-session transports (holds credentials and model)."""

    @abstractmethod
    def create_transport(self, *, emit_event: EmitEvent, session_id: str) -> LiveTransport:
        raise NotImplementedError
