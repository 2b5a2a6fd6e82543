"""
Gemini Live streaming adapter (speech in, speech out).

Core model:
- One WebSocket connection per interview; it is never reconnected.
- Mic packets are queued from the moment the transport exists and flushed
  in order once setup completes. send_audio never blocks; only a stalled
  socket that overflows the bounded outbox loses the oldest packets.
- Server messages are translated into interview events by
  protocol.live_messages and handed to emit_event.

Design constraints:
- Adapter must not call the reducer directly.
- Adapter must not own session state transitions.
- Terminal events (Closed/Errored) are emitted at most once and never after
  close() was requested locally.
"""

from __future__ import annotations

import asyncio
import json
import urllib.parse
from typing import Any, Callable

import websockets
from websockets.asyncio.client import ClientConnection, connect as ws_connect

from adapters.live.base import EmitEvent, LiveClient, LiveTransport
from audio.packets import AudioPacket
from constants import LIVE_OUTBOX_MAX_PACKETS, LIVE_SETUP_TIMEOUT_S
from errors import DeviceReleaseError, LiveConnectionError
from interview.events import Closed, Errored, Event, EventType
from observability.logger import exception_fields, log_event, now_ms
from protocol.live_messages import (
    LiveProtocolError,
    build_realtime_input,
    build_setup_message,
    decode_server_message,
    events_from_server_message,
    is_setup_complete,
)

# Inbound audio turns can exceed the library's 1 MiB default frame limit.
_MAX_FRAME_BYTES = 2**24

_CONNECT_ERRORS = (OSError, asyncio.TimeoutError, websockets.WebSocketException, LiveProtocolError)


class GeminiLiveTransport(LiveTransport):
    """One BidiGenerateContent session."""

    def __init__(
        self,
        *,
        emit_event: EmitEvent,
        session_id: str,
        url: str,
        api_key: str | None,
        model: str,
        setup_timeout_s: float = LIVE_SETUP_TIMEOUT_S,
        outbox_max_packets: int = LIVE_OUTBOX_MAX_PACKETS,
        connect: Callable[..., Any] = ws_connect,
    ) -> None:
        self._emit_event = emit_event
        self._session_id = session_id
        self._url = url
        self._api_key = api_key
        self._model = model
        self._setup_timeout_s = setup_timeout_s
        self._connect = connect

        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[AudioPacket] = asyncio.Queue(maxsize=outbox_max_packets)
        self._dropped_packets = 0
        self._recv_task: asyncio.Task[None] | None = None
        self._send_task: asyncio.Task[None] | None = None

        self._closing = False
        self._terminal_emitted = False

    # -------------------------------------------------------------------------
    # LiveTransport
    # -------------------------------------------------------------------------

    async def open(
        self,
        *,
        system_instruction: str,
        voice: str,
        transcripts: bool,
    ) -> None:
        if not self._api_key:
            raise LiveConnectionError("GEMINI_API_KEY is not set")

        ws: ClientConnection | None = None
        try:
            ws = await self._connect(self._build_url(), max_size=_MAX_FRAME_BYTES)
            await ws.send(json.dumps(build_setup_message(
                model=self._model,
                system_instruction=system_instruction,
                voice=voice,
                transcripts=transcripts,
            )))
            await asyncio.wait_for(self._await_setup_complete(ws), self._setup_timeout_s)
        except _CONNECT_ERRORS as e:
            await self._discard(ws)
            raise LiveConnectionError(f"live session open failed: {e!r}") from e
        except asyncio.CancelledError:
            await self._discard(ws)
            raise

        if self._closing:
            # close() raced the handshake
            await self._discard(ws)
            raise LiveConnectionError("live session closed during setup")

        self._ws = ws
        self._recv_task = asyncio.create_task(self._recv_loop(ws))
        self._send_task = asyncio.create_task(self._send_loop(ws))

        log_event({
            "event_type": "live_connected",
            "session_id": self._session_id,
            "model": self._model,
            "voice": voice,
            "transcripts": transcripts,
            "queued_packets": self._outbox.qsize(),
        })

    def send_audio(self, packet: AudioPacket) -> None:
        if self._closing:
            return
        if self._outbox.full():
            self._outbox.get_nowait()
            self._dropped_packets += 1
            if self._dropped_packets == 1:
                log_event({
                    "event_type": "live_outbox_overflow",
                    "session_id": self._session_id,
                    "max_packets": self._outbox.maxsize,
                })
        self._outbox.put_nowait(packet)

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True

        # close() may run inside one of our own loops (teardown dispatched
        # from a received Closed event); never cancel the caller.
        current = asyncio.current_task()
        tasks = [t for t in (self._recv_task, self._send_task) if t is not None]
        self._recv_task = None
        self._send_task = None
        others = [t for t in tasks if t is not current]
        for task in others:
            task.cancel()
        if others:
            await asyncio.gather(*others, return_exceptions=True)

        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except (OSError, websockets.WebSocketException) as e:
                raise DeviceReleaseError(f"live connection failed to close: {e!r}") from e

        log_event({
            "event_type": "live_closed",
            "session_id": self._session_id,
            "unsent_packets": self._outbox.qsize(),
            "dropped_packets": self._dropped_packets,
        })

    # -------------------------------------------------------------------------
    # Connection helpers
    # -------------------------------------------------------------------------

    def _build_url(self) -> str:
        qs = urllib.parse.urlencode({"key": self._api_key})
        return f"{self._url}?{qs}"

    async def _await_setup_complete(self, ws: ClientConnection) -> None:
        while True:
            message = decode_server_message(await ws.recv())
            if is_setup_complete(message):
                return
            log_event({
                "event_type": "live_message_before_setup",
                "session_id": self._session_id,
                "keys": sorted(message),
            })

    async def _discard(self, ws: ClientConnection | None) -> None:
        if ws is None:
            return
        try:
            await ws.close()
        except (OSError, websockets.WebSocketException) as e:
            log_event({
                "event_type": "live_discard_failed",
                "session_id": self._session_id,
                **exception_fields(e),
            })

    async def _emit_terminal(self, event: Event) -> None:
        if self._closing or self._terminal_emitted:
            return
        self._terminal_emitted = True
        await self._emit_event(event)

    # -------------------------------------------------------------------------
    # Background loops
    # -------------------------------------------------------------------------

    async def _recv_loop(self, ws: ClientConnection) -> None:
        """Server messages -> events. Ends with Closed or Errored."""
        try:
            async for raw in ws:
                try:
                    message = decode_server_message(raw)
                except LiveProtocolError as e:
                    log_event({
                        "event_type": "live_message_dropped",
                        "session_id": self._session_id,
                        **exception_fields(e),
                    })
                    continue

                for event in events_from_server_message(message, ts_ms=now_ms()):
                    if self._closing:
                        return
                    await self._emit_event(event)
        except websockets.ConnectionClosedError as e:
            await self._emit_terminal(Errored(
                event_type=EventType.ERRORED,
                ts_ms=now_ms(),
                reason=f"connection lost: {e}",
            ))
            return
        except OSError as e:
            await self._emit_terminal(Errored(
                event_type=EventType.ERRORED,
                ts_ms=now_ms(),
                reason=f"receive failed: {e!r}",
            ))
            return

        await self._emit_terminal(Closed(
            event_type=EventType.CLOSED,
            ts_ms=now_ms(),
            reason=ws.close_reason or None,
        ))

    async def _send_loop(self, ws: ClientConnection) -> None:
        """Queued mic packets -> realtimeInput messages, in capture order."""
        while True:
            packet = await self._outbox.get()
            try:
                await ws.send(json.dumps(build_realtime_input(packet)))
            except websockets.ConnectionClosedOK:
                # Normal remote close; the receive loop reports it
                return
            except (OSError, websockets.WebSocketException) as e:
                await self._emit_terminal(Errored(
                    event_type=EventType.ERRORED,
                    ts_ms=now_ms(),
                    reason=f"send failed: {e!r}",
                ))
                return


class GeminiLiveClient(LiveClient):
    """
    Holds credentials and model selection; one transport per interview.

    Constructed once in the app factory and passed down explicitly.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        url: str,
        setup_timeout_s: float = LIVE_SETUP_TIMEOUT_S,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._url = url
        self._setup_timeout_s = setup_timeout_s

    def create_transport(self, *, emit_event: EmitEvent, session_id: str) -> GeminiLiveTransport:
        return GeminiLiveTransport(
            emit_event=emit_event,
            session_id=session_id,
            url=self._url,
            api_key=self._api_key,
            model=self._model,
            setup_timeout_s=self._setup_timeout_s,
        )
