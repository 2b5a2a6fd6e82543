"""
JSON message helpers for the Gemini Live bidirectional stream.

Client -> Server:
    {"setup": {...}}                              once, first message
    {"realtimeInput": {"mediaChunks": [...]}}     one per mic frame

Server -> Client:
    {"setupComplete": {}}                         handshake acknowledgement
    {"serverContent": {
        "modelTurn": {"parts": [{"inlineData": {"mimeType", "data"}}]},
        "interrupted": true,
        "inputTranscription": {"text": ...},
        "outputTranscription": {"text": ...},
        "turnComplete": true,
    }}

Usage example:

    await ws.send(json.dumps(build_setup_message(model=..., ...)))
    message = decode_server_message(raw)
    for event in events_from_server_message(message, ts_ms=now_ms()):
        await emit_event(event)

Pure functions: no IO, no clocks.
"""

from __future__ import annotations

import json
from typing import Any

from audio.packets import AudioPacket
from audio.pcm import inbound_packet
from interview.events import (
    AudioChunk,
    Event,
    EventType,
    Interrupted,
    Transcript,
)


class LiveProtocolError(ValueError):
    """
    Raised when a server message is not a JSON object.

    The message is unsafe to interpret and must be dropped.
    """


# -------------------------
# Client -> Server
# -------------------------

def build_setup_message(
    *,
    model: str,
    system_instruction: str,
    voice: str,
    transcripts: bool,
) -> dict[str, Any]:
    """First message on a new connection: audio-only responses."""
    if not model.startswith("models/"):
        model = f"models/{model}"

    setup: dict[str, Any] = {
        "model": model,
        "generationConfig": {
            "responseModalities": ["AUDIO"],
            "speechConfig": {
                "voiceConfig": {
                    "prebuiltVoiceConfig": {"voiceName": voice},
                },
            },
        },
        "systemInstruction": {
            "parts": [{"text": system_instruction}],
        },
    }
    if transcripts:
        setup["inputAudioTranscription"] = {}
        setup["outputAudioTranscription"] = {}

    return {"setup": setup}


def build_realtime_input(packet: AudioPacket) -> dict[str, Any]:
    """Wrap one encoded mic frame."""
    return {
        "realtimeInput": {
            "mediaChunks": [
                {"mimeType": packet.mime_type, "data": packet.data},
            ],
        },
    }


# -------------------------
# Server -> Client
# -------------------------

def decode_server_message(raw: str | bytes) -> dict[str, Any]:
    """
    Parse one frame from the socket. The server sends JSON as text or binary.

    Raises:
        LiveProtocolError if the frame is not a JSON object.
    """
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise LiveProtocolError(f"invalid JSON frame: {e}") from e

    if not isinstance(message, dict):
        raise LiveProtocolError(f"expected JSON object, got {type(message).__name__}")
    return message


def is_setup_complete(message: dict[str, Any]) -> bool:
    return "setupComplete" in message


def events_from_server_message(message: dict[str, Any], *, ts_ms: int) -> list[Event]:
    """
    Translate one server message into interview events, in message order:
    audio parts first, then interruption, then transcriptions.

    Unknown fields (usage metadata, turnComplete, goAway, ...) yield nothing.
    """
    content = message.get("serverContent")
    if not isinstance(content, dict):
        return []

    events: list[Event] = []

    model_turn = content.get("modelTurn") or {}
    for part in model_turn.get("parts") or []:
        inline = part.get("inlineData") if isinstance(part, dict) else None
        if not inline:
            continue
        mime_type = inline.get("mimeType") or ""
        data = inline.get("data")
        if not data or not mime_type.startswith("audio/"):
            continue
        events.append(AudioChunk(
            event_type=EventType.AUDIO_CHUNK,
            ts_ms=ts_ms,
            packet=inbound_packet(data, mime_type),
        ))

    if content.get("interrupted"):
        events.append(Interrupted(event_type=EventType.INTERRUPTED, ts_ms=ts_ms))

    for key, role in (("inputTranscription", "user"), ("outputTranscription", "agent")):
        text = (content.get(key) or {}).get("text")
        if text:
            events.append(Transcript(
                event_type=EventType.TRANSCRIPT,
                ts_ms=ts_ms,
                role=role,  # type: ignore[arg-type]
                text=text,
            ))

    return events
