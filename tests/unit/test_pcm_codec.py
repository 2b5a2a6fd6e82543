# pylint: disable=missing-module-docstring,missing-function-docstring
import base64

import numpy as np
import pytest

from audio.pcm import (
    decode_packet,
    encode_packet,
    float_to_pcm16,
    inbound_packet,
    parse_sample_rate,
    to_float_samples,
)
from errors import MalformedPacket


def test_round_trip_error_is_at_most_one_quantization_step() -> None:
    samples = np.linspace(-1.0, 0.999, 512, dtype=np.float32)

    packet = encode_packet(samples)
    decoded = to_float_samples(decode_packet(packet.data))

    assert decoded.dtype == np.float32
    assert len(decoded) == len(samples)
    assert float(np.max(np.abs(decoded - samples))) <= 1.0 / 32768


def test_encode_packet_tags_format_and_length() -> None:
    packet = encode_packet(np.zeros(512, dtype=np.float32))

    assert packet.mime_type == "audio/pcm;rate=16000"
    assert packet.sample_rate_hz == 16000
    assert packet.num_samples == 512
    assert len(base64.b64decode(packet.data)) == 1024


def test_encoding_is_little_endian_and_truncates_toward_zero() -> None:
    packet = encode_packet([0.5, -0.5, 0.00001, -0.00001])

    raw = base64.b64decode(packet.data)
    assert raw[:2] == b"\x00\x40"  # 16384 LE
    assert list(np.frombuffer(raw, dtype="<i2")) == [16384, -16384, 0, 0]


def test_out_of_range_samples_saturate() -> None:
    pcm = float_to_pcm16([1.0, -1.0, 1.5, -2.0])

    assert list(pcm) == [32767, -32768, 32767, -32768]


def test_decode_rejects_odd_byte_length() -> None:
    three_bytes = base64.b64encode(b"\x01\x02\x03").decode("ascii")

    with pytest.raises(MalformedPacket):
        decode_packet(three_bytes)


def test_decode_rejects_invalid_base64() -> None:
    with pytest.raises(MalformedPacket):
        decode_packet("not base64 at all!")

    # MalformedPacket is a ValueError for callers that only know builtins
    with pytest.raises(ValueError):
        decode_packet("@@@@")


def test_decode_empty_payload_is_empty() -> None:
    assert len(decode_packet("")) == 0


def test_parse_sample_rate() -> None:
    assert parse_sample_rate("audio/pcm;rate=24000") == 24000
    assert parse_sample_rate("audio/pcm; rate=16000") == 16000
    assert parse_sample_rate("audio/pcm") == 24000
    assert parse_sample_rate("audio/pcm;rate=abc", default=8000) == 8000
    assert parse_sample_rate(None) == 24000


def test_inbound_packet_counts_samples_without_decoding() -> None:
    data = base64.b64encode(b"\x00\x00" * 480).decode("ascii")

    packet = inbound_packet(data, "audio/pcm;rate=24000")

    assert packet.num_samples == 480
    assert packet.sample_rate_hz == 24000
    assert packet.duration_s == pytest.approx(0.02)


def test_inbound_packet_handles_padding() -> None:
    packet = inbound_packet(base64.b64encode(b"\x01\x00").decode("ascii"), None)

    assert packet.num_samples == 1
    assert packet.mime_type == "audio/pcm;rate=24000"
