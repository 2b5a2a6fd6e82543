# pylint: disable=missing-module-docstring,missing-function-docstring
import numpy as np
import pytest

from audio.capture import CapturePipeline, FrameAssembler
from audio.packets import AudioPacket
from audio.pcm import decode_packet
from fakes import FakeCapture


def ramp(start: int, count: int) -> np.ndarray:
    # Distinct, exactly representable values so ordering is checkable
    return (np.arange(start, start + count, dtype=np.float32) / 32768.0).astype(np.float32)


# ---------------------------------------------------------------------
# FrameAssembler
# ---------------------------------------------------------------------

def test_partial_blocks_accumulate_into_whole_frames() -> None:
    assembler = FrameAssembler(512)

    assert assembler.add(ramp(0, 300)) == []
    frames = assembler.add(ramp(300, 300))

    assert len(frames) == 1
    np.testing.assert_array_equal(frames[0], ramp(0, 512))


def test_large_block_yields_several_frames_and_keeps_remainder() -> None:
    assembler = FrameAssembler(512)

    frames = assembler.add(ramp(0, 1100))
    assert [len(f) for f in frames] == [512, 512]

    frames = assembler.add(ramp(1100, 436))  # 76 left over + 436 = 512
    assert len(frames) == 1
    np.testing.assert_array_equal(frames[0], ramp(1024, 512))


def test_clear_drops_partial_frame() -> None:
    assembler = FrameAssembler(256)
    assembler.add(ramp(0, 200))
    assembler.clear()

    assert assembler.add(ramp(0, 100)) == []


def test_frame_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        FrameAssembler(0)


# ---------------------------------------------------------------------
# CapturePipeline
# ---------------------------------------------------------------------

def test_pipeline_sends_one_packet_per_frame_in_order() -> None:
    device = FakeCapture(sample_rate_hz=16000)
    sent: list[AudioPacket] = []
    pipeline = CapturePipeline(device=device, send=sent.append, frame_size=512)

    pipeline.start()
    device.deliver(ramp(0, 700))
    device.deliver(ramp(700, 400))

    assert pipeline.frames_sent == 2
    assert [p.num_samples for p in sent] == [512, 512]
    assert all(p.mime_type == "audio/pcm;rate=16000" for p in sent)

    first = decode_packet(sent[0].data)
    second = decode_packet(sent[1].data)
    assert list(first[:3]) == [0, 1, 2]
    assert int(second[0]) == 512


def test_pipeline_stop_discards_partial_frame() -> None:
    device = FakeCapture()
    sent: list[AudioPacket] = []
    pipeline = CapturePipeline(device=device, send=sent.append, frame_size=512)

    pipeline.start()
    device.deliver(ramp(0, 500))
    pipeline.stop()
    device.deliver(ramp(0, 500))

    assert sent == []
