"""Unit tests for FrameReassembler TCP stream framing."""

import struct

import pytest

from conga_controller.protocol.exceptions import PacketFramingError
from conga_controller.protocol.packet_framer import FrameReassembler

HEADER_SIZE = 24
SMALL_MAX_FRAME = 64
FRAME_COUNT = 3


class TestFrameReassemblerBasic:
    """Basic FrameReassembler functionality tests."""

    def test_empty_feed_returns_nothing(self) -> None:
        framer = FrameReassembler()
        assert framer.feed(b"") == []
        assert len(framer.buffer) == 0

    def test_complete_frame_single_read(self, frame_factory) -> None:
        framer = FrameReassembler()
        raw = frame_factory("QMSG_PING", b"\x01\x02\x03", sequence=5)

        packets = framer.feed(raw)

        assert len(packets) == 1
        assert packets[0].opname == "QMSG_PING"
        assert packets[0].sequence == 5
        assert packets[0].payload == b"\x01\x02\x03"
        assert len(framer.buffer) == 0

    def test_header_only_frame(self, frame_factory) -> None:
        framer = FrameReassembler()
        packets = framer.feed(frame_factory("QMSG_DEVICE_INFO"))
        assert len(packets) == 1
        assert packets[0].payload == b""

    def test_multiple_frames_single_read(self, frame_factory) -> None:
        framer = FrameReassembler()
        stream = b"".join(frame_factory("QMSG_PING", bytes([i]), sequence=i) for i in range(FRAME_COUNT))

        packets = framer.feed(stream)

        assert [p.sequence for p in packets] == list(range(FRAME_COUNT))
        assert len(framer.buffer) == 0


class TestFrameReassemblerPartial:
    """Frames split across reads are buffered until complete."""

    def test_byte_by_byte(self, frame_factory) -> None:
        framer = FrameReassembler()
        raw = frame_factory("QMSG_BATTERY_LEVEL", b"\x0a\x02\x08\x64")

        collected = []
        for i in range(len(raw)):
            collected.extend(framer.feed(raw[i : i + 1]))

        assert len(collected) == 1
        assert collected[0].payload == b"\x0a\x02\x08\x64"

    def test_several_frames_byte_by_byte(self, frame_factory) -> None:
        framer = FrameReassembler()
        stream = b"".join(
            frame_factory("QMSG_PING", bytes([i]) * i, sequence=i) for i in range(FRAME_COUNT)
        )

        collected = []
        for i in range(len(stream)):
            collected.extend(framer.feed(stream[i : i + 1]))

        assert [p.sequence for p in collected] == list(range(FRAME_COUNT))
        assert [p.payload for p in collected] == [bytes([i]) * i for i in range(FRAME_COUNT)]
        assert len(framer.buffer) == 0

    def test_split_inside_size_field(self, frame_factory) -> None:
        framer = FrameReassembler()
        raw = frame_factory("QMSG_PING", b"xyz")

        assert framer.feed(raw[:3]) == []
        assert len(framer.buffer) == 3
        packets = framer.feed(raw[3:])

        assert len(packets) == 1
        assert packets[0].payload == b"xyz"

    def test_trailing_partial_frame_stays_buffered(self, frame_factory) -> None:
        framer = FrameReassembler()
        first = frame_factory("QMSG_PING", sequence=1)
        second = frame_factory("QMSG_PING", b"\x00" * 8, sequence=2)

        packets = framer.feed(first + second[:10])
        assert [p.sequence for p in packets] == [1]
        assert len(framer.buffer) == 10

        packets = framer.feed(second[10:])
        assert [p.sequence for p in packets] == [2]
        assert len(framer.buffer) == 0

    def test_reset_clears_buffer(self, frame_factory) -> None:
        framer = FrameReassembler()
        framer.feed(frame_factory("QMSG_PING", b"\x00" * 4)[:10])
        framer.reset()
        assert len(framer.buffer) == 0


class TestFrameReassemblerErrors:
    """Impossible sizes are fatal for the stream."""

    def test_size_smaller_than_header(self) -> None:
        framer = FrameReassembler()
        with pytest.raises(PacketFramingError) as exc_info:
            framer.feed(struct.pack("<I", HEADER_SIZE - 1) + b"\x00" * 30)
        assert exc_info.value.reason == "size_too_small"

    def test_size_above_limit(self) -> None:
        framer = FrameReassembler(max_frame_size=SMALL_MAX_FRAME)
        with pytest.raises(PacketFramingError) as exc_info:
            framer.feed(struct.pack("<I", SMALL_MAX_FRAME + 1))
        assert exc_info.value.reason == "size_too_large"

    def test_frames_before_bad_size_travel_on_the_error(self, frame_factory) -> None:
        framer = FrameReassembler()
        stream = b"".join(frame_factory("QMSG_PING", sequence=i) for i in range(FRAME_COUNT))

        with pytest.raises(PacketFramingError) as exc_info:
            framer.feed(stream + struct.pack("<I", 0))

        assert exc_info.value.reason == "size_too_small"
        assert [p.sequence for p in exc_info.value.packets] == list(range(FRAME_COUNT))

    def test_bad_size_first_carries_no_packets(self) -> None:
        framer = FrameReassembler(max_frame_size=SMALL_MAX_FRAME)
        with pytest.raises(PacketFramingError) as exc_info:
            framer.feed(struct.pack("<I", SMALL_MAX_FRAME + 1))
        assert exc_info.value.packets == []
