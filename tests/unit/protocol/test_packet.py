"""Unit tests for the packet header codec and PacketBuilder."""

import struct

import pytest

from conga_controller.protocol.exceptions import PacketDecodeError, TruncatedFrameError
from conga_controller.protocol.opcodes import COMMANDS, OPCODES, opcode_of, opname_of
from conga_controller.protocol.packet import Packet, PacketBuilder, PacketCodec

HEADER_SIZE = 24
DEVICE_ID = 1001
USER_ID = 2002
SEQUENCE = 0x1122334455667788


class TestPacketDecode:
    """Decoding reads the inbound field order."""

    def test_decode_fields(self, frame_factory) -> None:
        raw = frame_factory(
            "QMSG_PING",
            b"\x01\x02",
            flow=0,
            device_id=DEVICE_ID,
            user_id=USER_ID,
            sequence=SEQUENCE,
        )
        packet = PacketCodec.decode(raw)

        assert packet.size == HEADER_SIZE + 2
        assert packet.ctype == 2
        assert packet.flow == 0
        assert packet.device_id == DEVICE_ID
        assert packet.user_id == USER_ID
        assert packet.sequence == SEQUENCE
        assert packet.opname == "QMSG_PING"
        assert packet.payload == b"\x01\x02"

    def test_extra_bytes_are_ignored(self, frame_factory) -> None:
        raw = frame_factory("QMSG_PING") + b"\xff\xff"
        assert PacketCodec.decode(raw).payload == b""

    def test_truncated_frame(self, frame_factory) -> None:
        raw = frame_factory("QMSG_PING", b"\x00" * 10)
        with pytest.raises(TruncatedFrameError) as exc_info:
            PacketCodec.decode(raw[:-1])
        assert exc_info.value.declared == HEADER_SIZE + 10
        assert exc_info.value.available == HEADER_SIZE + 9

    def test_size_below_header_is_rejected(self) -> None:
        raw = struct.pack("<I", 10) + b"\x00" * 30
        with pytest.raises(PacketDecodeError) as exc_info:
            PacketCodec.decode(raw)
        assert exc_info.value.reason == "invalid_size"

    def test_unknown_opcode_has_no_name(self, packet_factory) -> None:
        packet = Packet(ctype=2, flow=0, device_id=1, user_id=2, sequence=0, opcode=0xFFFF)
        assert packet.opname is None
        assert "0xFFFF" in packet.describe()


class TestPacketEncode:
    """Encoding writes user_id before device_id."""

    def test_encode_writes_user_id_first(self, packet_factory) -> None:
        packet = packet_factory("QMSG_DEVICE_CHECK", device_id=DEVICE_ID, user_id=USER_ID)
        raw = PacketCodec.encode(packet)

        size, _ctype, _flow, slot_a, slot_b, _seq, opcode = struct.unpack_from("<IBBIIQH", raw)
        assert size == HEADER_SIZE
        assert slot_a == USER_ID
        assert slot_b == DEVICE_ID
        assert opcode == OPCODES["QMSG_DEVICE_CHECK"]

    def test_round_trip_swaps_ids(self, packet_factory) -> None:
        packet = packet_factory("QMSG_PING", b"abc", device_id=DEVICE_ID, user_id=USER_ID, sequence=9)
        decoded = PacketCodec.decode(PacketCodec.encode(packet))

        assert decoded.device_id == USER_ID
        assert decoded.user_id == DEVICE_ID
        assert decoded.sequence == packet.sequence
        assert decoded.payload == packet.payload


class TestPacketReply:
    """as_reply keeps the request header and bumps flow."""

    def test_as_reply(self, packet_factory) -> None:
        request = packet_factory("QMSG_PING", device_id=DEVICE_ID, user_id=USER_ID, sequence=12)
        reply = request.as_reply("RMSG_PING", b"\x08\x00")

        assert reply.opname == "RMSG_PING"
        assert reply.flow == request.flow + 1
        assert reply.sequence == request.sequence
        assert reply.device_id == DEVICE_ID
        assert reply.user_id == USER_ID
        assert reply.size == HEADER_SIZE + 2

    def test_clone_is_equal_but_distinct(self, packet_factory) -> None:
        packet = packet_factory("QMSG_PING")
        clone = packet.clone()
        assert clone == packet
        assert clone is not packet


class TestPacketBuilder:
    """Builder stamps addressing and increments the sequence."""

    def test_sequence_increments_per_build(self) -> None:
        builder = PacketBuilder()
        builder.set_addressing(USER_ID, DEVICE_ID)

        first = builder.build("QMSG_DEVICE_CHECK")
        second = builder.build("QMSG_DEVICE_TIME", b"\x01")

        assert first.sequence == 0
        assert second.sequence == 1
        assert first.user_id == USER_ID
        assert first.device_id == DEVICE_ID
        assert first.flow == 0
        assert first.ctype == 2
        assert second.payload == b"\x01"

    def test_unknown_opname_raises(self) -> None:
        with pytest.raises(KeyError):
            PacketBuilder().build("QMSG_DOES_NOT_EXIST")


class TestOpcodeTable:
    """Opcode table lookups."""

    def test_lookup_both_ways(self) -> None:
        assert opcode_of("QMSG_DEVICE_LOGIN") == 0x07D1
        assert opname_of(0x07D1) == "QMSG_DEVICE_LOGIN"

    def test_every_command_pair_is_known(self) -> None:
        for request, reply in COMMANDS.values():
            assert request in OPCODES
            assert reply in OPCODES
