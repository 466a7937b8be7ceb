"""Shared fixtures for unit tests.

This module provides frame builders and mock device connections/channels for
testing the Conga controller components without real sockets.
"""

import struct
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from conga_controller.protocol.opcodes import opcode_of
from conga_controller.protocol.packet import Packet
from conga_controller.protocol.payload_codec import PayloadCodec

# Inbound header layout: size, ctype, flow, device_id, user_id, sequence, opcode
INBOUND_HEADER = struct.Struct("<IBBIIQH")

TEST_DEVICE_ID = 4242
TEST_USER_ID = 777

FrameFactory = Callable[..., bytes]
PacketFactory = Callable[..., Packet]


def build_frame(
    opname: str,
    payload: bytes = b"",
    *,
    ctype: int = 2,
    flow: int = 0,
    device_id: int = TEST_DEVICE_ID,
    user_id: int = TEST_USER_ID,
    sequence: int = 0,
) -> bytes:
    """Raw frame bytes as the robot would put them on the wire."""
    header = INBOUND_HEADER.pack(
        INBOUND_HEADER.size + len(payload),
        ctype,
        flow,
        device_id,
        user_id,
        sequence,
        opcode_of(opname),
    )
    return header + payload


def build_packet(
    opname: str,
    payload: bytes = b"",
    *,
    flow: int = 0,
    device_id: int = TEST_DEVICE_ID,
    user_id: int = TEST_USER_ID,
    sequence: int = 0,
) -> Packet:
    return Packet(
        ctype=2,
        flow=flow,
        device_id=device_id,
        user_id=user_id,
        sequence=sequence,
        opcode=opcode_of(opname),
        payload=payload,
    )


@pytest.fixture
def frame_factory() -> FrameFactory:
    """Build inbound frames."""
    return build_frame


@pytest.fixture
def packet_factory() -> PacketFactory:
    """Build decoded packets."""
    return build_packet


@pytest.fixture
def mock_writer() -> MagicMock:
    """Mock asyncio.StreamWriter for a device socket."""
    writer: MagicMock = MagicMock()
    writer.get_extra_info = MagicMock(return_value=("192.168.1.50", 51234))
    writer.is_closing = MagicMock(return_value=False)
    writer.close = MagicMock()
    writer.wait_closed = AsyncMock()
    writer.drain = AsyncMock()
    writer.write = MagicMock()
    return writer


@pytest.fixture
def mock_connection() -> MagicMock:
    """Mock DeviceConnection.

    Returns a MagicMock with the attributes the channel and Message use.
    """
    connection: MagicMock = MagicMock()
    connection.address = "192.168.1.50:51234"
    connection.closing = False
    connection.write = AsyncMock()
    connection.close = AsyncMock()
    return connection


@pytest.fixture
def mock_channel() -> MagicMock:
    """Mock CommandChannel with a real payload codec.

    Replies built through ``Message.reply`` are therefore schema-checked.
    """
    channel: MagicMock = MagicMock()
    channel.name = "cmd"
    channel.codec = PayloadCodec()
    channel.send_command = AsyncMock()
    channel.send = AsyncMock()
    channel.set_addressing = MagicMock()
    channel.start = AsyncMock()
    channel.stop = AsyncMock()
    return channel
