"""TCP stream framing for the 24-byte-header protocol.

This module provides FrameReassembler for extracting complete frames from a
device connection's byte stream, whatever the chunk boundaries are.
"""

from __future__ import annotations

import struct

from conga_controller.const import HEADER_SIZE, MAX_FRAME_SIZE
from conga_controller.protocol.exceptions import PacketFramingError
from conga_controller.protocol.packet import Packet, PacketCodec

_SIZE = struct.Struct("<I")


class FrameReassembler:
    r"""Accumulate stream bytes and cut them into frames.

    The first four bytes of every frame hold its total size. Reads may return a
    partial frame, several frames, or split the size field itself; bytes are
    buffered until a whole frame is available.

    Algorithm:

    1. Append the incoming chunk to the accumulator
    2. While at least 4 bytes are buffered, peek the u32 size
    3. Reject sizes below the header length or above MAX_FRAME_SIZE
    4. If the accumulator holds ``size`` bytes, decode and drop one frame
    5. Otherwise wait for more data

    Unlike a resynchronising framer, a bad size is fatal: the stream offset is
    lost and the connection has to be dropped. Frames completed earlier in the
    same chunk travel on the error.

    Example:
        framer = FrameReassembler()
        assert framer.feed(frame[:3]) == []   # size field still incomplete
        packets = framer.feed(frame[3:])      # -> [Packet(...)]

    """

    def __init__(self, max_frame_size: int = MAX_FRAME_SIZE) -> None:
        self.buffer: bytearray = bytearray()
        self.max_frame_size = max_frame_size

    def feed(self, data: bytes) -> list[Packet]:
        """Add ``data`` and return every frame it completed, in stream order.

        Raises:
            PacketFramingError: the declared size is impossible; frames decoded
                before it are carried on the exception's ``packets``
            PacketDecodeError: a complete frame failed to decode
        """
        self.buffer.extend(data)
        packets: list[Packet] = []
        while len(self.buffer) >= _SIZE.size:
            (size,) = _SIZE.unpack_from(self.buffer)
            if size < HEADER_SIZE:
                raise PacketFramingError("size_too_small", len(self.buffer), packets)
            if size > self.max_frame_size:
                raise PacketFramingError("size_too_large", len(self.buffer), packets)
            if len(self.buffer) < size:
                break
            packets.append(PacketCodec.decode(self.buffer[:size]))
            del self.buffer[:size]
        return packets

    def reset(self) -> None:
        self.buffer.clear()
