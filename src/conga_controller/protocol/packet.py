"""Frame layout and the header codec.

Every frame starts with a 24-byte little-endian header::

    size      u32   total frame length, header included
    ctype     u8
    flow      u8    0 for requests, 1 for replies
    id A      u32
    id B      u32
    sequence  u64
    opcode    u16
    payload   size - 24 bytes

Inbound frames carry ``device_id`` in slot A and ``user_id`` in slot B.
Outbound frames carry ``user_id`` in slot A and ``device_id`` in slot B. An
encode/decode round trip therefore swaps the two ids.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace

from conga_controller.const import HEADER_SIZE
from conga_controller.protocol.byte_cursor import ByteCursor
from conga_controller.protocol.exceptions import PacketDecodeError, TruncatedFrameError
from conga_controller.protocol.opcodes import opcode_of, opname_of

_HEADER = struct.Struct("<IBBIIQH")

DEFAULT_CTYPE = 2


@dataclass(frozen=True, slots=True)
class Packet:
    """One decoded frame. ``size`` is always derived from the payload."""

    ctype: int
    flow: int
    device_id: int
    user_id: int
    sequence: int
    opcode: int
    payload: bytes = b""

    @property
    def size(self) -> int:
        return HEADER_SIZE + len(self.payload)

    @property
    def opname(self) -> str | None:
        return opname_of(self.opcode)

    def clone(self) -> Packet:
        return replace(self)

    def as_reply(self, opname: str, payload: bytes = b"") -> Packet:
        """Copy of this request turned into its reply: new opcode and payload, flow + 1."""
        return replace(self, opcode=opcode_of(opname), payload=payload, flow=self.flow + 1)

    def describe(self, data: object = None) -> str:
        """One-line rendering for logs; ``data`` is the decoded payload when known."""
        name = self.opname or f"0x{self.opcode:04X}"
        body = data if data is not None else (self.payload.hex() if self.payload else "")
        return (
            f"[S: {self.sequence:016x}] [F: {self.flow}] [{name}] "
            f"[U: {self.user_id}] [D: {self.device_id}] {body}"
        ).rstrip()


class PacketCodec:
    """Stateless header codec."""

    @staticmethod
    def decode(data: bytes | bytearray | memoryview) -> Packet:
        """Decode exactly one frame from the start of ``data``.

        Bytes past the declared size are ignored.

        Raises:
            UnexpectedEndOfBufferError: fewer than 4 bytes available
            TruncatedFrameError: fewer bytes than the declared size
            PacketDecodeError: declared size smaller than a header
        """
        raw = bytes(data)
        cursor = ByteCursor(raw)
        size = cursor.u32()
        if size < HEADER_SIZE:
            raise PacketDecodeError("invalid_size", raw)
        if len(raw) < size:
            raise TruncatedFrameError(size, len(raw), raw)
        return Packet(
            ctype=cursor.u8(),
            flow=cursor.u8(),
            device_id=cursor.u32(),
            user_id=cursor.u32(),
            sequence=cursor.u64(),
            opcode=cursor.u16(),
            payload=cursor.read(size - HEADER_SIZE),
        )

    @staticmethod
    def encode(packet: Packet) -> bytes:
        header = _HEADER.pack(
            packet.size,
            packet.ctype,
            packet.flow,
            packet.user_id,
            packet.device_id,
            packet.sequence,
            packet.opcode,
        )
        return header + packet.payload


class PacketBuilder:
    """Stamps outbound packets with the session's addressing and sequence numbers.

    The sequence counter starts at 0 and is incremented once per built packet.
    """

    def __init__(self, ctype: int = DEFAULT_CTYPE, flow: int = 0) -> None:
        self.ctype = ctype
        self.flow = flow
        self.user_id = 0
        self.device_id = 0
        self.sequence = 0

    def set_addressing(self, user_id: int, device_id: int) -> None:
        self.user_id = user_id
        self.device_id = device_id

    def build(self, opname: str, payload: bytes = b"") -> Packet:
        packet = Packet(
            ctype=self.ctype,
            flow=self.flow,
            device_id=self.device_id,
            user_id=self.user_id,
            sequence=self.sequence,
            opcode=opcode_of(opname),
            payload=payload,
        )
        self.sequence += 1
        return packet
