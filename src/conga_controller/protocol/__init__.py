"""Conga protocol package - frame codec, payload schemas, map decoders and framing.

Public API:
- Opcode tables (OPCODES, OPNAMES, COMMANDS)
- Packet dataclass, PacketCodec and PacketBuilder
- PayloadCodec for schema and binary payloads
- FrameReassembler for stream framing
"""

from conga_controller.protocol.byte_cursor import ByteCursor
from conga_controller.protocol.exceptions import (
    CongaProtocolError,
    CorruptMapPayloadError,
    PacketDecodeError,
    PacketFramingError,
    SchemaValidationError,
    TruncatedFrameError,
    UnexpectedEndOfBufferError,
    UnhandledMapSectionError,
    UnsupportedMapSectionError,
)
from conga_controller.protocol.opcodes import COMMANDS, OPCODES, OPNAMES
from conga_controller.protocol.packet import Packet, PacketBuilder, PacketCodec
from conga_controller.protocol.packet_framer import FrameReassembler
from conga_controller.protocol.payload_codec import PayloadCodec

__all__ = [
    "COMMANDS",
    "OPCODES",
    "OPNAMES",
    "ByteCursor",
    "CongaProtocolError",
    "CorruptMapPayloadError",
    "FrameReassembler",
    "Packet",
    "PacketBuilder",
    "PacketCodec",
    "PacketDecodeError",
    "PacketFramingError",
    "PayloadCodec",
    "SchemaValidationError",
    "TruncatedFrameError",
    "UnexpectedEndOfBufferError",
    "UnhandledMapSectionError",
    "UnsupportedMapSectionError",
]
