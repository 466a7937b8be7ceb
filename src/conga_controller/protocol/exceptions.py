"""Exception hierarchy for Conga protocol errors.

Decoding never returns partial results: malformed input raises one of the
errors below and leaves caller state untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from conga_controller.protocol.packet import Packet


class CongaProtocolError(Exception):
    """Base exception for every protocol, codec and transport error."""


class PacketDecodeError(CongaProtocolError):
    """Bytes could not be decoded into a packet or payload.

    Attributes:
        reason: Short machine-friendly reason (e.g. "truncated_frame")
        data_preview: First 16 bytes of the offending data
    """

    def __init__(self, reason: str, data: bytes = b"", message: str | None = None):
        self.reason = reason
        self.data_preview = bytes(data[:16]) if data else b""
        super().__init__(message or f"Packet decode failed: {reason}")


class UnexpectedEndOfBufferError(PacketDecodeError):
    """A read ran past the end of the buffer."""

    def __init__(self, wanted: int, available: int):
        self.wanted = wanted
        self.available = available
        super().__init__(
            "unexpected_end_of_buffer",
            message=f"unexpected end of buffer: wanted {wanted} bytes, {available} available",
        )


class TruncatedFrameError(PacketDecodeError):
    """Fewer bytes than the frame's declared size."""

    def __init__(self, declared: int, available: int, data: bytes = b""):
        self.declared = declared
        self.available = available
        super().__init__(
            "truncated_frame",
            data,
            message=f"truncated frame: declared {declared} bytes, got {available}",
        )


class CorruptMapPayloadError(PacketDecodeError):
    """The map payload failed to inflate."""

    def __init__(self, detail: str, data: bytes = b""):
        super().__init__("corrupt_map_payload", data, message=f"corrupt map payload: {detail}")


class UnhandledMapSectionError(PacketDecodeError):
    """The map mask selects a block whose layout is unknown."""

    def __init__(self, bit: int):
        self.bit = bit
        super().__init__("unhandled_map_section", message=f"unhandled map section: 0x{bit:X}")


class UnsupportedMapSectionError(PacketDecodeError):
    """A known block carries content that cannot be parsed (non-empty room-enable list)."""

    def __init__(self, section: str, detail: str):
        self.section = section
        super().__init__("unsupported_map_section", message=f"unsupported {section}: {detail}")


class PacketFramingError(CongaProtocolError):
    """The byte stream cannot be split into frames.

    Attributes:
        reason: Specific failure reason (e.g. "size_too_small")
        buffer_size: Size of the accumulator when the error occurred
        packets: Frames completed earlier in the same chunk, in stream order
    """

    def __init__(self, reason: str, buffer_size: int = 0, packets: list[Packet] | None = None):
        self.reason = reason
        self.buffer_size = buffer_size
        self.packets = list(packets or [])
        super().__init__(f"Packet framing failed: {reason}")


class SchemaValidationError(CongaProtocolError):
    """Outbound data does not match the message schema for its opcode."""

    def __init__(self, opname: str, detail: str):
        self.opname = opname
        super().__init__(f"{opname}: {detail}")
