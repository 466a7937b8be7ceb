"""Sequential little-endian reader over an immutable byte buffer."""

from __future__ import annotations

import struct

from conga_controller.protocol.exceptions import UnexpectedEndOfBufferError

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_F32 = struct.Struct("<f")


class ByteCursor:
    """Read fixed-width integers, floats and length-prefixed strings in order.

    Every read is bounds-checked. Reading past the end raises
    :class:`UnexpectedEndOfBufferError`; no partial or zero-filled value is
    ever returned.
    """

    __slots__ = ("_data", "_offset")

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def read(self, length: int) -> bytes:
        if length < 0 or length > self.remaining:
            raise UnexpectedEndOfBufferError(length, self.remaining)
        start = self._offset
        self._offset += length
        return self._data[start : self._offset]

    def _unpack(self, fmt: struct.Struct) -> int | float:
        if fmt.size > self.remaining:
            raise UnexpectedEndOfBufferError(fmt.size, self.remaining)
        (value,) = fmt.unpack_from(self._data, self._offset)
        self._offset += fmt.size
        return value

    def u8(self) -> int:
        if self.remaining < 1:
            raise UnexpectedEndOfBufferError(1, 0)
        value = self._data[self._offset]
        self._offset += 1
        return value

    def u16(self) -> int:
        return int(self._unpack(_U16))

    def u32(self) -> int:
        return int(self._unpack(_U32))

    def u64(self) -> int:
        return int(self._unpack(_U64))

    def f32(self) -> float:
        return float(self._unpack(_F32))

    def f32_array(self, count: int) -> list[float]:
        if count * 4 > self.remaining:
            raise UnexpectedEndOfBufferError(count * 4, self.remaining)
        values = struct.unpack_from(f"<{count}f", self._data, self._offset)
        self._offset += count * 4
        return list(values)

    def string(self) -> str:
        """u8 length followed by that many UTF-8 bytes; length 0 is the empty string."""
        length = self.u8()
        if not length:
            return ""
        return self.read(length).decode("utf-8", errors="replace")
