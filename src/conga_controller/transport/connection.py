"""One accepted device socket and the messages read from it."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from conga_controller.const import CONGA_CHUNK_SIZE, CONGA_RAW
from conga_controller.logging_abstraction import get_logger
from conga_controller.metrics import record_decode_error, record_packet_sent
from conga_controller.protocol.exceptions import PacketDecodeError, PacketFramingError
from conga_controller.protocol.packet import Packet, PacketCodec
from conga_controller.protocol.packet_framer import FrameReassembler
from conga_controller.transport.exceptions import CongaConnectionError

if TYPE_CHECKING:
    from conga_controller.transport.channel import CommandChannel

logger = get_logger(__name__)

DRAIN_TIMEOUT = 2.0

PacketCallback = Callable[["DeviceConnection", Packet], None]


class DeviceConnection:
    """Reader/writer pair for a single device socket.

    The receive loop feeds every chunk to a per-connection FrameReassembler and
    hands complete packets, in arrival order, to the owning channel.
    """

    def __init__(
        self,
        channel_name: str,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        chunk_size: int = CONGA_CHUNK_SIZE,
    ) -> None:
        self.channel_name = channel_name
        self.reader = reader
        self.writer = writer
        self.chunk_size = chunk_size
        peername = writer.get_extra_info("peername")
        self.address: str = f"{peername[0]}:{peername[1]}" if peername else "unknown"
        self.lp: str = f"{channel_name}:{self.address}:"
        self.framer = FrameReassembler()
        self.write_lock = asyncio.Lock()
        self.closing = False

    async def receive_loop(self, on_packet: PacketCallback) -> None:
        """Read until EOF, a socket error, or a framing error, then close."""
        lp = f"{self.lp}receive:"
        try:
            while not self.closing:
                try:
                    data = await self.reader.read(self.chunk_size)
                except (ConnectionError, OSError) as exc:
                    logger.debug("%s socket error: %s", lp, exc)
                    break
                if not data:
                    logger.debug("%s EOF from device", lp)
                    break
                if CONGA_RAW:
                    logger.debug("%s raw: %s", lp, data.hex(" "))
                try:
                    packets = self.framer.feed(data)
                except (PacketFramingError, PacketDecodeError) as exc:
                    if isinstance(exc, PacketFramingError):
                        for packet in exc.packets:
                            on_packet(self, packet)
                    logger.error(
                        "✗ Unreadable stream, dropping connection",
                        extra={"address": self.address, "channel": self.channel_name, "error": str(exc)},
                    )
                    record_decode_error(self.channel_name, exc.reason)
                    break
                for packet in packets:
                    on_packet(self, packet)
        finally:
            await self.close()

    async def write(self, packet: Packet) -> None:
        if self.closing:
            raise CongaConnectionError("connection is closing", self.channel_name)
        data = PacketCodec.encode(packet)
        try:
            async with self.write_lock:
                self.writer.write(data)
                await asyncio.wait_for(self.writer.drain(), timeout=DRAIN_TIMEOUT)
        except (TimeoutError, ConnectionError, OSError) as exc:
            raise CongaConnectionError(f"write failed: {exc!r}", self.channel_name) from exc
        logger.debug("%s → %s", self.lp, packet.describe())
        if CONGA_RAW:
            logger.debug("%s raw: %s", self.lp, data.hex(" "))
        record_packet_sent(self.channel_name, packet.opname or f"0x{packet.opcode:04X}")

    async def close(self) -> None:
        if self.closing:
            return
        self.closing = True
        logger.debug("→ Closing device connection", extra={"address": self.address, "channel": self.channel_name})
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError) as exc:
            logger.debug("%s error while closing: %s", self.lp, exc)


@dataclass(slots=True)
class Message:
    """A received packet, its decoded payload, and where to answer it."""

    channel: CommandChannel
    connection: DeviceConnection
    packet: Packet
    data: Any = None

    async def reply(self, opname: str, data: dict[str, Any] | None = None) -> Packet:
        """Answer on the same connection: request header cloned, ``flow`` + 1."""
        packet = self.packet.as_reply(opname, self.channel.codec.encode(opname, data))
        await self.connection.write(packet)
        return packet
