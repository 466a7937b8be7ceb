"""TCP listener plus command/reply session for one device port.

The device opens one connection to the command port and one to the map port.
Each port is served by a CommandChannel that keeps at most one live connection:
a new accept closes and replaces the previous one.
"""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from conga_controller.correlation import correlation_context, new_correlation_id
from conga_controller.logging_abstraction import get_logger
from conga_controller.metrics import (
    record_command_latency,
    record_connection,
    record_decode_error,
    record_handler_error,
    record_packet_recv,
)
from conga_controller.protocol.exceptions import PacketDecodeError
from conga_controller.protocol.opcodes import COMMANDS
from conga_controller.protocol.packet import Packet, PacketBuilder
from conga_controller.protocol.payload_codec import PayloadCodec
from conga_controller.transport.connection import DeviceConnection, Message
from conga_controller.transport.exceptions import CongaConnectionError

logger = get_logger(__name__)

Handler = Callable[[Message], Awaitable[None]]


@dataclass(slots=True, eq=False)
class _ReplyWaiter:
    connection: DeviceConnection
    future: asyncio.Future[Message]


class CommandChannel:
    """Serve one port, dispatch inbound packets and correlate command replies.

    Inbound packets are dispatched in arrival order: the handler registered for
    the packet's opname is started as a task, then the oldest ``send_command``
    call waiting for that reply opname is resumed with the same Message.
    """

    def __init__(
        self,
        name: str,
        host: str,
        port: int,
        handlers: Mapping[str, Handler] | None = None,
        codec: PayloadCodec | None = None,
    ) -> None:
        self.name = name
        self.host = host
        self.port = port
        self.lp = f"{name}:"
        self.handlers: dict[str, Handler] = dict(handlers or {})
        self.codec = codec or PayloadCodec()
        self.builder = PacketBuilder()
        self.connection: DeviceConnection | None = None
        self._server: asyncio.Server | None = None
        self._pending: defaultdict[str, deque[_ReplyWaiter]] = defaultdict(deque)
        self._handler_tasks: set[asyncio.Task[None]] = set()

    @property
    def connected(self) -> bool:
        return self.connection is not None and not self.connection.closing

    def set_addressing(self, user_id: int, device_id: int) -> None:
        """User/device ids stamped on every packet this channel originates."""
        self.builder.set_addressing(user_id, device_id)

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._register_new_connection, host=self.host, port=self.port)
        logger.info(
            " Listening for device connections",
            extra={"channel": self.name, "host": self.host, "port": self.port},
        )

    async def stop(self) -> None:
        logger.debug("%s stopping", self.lp)
        if self._server is not None:
            self._server.close()
        if self.connection is not None:
            await self.connection.close()
        for task in list(self._handler_tasks):
            task.cancel()
        if self._server is not None:
            await self._server.wait_closed()
            self._server = None

    async def _register_new_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        with correlation_context(new_correlation_id(f"{self.name}-")):
            connection = DeviceConnection(self.name, reader, writer)
            previous, self.connection = self.connection, connection
            logger.info(" Device connected", extra={"channel": self.name, "address": connection.address})
            record_connection(self.name, True)
            if previous is not None:
                logger.info(
                    "Replacing previous device connection",
                    extra={"channel": self.name, "previous": previous.address},
                )
                await previous.close()
            try:
                await connection.receive_loop(self.dispatch)
            finally:
                self._fail_waiters(connection)
                if self.connection is connection:
                    self.connection = None
                    record_connection(self.name, False)
                logger.info(" Device disconnected", extra={"channel": self.name, "address": connection.address})

    def dispatch(self, connection: DeviceConnection, packet: Packet) -> None:
        """Route one inbound packet. Runs synchronously inside the receive loop."""
        opname = packet.opname
        record_packet_recv(self.name, opname)
        if opname is None:
            logger.debug("%s ignoring unknown opcode 0x%04X", self.lp, packet.opcode)
            return

        try:
            data = self.codec.decode(packet)
        except PacketDecodeError as exc:
            logger.error(
                "✗ Failed to decode payload",
                extra={"channel": self.name, "opname": opname, "error": str(exc)},
            )
            record_decode_error(self.name, exc.reason)
            self._resolve_waiter(opname, error=exc)
            return

        message = Message(self, connection, packet, data)
        logger.debug("%s ← %s", self.lp, packet.describe(data))

        handler = self.handlers.get(opname)
        if handler is not None:
            task = asyncio.create_task(self._run_handler(handler, message), name=f"{self.name}:{opname}")
            self._handler_tasks.add(task)
            task.add_done_callback(self._handler_tasks.discard)

        if not self._resolve_waiter(opname, message=message) and handler is None:
            logger.debug("%s no handler for %s", self.lp, opname)

    async def _run_handler(self, handler: Handler, message: Message) -> None:
        opname = message.packet.opname or ""
        try:
            await handler(message)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s handler for %s failed", self.lp, opname)
            record_handler_error(self.name, opname)

    async def send(self, opname: str, data: Mapping[str, Any] | None = None) -> Packet:
        """Build, encode and write one packet with the next sequence number.

        Raises:
            CongaConnectionError: no device connected
            SchemaValidationError: ``data`` does not fit the schema for ``opname``
        """
        connection = self.connection
        if connection is None or connection.closing:
            raise CongaConnectionError("no device connected", self.name)
        payload = self.codec.encode(opname, data)
        packet = self.builder.build(opname, payload)
        await connection.write(packet)
        return packet

    async def send_command(self, command: str, data: Mapping[str, Any] | None = None) -> Message:
        """Send ``QMSG_<command>`` and wait, without timeout, for ``RMSG_<command>``.

        The reply waiter is registered before the request is written so a fast
        reply cannot be missed.
        """
        request, reply = COMMANDS[command]
        connection = self.connection
        if connection is None or connection.closing:
            raise CongaConnectionError("no device connected", self.name)

        waiter = _ReplyWaiter(connection, asyncio.get_running_loop().create_future())
        self._pending[reply].append(waiter)
        started = time.perf_counter()
        try:
            await self.send(request, data)
        except BaseException:
            self._discard_waiter(reply, waiter)
            raise
        message = await waiter.future
        record_command_latency(command, time.perf_counter() - started)
        return message

    def _resolve_waiter(
        self,
        opname: str,
        message: Message | None = None,
        error: Exception | None = None,
    ) -> bool:
        waiters = self._pending.get(opname)
        while waiters:
            waiter = waiters.popleft()
            if waiter.future.done():
                continue
            if error is not None:
                waiter.future.set_exception(error)
            else:
                waiter.future.set_result(message)
            return True
        return False

    def _discard_waiter(self, opname: str, waiter: _ReplyWaiter) -> None:
        waiters = self._pending.get(opname)
        if waiters and waiter in waiters:
            waiters.remove(waiter)

    def _fail_waiters(self, connection: DeviceConnection) -> None:
        for opname, waiters in self._pending.items():
            for waiter in [w for w in waiters if w.connection is connection]:
                waiters.remove(waiter)
                if not waiter.future.done():
                    waiter.future.set_exception(CongaConnectionError(f"closed while waiting for {opname}", self.name))
