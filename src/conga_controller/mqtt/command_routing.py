"""MQTT command routing.

Commands arrive on ``<topic>/command/<name>`` and are forwarded to the
session controller. Each command runs as its own task because a device reply
may take arbitrarily long.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from json import JSONDecodeError
from typing import Any

from conga_controller.logging_abstraction import get_logger
from conga_controller.protocol.exceptions import CongaProtocolError
from conga_controller.session.controller import DeviceSessionController

logger = get_logger(__name__)


def _parse_point(payload: bytes) -> tuple[float, float]:
    point = json.loads(payload)
    return float(point["x"]), float(point["y"])


def _parse_zones(payload: bytes) -> list[list[float]]:
    zones = json.loads(payload)
    if not isinstance(zones, list) or not zones:
        msg = "expected a non-empty list of [x1, y1, x2, y2] zones"
        raise ValueError(msg)
    parsed: list[list[float]] = []
    for zone in zones:
        if not isinstance(zone, list) or len(zone) != 4:
            msg = f"bad zone {zone!r}"
            raise ValueError(msg)
        parsed.append([float(v) for v in zone])
    return parsed


class CommandRouter:
    """Translate MQTT command topics into controller calls."""

    def __init__(self, topic: str, controller: DeviceSessionController) -> None:
        self.topic = topic
        self.controller = controller
        self.lp = "mqtt:rcv:"
        self._tasks: set[asyncio.Task[None]] = set()

    def _build_call(self, command: str, payload: bytes) -> Callable[[], Awaitable[None]] | None:
        ctrl = self.controller
        simple: dict[str, Callable[[], Awaitable[None]]] = {
            "locate": ctrl.find_robot,
            "return_home": ctrl.drive_home,
            "start": ctrl.start_cleaning,
            "pause": ctrl.pause_cleaning,
            "stop": ctrl.stop_cleaning,
        }
        if command in simple:
            return simple[command]
        if command == "fan_speed":
            speed = payload.decode().strip().casefold()
            return lambda: ctrl.set_fan_speed(speed)
        if command == "go_to":
            x, y = _parse_point(payload)
            return lambda: ctrl.go_to(x, y)
        if command == "zone_clean":
            zones = _parse_zones(payload)
            return lambda: ctrl.start_cleaning_zone_by_coords(zones)
        return None

    async def route(self, topic: str, payload: bytes) -> asyncio.Task[None] | None:
        """Start the command addressed by ``topic``; None when nothing was started."""
        lp = self.lp
        parts = topic.split("/")
        if len(parts) != 3 or parts[0] != self.topic or parts[1] != "command":
            logger.debug("%s ignoring topic %s", lp, topic)
            return None
        command = parts[2]
        try:
            call = self._build_call(command, payload)
        except (JSONDecodeError, KeyError, TypeError, ValueError, UnicodeDecodeError) as exc:
            logger.warning("%s bad payload for %s: %s", lp, command, exc, extra={"payload": payload[:64]})
            return None
        if call is None:
            logger.warning("%s unknown command: %s", lp, command)
            return None

        logger.info("%s >>> COMMAND: %s", lp, command, extra={"payload": payload[:64]})
        task = asyncio.create_task(self._run(command, call), name=f"mqtt:{command}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, command: str, call: Callable[[], Awaitable[Any]]) -> None:
        try:
            await call()
        except (CongaProtocolError, ValueError) as exc:
            logger.warning("%s command %s failed: %s", self.lp, command, exc)
        else:
            logger.debug("%s command %s acknowledged by device", self.lp, command)

    async def start_receiver_task(self, messages: AsyncIterator[Any]) -> None:
        """Consume broker messages until the connection drops."""
        async for message in messages:
            payload = message.payload
            if not isinstance(payload, (bytes, bytearray)):
                payload = str(payload or "").encode()
            _ = await self.route(message.topic.value, bytes(payload))
