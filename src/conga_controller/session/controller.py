"""Device session: signup, login handshake, telemetry and outbound commands."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from conga_controller.const import (
    CONGA_CMD_PORT,
    CONGA_HANDSHAKE_DELAY,
    CONGA_MAP_INFO_MASK,
    CONGA_MAP_PORT,
    CONGA_SRV_HOST,
    LOGIN_NOT_REGISTERED,
)
from conga_controller.logging_abstraction import get_logger
from conga_controller.session.map_model import MapModel
from conga_controller.session.status import FAN_SPEEDS, robot_state
from conga_controller.structs import (
    Device,
    DeviceStatus,
    FanSpeed,
    MapSnapshot,
    RobotState,
    SessionState,
)
from conga_controller.transport.channel import CommandChannel, Handler
from conga_controller.transport.connection import Message

logger = get_logger(__name__)

StatusCallback = Callable[[RobotState], Awaitable[None]]
MapCallback = Callable[[MapSnapshot], Awaitable[None]]

MAX_DEVICE_ID = 100_000_000
MAX_USER_ID = 1_000_000
MAX_CLEAN_AREA_ID = 1_000_000

# replies that only acknowledge a device query
_RESULT_REPLIES = {
    "QMSG_DEVICE_INFO": "RMSG_DEVICE_INFO",
    "QMSG_DEVICE_VERSION": "RMSG_DEVICE_VERSION",
    "QMSG_DEVICE_OTA": "RMSG_DEVICE_OTA",
    "RMSG_UNK1": "RMSG_UNK1",
}


def _random_id(high: int) -> int:
    return random.randint(1, high)


class DeviceSessionController:
    """Plays the vendor cloud for one robot.

    Both channels share the same handler table. Replies go back on the
    connection the request arrived on; commands always go out on the command
    channel.
    """

    lp: str = "session:"

    def __init__(
        self,
        on_status_changed: StatusCallback | None = None,
        on_map_changed: MapCallback | None = None,
        *,
        host: str = CONGA_SRV_HOST,
        cmd_port: int = CONGA_CMD_PORT,
        map_port: int = CONGA_MAP_PORT,
        handshake_delay: float = CONGA_HANDSHAKE_DELAY,
        map_info_mask: int = CONGA_MAP_INFO_MASK,
        cmd_channel: CommandChannel | None = None,
        map_channel: CommandChannel | None = None,
    ) -> None:
        self.on_status_changed = on_status_changed
        self.on_map_changed = on_map_changed
        self.handshake_delay = handshake_delay
        self.map_info_mask = map_info_mask

        self.state = SessionState.UNREGISTERED
        self.device: Device | None = None
        self.user_id = _random_id(MAX_USER_ID)
        self.status = DeviceStatus()
        self.map = MapModel()

        handlers = self.handlers
        self.cmd_channel = cmd_channel or CommandChannel("cmd", host, cmd_port, handlers)
        self.map_channel = map_channel or CommandChannel("map", host, map_port, handlers)

    @property
    def handlers(self) -> Mapping[str, Handler]:
        table: dict[str, Handler] = {
            "QMSG_PING": self.handle_ping,
            "QMSG_DEVICE_SIGNUP": self.handle_signup,
            "QMSG_DEVICE_LOGIN": self.handle_login,
            "QMSG_BATTERY_LEVEL": self.handle_battery_level,
            "QMSG_DEVICE_STATUS": self.handle_device_status,
            "RMSG_MAP_INFO": self.handle_map,
            "RMSG_MAP_UPDATE": self.handle_map,
            "RMSG_AREA_LIST_INFO": self.handle_map,
            "RMSG_UPDATE_ROBOT_POSITION": self.handle_robot_position,
            "RMSG_UPDATE_CHARGE_POSITION": self.handle_charger_position,
        }
        for opname in _RESULT_REPLIES:
            table[opname] = self.handle_result_query
        return table

    async def start(self) -> None:
        await self.cmd_channel.start()
        await self.map_channel.start()

    async def stop(self) -> None:
        await asyncio.gather(self.cmd_channel.stop(), self.map_channel.stop())

    # -- inbound -------------------------------------------------------------

    async def handle_ping(self, message: Message) -> None:
        await message.reply("RMSG_PING")
        await self.cmd_channel.send_command("DEVICE_CHECK")

    async def handle_result_query(self, message: Message) -> None:
        reply = _RESULT_REPLIES.get(message.packet.opname or "")
        if reply is None:
            logger.warning("%s no result reply for %s", self.lp, message.packet.opname)
            return
        await message.reply(reply, {"result": 0})

    async def handle_signup(self, message: Message) -> None:
        data = message.data or {}
        serial = data.get("device_serial_number", "")
        if self.device is not None and self.device.serial_number == serial:
            device = self.device
        else:
            device = self.device = Device(
                id=_random_id(MAX_DEVICE_ID),
                serial_number=serial,
                software_version=data.get("software_version", ""),
            )
            logger.info(" Device registered", extra={"serial": serial, "device_id": device.id})
        self.state = SessionState.REGISTERED
        await message.reply("RMSG_DEVICE_SIGNUP", {"result": 0, "device": {"id": device.id}})

    async def handle_login(self, message: Message) -> None:
        lp = f"{self.lp}login:"
        packet = message.packet
        serial = (message.data or {}).get("device_serial_number", "")
        if self.device is None or packet.device_id != self.device.id:
            logger.warning("%s rejecting unregistered device", lp, extra={"serial": serial, "device_id": packet.device_id})
            await message.reply(
                "RMSG_DEVICE_LOGIN",
                {"result": LOGIN_NOT_REGISTERED, "reason": f"Device not registered(devsn: {serial})"},
            )
            return

        self.cmd_channel.set_addressing(self.user_id, packet.device_id)
        await message.reply("RMSG_DEVICE_LOGIN", {"result": 0})
        self.state = SessionState.LOGGED_IN
        logger.info(" Device logged in", extra={"serial": serial, "device_id": packet.device_id})
        await self._handshake()

    async def _handshake(self) -> None:
        channel = self.cmd_channel
        await channel.send_command("DEVICE_CHECK")
        await channel.send("QMSG_CONNECT_DEVICE")
        await channel.send_command("UNK2", {"unk1": 0, "unk2": ""})
        await channel.send_command("DEVICE_TIME")
        await asyncio.sleep(self.handshake_delay)
        await channel.send_command("MAP_INFO", {"mask": self.map_info_mask})
        self.state = SessionState.ACTIVE
        logger.info(" Handshake complete")

    async def handle_battery_level(self, message: Message) -> None:
        data = message.data or {}
        self.status.battery = data.get("battery", {}).get("level", 0)
        await self._notify_status()
        await message.reply("RMSG_BATTERY_LEVEL", {"result": 0})

    async def handle_device_status(self, message: Message) -> None:
        packet = message.packet
        status = DeviceStatus(**(message.data or {}))
        self.cmd_channel.set_addressing(packet.user_id, packet.device_id)
        self.status = status
        await self._notify_status()

    async def handle_map(self, message: Message) -> None:
        if message.data is None:
            logger.debug("%s empty map payload from %s", self.lp, message.packet.opname)
            return
        self.map.update(message.data)
        await self._notify_map()

    async def handle_robot_position(self, message: Message) -> None:
        if message.data is None:
            logger.debug("%s empty robot position payload", self.lp)
            return
        self.map.update_robot_position(message.data)
        await self._notify_map()

    async def handle_charger_position(self, message: Message) -> None:
        if message.data is None:
            logger.debug("%s empty charger position payload", self.lp)
            return
        self.map.update_charger_position(message.data)
        await self._notify_map()

    async def _notify_status(self) -> None:
        if self.on_status_changed is not None:
            await self.on_status_changed(robot_state(self.status))

    async def _notify_map(self) -> None:
        if self.on_map_changed is not None:
            await self.on_map_changed(self.map.snapshot())

    # -- outbound ------------------------------------------------------------

    async def find_robot(self) -> None:
        await self.cmd_channel.send_command("LOCATE_DEVICE")

    async def get_fan_speeds(self) -> dict[str, int]:
        return {speed.value: mode for speed, mode in FAN_SPEEDS.items()}

    async def set_fan_speed(self, speed: str) -> None:
        """Raises ValueError for a name that is not a FanSpeed preset."""
        mode = FAN_SPEEDS[FanSpeed(speed)]
        await self.cmd_channel.send_command("SET_FAN_MODE", {"mode": mode})

    async def drive_home(self) -> None:
        await self.cmd_channel.send_command("RETURN_HOME", {"unk1": 1})

    async def start_cleaning(self) -> None:
        await self.cmd_channel.send_command("CLEAN_MODE", {"mode": 1, "unk1": 2})

    async def stop_cleaning(self) -> None:
        await self.cmd_channel.send_command("CLEAN_MODE", {"mode": 2, "unk1": 2})

    async def pause_cleaning(self) -> None:
        # the device has no separate pause mode
        await self.cmd_channel.send_command("CLEAN_MODE", {"mode": 2, "unk1": 2})

    async def go_to(self, x: float, y: float) -> None:
        """Drive to a point given in display-scaled map pixels."""
        pose = self.map.display_to_device(x, y)
        await self.cmd_channel.send_command(
            "SET_POSITION",
            {"map_head_id": self.map.id, "pose_x": pose.x, "pose_y": pose.y, "pose_phi": 0.0, "update": 1},
        )

    async def start_cleaning_zone_by_coords(self, zones: Sequence[Sequence[float]]) -> None:
        """Clean rectangles given as ``[x1, y1, x2, y2]`` in display-scaled map pixels."""
        areas: list[dict[str, Any]] = []
        for x1, y1, x2, y2 in zones:
            a = self.map.display_to_device(x1, y1)
            c = self.map.display_to_device(x2, y2)
            corners = [(a.x, a.y), (a.x, c.y), (c.x, c.y), (c.x, a.y)]
            areas.append(
                {
                    "clean_area_id": _random_id(MAX_CLEAN_AREA_ID),
                    "unk1": 0,
                    "coordinate_length": len(corners),
                    "coordinate_list": [{"x": x, "y": y} for x, y in corners],
                },
            )
        await self.cmd_channel.send_command(
            "SET_AREA",
            {"map_head_id": self.map.id, "unk1": 0, "clean_area_length": len(areas), "clean_area_list": areas},
        )
        await self.cmd_channel.send_command("CLEAN_AREA", {"unk1": 1})

    async def get_current_status(self) -> RobotState:
        return robot_state(self.status)

    async def get_map(self) -> MapSnapshot:
        return self.map.snapshot()
