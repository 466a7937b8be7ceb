"""Core data structures for the Conga controller."""

from __future__ import annotations

import asyncio
import os
from argparse import Namespace
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar

import uvloop
from pydantic import BaseModel, ConfigDict

from conga_controller.const import (
    CONGA_CMD_PORT,
    CONGA_ENABLE_METRICS,
    CONGA_HANDSHAKE_DELAY,
    CONGA_MAP_INFO_MASK,
    CONGA_MAP_PORT,
    CONGA_METRICS_PORT,
    CONGA_MQTT_CONN_DELAY,
    CONGA_MQTT_ENABLED,
    CONGA_MQTT_HOST,
    CONGA_MQTT_PASS,
    CONGA_MQTT_PORT,
    CONGA_MQTT_USER,
    CONGA_SRV_HOST,
    CONGA_TOPIC,
    YES_ANSWER,
)

if TYPE_CHECKING:
    from conga_controller.mqtt.client import MQTTClient
    from conga_controller.session.controller import DeviceSessionController


class SessionState(StrEnum):
    """Where the device is in its signup/login lifecycle."""

    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    LOGGED_IN = "logged_in"
    ACTIVE = "active"


class BatteryFlag(StrEnum):
    CHARGED = "charged"
    CHARGING = "charging"
    DISCHARGING = "discharging"


class StatusValue(StrEnum):
    ERROR = "error"
    DOCKED = "docked"
    RETURNING = "returning"
    CLEANING = "cleaning"
    IDLE = "idle"
    UNKNOWN = "unknown"


class StatusFlag(StrEnum):
    NONE = "none"
    SPOT = "spot"
    UNKNOWN = "unknown"


class FanSpeed(StrEnum):
    """Enumerate the supported fan speed presets."""

    OFF = "off"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(slots=True)
class Device:
    """The single device this bridge has registered."""

    id: int
    serial_number: str
    software_version: str = ""


class DeviceStatus(BaseModel):
    """Last telemetry reported by the device, in device units.

    ``battery`` runs 0-200, ``clean_time`` is minutes and ``clean_size`` is
    square metres.
    """

    work_mode: int = 0
    battery: int = 0
    charge_status: bool = False
    clean_time: int = 0
    clean_size: int = 0
    type: int = 0
    clean_preference: int = 0


class RobotState(BaseModel):
    """Read-only status snapshot handed to the status collaborator."""

    model_config = ConfigDict(frozen=True)

    battery_level: float
    battery_flag: BatteryFlag
    status_value: StatusValue
    status_flag: StatusFlag
    fan_speed: FanSpeed | None
    cleanup_area: int
    cleanup_duration: int


class Room(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    state: int
    x: float
    y: float


class MapSnapshot(BaseModel):
    """Read-only copy of the map model. Pixel coordinates throughout."""

    model_config = ConfigDict(frozen=True)

    id: int
    size: tuple[int, int]
    min: tuple[float, float]
    max: tuple[float, float]
    floors: list[tuple[int, int]]
    walls: list[tuple[int, int]]
    robot: tuple[int, int] | None = None
    charger: tuple[int, int] | None = None
    rooms: list[Room] = []


class GlobalObjEnv(BaseModel):
    """Environment variables for the global object.

    This is used to store environment variables that are used throughout the application.
    """

    srv_host: str = CONGA_SRV_HOST
    cmd_port: int = CONGA_CMD_PORT
    map_port: int = CONGA_MAP_PORT
    handshake_delay: float = CONGA_HANDSHAKE_DELAY
    map_info_mask: int = CONGA_MAP_INFO_MASK
    mqtt_enabled: bool = CONGA_MQTT_ENABLED
    mqtt_host: str = CONGA_MQTT_HOST
    mqtt_port: int = CONGA_MQTT_PORT
    mqtt_user: str | None = CONGA_MQTT_USER
    mqtt_pass: str | None = CONGA_MQTT_PASS
    mqtt_topic: str = CONGA_TOPIC
    mqtt_conn_delay: int = CONGA_MQTT_CONN_DELAY
    enable_metrics: bool = CONGA_ENABLE_METRICS
    metrics_port: int = CONGA_METRICS_PORT


class GlobalObject:
    """Singleton container for cross-module state and services."""

    controller: DeviceSessionController | None = None
    mqtt_client: MQTTClient | None = None
    loop: uvloop.Loop | asyncio.AbstractEventLoop | None = None
    tasks: ClassVar[list[asyncio.Task[Any]]] = []
    env: GlobalObjEnv = GlobalObjEnv()
    cli_args: Namespace | None = None

    _instance: GlobalObject | None = None

    def __new__(cls, *_args: Any, **_kwargs: Any) -> GlobalObject:
        """Ensure only one GlobalObject instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reload_env(self) -> None:
        """Re-read settings from the environment (after a ``.env`` file was loaded)."""
        self.env = GlobalObjEnv(
            srv_host=os.environ.get("CONGA_SRV_HOST", "0.0.0.0"),
            cmd_port=int(os.environ.get("CONGA_CMD_PORT", "4010")),
            map_port=int(os.environ.get("CONGA_MAP_PORT", "4030")),
            handshake_delay=float(os.environ.get("CONGA_HANDSHAKE_DELAY", "1.0")),
            map_info_mask=int(os.environ.get("CONGA_MAP_INFO_MASK", "0x78FF"), 0),
            mqtt_enabled=os.environ.get("CONGA_MQTT_ENABLED", "true").casefold() in YES_ANSWER,
            mqtt_host=os.environ.get("CONGA_MQTT_HOST", "homeassistant.local"),
            mqtt_port=int(os.environ.get("CONGA_MQTT_PORT", "1883")),
            mqtt_user=os.environ.get("CONGA_MQTT_USER"),
            mqtt_pass=os.environ.get("CONGA_MQTT_PASS"),
            mqtt_topic=os.environ.get("CONGA_TOPIC", "conga"),
            mqtt_conn_delay=int(os.environ.get("CONGA_MQTT_CONN_DELAY", "10")),
            enable_metrics=os.environ.get("CONGA_ENABLE_METRICS", "0").casefold() in YES_ANSWER,
            metrics_port=int(os.environ.get("CONGA_METRICS_PORT", "9400")),
        )
