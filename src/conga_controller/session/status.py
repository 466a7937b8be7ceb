"""Map raw device telemetry onto the bridge's status vocabulary."""

from __future__ import annotations

from types import MappingProxyType
from typing import Final

from conga_controller.const import BATTERY_MAX
from conga_controller.structs import (
    BatteryFlag,
    DeviceStatus,
    FanSpeed,
    RobotState,
    StatusFlag,
    StatusValue,
)

FAN_SPEEDS: Final = MappingProxyType(
    {
        FanSpeed.OFF: 0,
        FanSpeed.LOW: 1,
        FanSpeed.MEDIUM: 2,
        FanSpeed.HIGH: 3,
    },
)
_FAN_SPEED_BY_MODE: Final = MappingProxyType({mode: speed for speed, mode in FAN_SPEEDS.items()})

# fault types that still count as a working robot
NON_ERROR_TYPES = frozenset({0, 3})
RETURNING_MODES = frozenset({5, 10})
CLEANING_MODES = frozenset({1, 7, 25, 20, 30})
IDLE_MODES = frozenset({0, 4, 23, 29})

NONE_FLAG_MODES = frozenset({0, 1, 4, 5, 10, 11})
SPOT_FLAG_MODES = frozenset({7, 9, 14, 22, 36, 37, 38, 39, 40})


def battery_flag(status: DeviceStatus) -> BatteryFlag:
    if not status.charge_status:
        return BatteryFlag.DISCHARGING
    if status.battery == BATTERY_MAX:
        return BatteryFlag.CHARGED
    return BatteryFlag.CHARGING


def battery_level(status: DeviceStatus) -> float:
    """Battery as a percentage of the device's 0-200 scale."""
    return status.battery * 100 / BATTERY_MAX


def status_value(status: DeviceStatus) -> StatusValue:
    """First matching rule wins: error, docked, returning, cleaning, idle."""
    if status.type not in NON_ERROR_TYPES:
        return StatusValue.ERROR
    if status.charge_status:
        return StatusValue.DOCKED
    if status.work_mode in RETURNING_MODES:
        return StatusValue.RETURNING
    if status.work_mode in CLEANING_MODES:
        return StatusValue.CLEANING
    if status.work_mode in IDLE_MODES:
        return StatusValue.IDLE
    return StatusValue.UNKNOWN


def status_flag(status: DeviceStatus) -> StatusFlag:
    if status.work_mode in NONE_FLAG_MODES:
        return StatusFlag.NONE
    if status.work_mode in SPOT_FLAG_MODES:
        return StatusFlag.SPOT
    return StatusFlag.UNKNOWN


def fan_speed(status: DeviceStatus) -> FanSpeed | None:
    """Preset for ``clean_preference``; None when the device reports an unlisted mode."""
    return _FAN_SPEED_BY_MODE.get(status.clean_preference)


def cleanup_area(status: DeviceStatus) -> int:
    return status.clean_size * 100


def cleanup_duration(status: DeviceStatus) -> int:
    """Seconds; the device reports minutes."""
    return status.clean_time * 60


def robot_state(status: DeviceStatus) -> RobotState:
    return RobotState(
        battery_level=battery_level(status),
        battery_flag=battery_flag(status),
        status_value=status_value(status),
        status_flag=status_flag(status),
        fan_speed=fan_speed(status),
        cleanup_area=cleanup_area(status),
        cleanup_duration=cleanup_duration(status),
    )
