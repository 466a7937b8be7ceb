"""Unit tests for telemetry classification."""

import pytest

from conga_controller.session.status import (
    battery_flag,
    battery_level,
    cleanup_area,
    cleanup_duration,
    fan_speed,
    robot_state,
    status_flag,
    status_value,
)
from conga_controller.structs import BatteryFlag, DeviceStatus, FanSpeed, StatusFlag, StatusValue


class TestBattery:
    """Battery scale is 0-200."""

    @pytest.mark.parametrize(
        ("battery", "charging", "expected"),
        [
            (200, True, BatteryFlag.CHARGED),
            (150, True, BatteryFlag.CHARGING),
            (200, False, BatteryFlag.DISCHARGING),
            (0, False, BatteryFlag.DISCHARGING),
        ],
    )
    def test_battery_flag(self, battery: int, charging: bool, expected: BatteryFlag) -> None:
        assert battery_flag(DeviceStatus(battery=battery, charge_status=charging)) == expected

    def test_battery_level_percentage(self) -> None:
        assert battery_level(DeviceStatus(battery=150)) == pytest.approx(75.0)
        assert battery_level(DeviceStatus(battery=200)) == pytest.approx(100.0)


class TestStatusValue:
    """First matching rule wins."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (DeviceStatus(type=1, work_mode=1, charge_status=True), StatusValue.ERROR),
            (DeviceStatus(type=3, work_mode=1, charge_status=True), StatusValue.DOCKED),
            (DeviceStatus(type=0, work_mode=5, charge_status=True), StatusValue.DOCKED),
            (DeviceStatus(work_mode=5), StatusValue.RETURNING),
            (DeviceStatus(work_mode=10), StatusValue.RETURNING),
            (DeviceStatus(work_mode=1), StatusValue.CLEANING),
            (DeviceStatus(work_mode=25), StatusValue.CLEANING),
            (DeviceStatus(work_mode=30), StatusValue.CLEANING),
            (DeviceStatus(work_mode=0), StatusValue.IDLE),
            (DeviceStatus(work_mode=29), StatusValue.IDLE),
            (DeviceStatus(work_mode=99), StatusValue.UNKNOWN),
        ],
    )
    def test_status_value(self, status: DeviceStatus, expected: StatusValue) -> None:
        assert status_value(status) == expected


class TestStatusFlag:
    """Spot-clean detection."""

    @pytest.mark.parametrize(
        ("mode", "expected"),
        [
            (0, StatusFlag.NONE),
            (11, StatusFlag.NONE),
            (7, StatusFlag.SPOT),
            (22, StatusFlag.SPOT),
            (38, StatusFlag.SPOT),
            (2, StatusFlag.UNKNOWN),
        ],
    )
    def test_status_flag(self, mode: int, expected: StatusFlag) -> None:
        assert status_flag(DeviceStatus(work_mode=mode)) == expected


class TestDerivedFields:
    """Fan speed, area and duration."""

    @pytest.mark.parametrize(
        ("preference", "expected"),
        [(0, FanSpeed.OFF), (1, FanSpeed.LOW), (2, FanSpeed.MEDIUM), (3, FanSpeed.HIGH), (9, None)],
    )
    def test_fan_speed(self, preference: int, expected: FanSpeed | None) -> None:
        assert fan_speed(DeviceStatus(clean_preference=preference)) == expected

    def test_area_and_duration(self) -> None:
        status = DeviceStatus(clean_size=12, clean_time=4)
        assert cleanup_area(status) == 1200
        assert cleanup_duration(status) == 240

    def test_robot_state(self) -> None:
        state = robot_state(DeviceStatus(work_mode=1, battery=100, clean_preference=2, clean_size=1, clean_time=1))

        assert state.status_value == StatusValue.CLEANING
        assert state.status_flag == StatusFlag.NONE
        assert state.battery_flag == BatteryFlag.DISCHARGING
        assert state.battery_level == pytest.approx(50.0)
        assert state.fan_speed == FanSpeed.MEDIUM
        assert state.cleanup_area == 100
        assert state.cleanup_duration == 60
