"""Unit tests for the binary map, area list and pose decoders."""

import struct
import zlib

import pytest

from conga_controller.protocol.exceptions import (
    CorruptMapPayloadError,
    UnexpectedEndOfBufferError,
    UnhandledMapSectionError,
    UnsupportedMapSectionError,
)
from conga_controller.protocol.map_decoder import (
    MASK_MAP_HEAD_INFO,
    MASK_ROBOT_POSE_INFO,
    MASK_ROOM_SECTION,
    MASK_STATUS_INFO,
    decode_area_list,
    decode_charger_pose,
    decode_map,
    decode_robot_pose,
)

MAP_ID = 7
GRID = bytes([0, 255, 1, 2, 0, 255])
SIZE_X = 3
SIZE_Y = 2
STATUS_VALUES = tuple(range(11))
HIGH_UNKNOWN_BIT = 0x4000


def _u32(*values: int) -> bytes:
    return struct.pack(f"<{len(values)}I", *values)


def _f32(*values: float) -> bytes:
    return struct.pack(f"<{len(values)}f", *values)


def _string(text: str) -> bytes:
    raw = text.encode()
    return bytes([len(raw)]) + raw


def _map_head(size_x: int = SIZE_X, size_y: int = SIZE_Y) -> bytes:
    return _u32(MAP_ID, 1, 0, size_x, size_y) + _f32(-10.0, -8.0, 10.0, 8.0, 0.05)


def _robot_pose() -> bytes:
    return _u32(MAP_ID, 3) + b"\x01" + _f32(1.5, -2.5, 0.25)


def _compressed(mask: int, body: bytes) -> bytes:
    return zlib.compress(_u32(mask) + body)


class TestDecodeMap:
    """Mask-driven block parsing."""

    def test_only_selected_blocks_are_present(self) -> None:
        mask = MASK_STATUS_INFO | MASK_MAP_HEAD_INFO | MASK_ROBOT_POSE_INFO
        body = _u32(*STATUS_VALUES) + _map_head() + GRID + _robot_pose()

        data = decode_map(_compressed(mask, body))

        assert data.mask == mask
        assert data.status_info is not None
        assert data.status_info.battery_percent == STATUS_VALUES[3]
        assert data.status_info.clean_size == STATUS_VALUES[10]
        assert data.map_head_info is not None
        assert data.map_head_info.map_head_id == MAP_ID
        assert data.map_head_info.size_x == SIZE_X
        assert data.map_head_info.max_y == pytest.approx(8.0)
        assert data.map_grid == GRID
        assert data.robot_pose_info is not None
        assert data.robot_pose_info.pose_id == 3
        assert data.robot_pose_info.pose_x == pytest.approx(1.5)

        assert data.history_head_info is None
        assert data.robot_charge_info is None
        assert data.wall_list_info is None
        assert data.spot_info is None
        assert data.clean_room_list is None

    def test_history_block_skips_points(self) -> None:
        points = 2
        body = _u32(MAP_ID, points, 11) + b"\xaa" * (points * 9) + _u32(MAP_ID) + _f32(0.0, 1.0, 0.0)

        data = decode_map(_compressed(0x0004 | 0x0008, body))

        assert data.history_head_info is not None
        assert data.history_head_info.point_number == points
        assert data.history_data == b"\xaa" * (points * 9)
        assert data.robot_charge_info is not None
        assert data.robot_charge_info.pose_y == pytest.approx(1.0)

    def test_bits_above_room_section_are_ignored(self) -> None:
        data = decode_map(_compressed(MASK_STATUS_INFO | HIGH_UNKNOWN_BIT, _u32(*STATUS_VALUES)))
        assert data.status_info is not None

    @pytest.mark.parametrize("bit", [0x0100, 0x0200, 0x0400])
    def test_unhandled_sections_raise(self, bit: int) -> None:
        with pytest.raises(UnhandledMapSectionError) as exc_info:
            decode_map(_compressed(bit, b""))
        assert exc_info.value.bit == bit

    def test_corrupt_payload(self) -> None:
        with pytest.raises(CorruptMapPayloadError):
            decode_map(b"definitely not zlib")

    def test_truncated_block(self) -> None:
        with pytest.raises(UnexpectedEndOfBufferError):
            decode_map(_compressed(MASK_STATUS_INFO, _u32(1, 2)))

    def test_room_section(self) -> None:
        rooms = _u32(1) + b"\x03" + _string("Kitchen") + b"\x00" + _f32(2.0, 3.0)
        plans = b"\x00"
        matrix = b"\x01"
        enable = _u32(MAP_ID) + b"\x00"

        data = decode_map(_compressed(MASK_ROOM_SECTION, rooms + plans + matrix + enable))

        assert data.clean_room_list is not None
        assert len(data.clean_room_list) == 1
        room = data.clean_room_list[0]
        assert room.room_id == 3
        assert room.room_name == "Kitchen"
        assert room.room_x == pytest.approx(2.0)
        assert data.clean_plan_list == []
        assert data.room_matrix == matrix
        assert data.room_enable_info is not None
        assert data.room_enable_info.size == 0

    def test_room_enable_entries_are_unsupported(self) -> None:
        body = _u32(0) + b"\x00" + _u32(MAP_ID) + b"\x02"
        with pytest.raises(UnsupportedMapSectionError):
            decode_map(_compressed(MASK_ROOM_SECTION, body))


class TestDecodeAreaList:
    """Fixed-order area list payloads."""

    def test_area_list(self) -> None:
        head = _map_head(size_x=1, size_y=1) + b"\x01"
        clean_plan_info = _u32(MAP_ID) + struct.pack("<H", 0x0F) + b"\x01"
        map_info = b"\x01" + _u32(MAP_ID) + _string("Home") + _u32(4)
        rooms = _u32(0)
        area = _u32(21, 1, 2) + _f32(0.0, 1.0) + _f32(2.0, 3.0) + _f32(0.0, 0.0) * 3
        plans = b"\x01" + _u32(4) + _string("") + _u32(MAP_ID, 0) + _u32(1) + area + _u32(1) + b"\x05\x01"
        payload = zlib.compress(_u32(9, MAP_ID, 0, 0) + head + clean_plan_info + map_info + rooms + plans)

        data = decode_area_list(payload)

        assert data.map_head_id == MAP_ID
        assert data.map_head_info.size_x == 1
        assert data.map_grid == b"\x01"
        assert data.clean_plan_info.mask == 0x0F
        assert data.map_info_list[0].map_name == "Home"
        assert data.map_info_list[0].current_plan_id == 4
        assert data.clean_room_list == []
        plan = data.clean_plan_list[0]
        assert plan.plan_id == 4
        assert plan.area_info_list[0].x == [0.0, 1.0]
        assert plan.area_info_list[0].y == [2.0, 3.0]
        assert plan.clean_room_info_list[0].info_id == 5

    def test_area_without_points(self) -> None:
        head = _map_head(size_x=1, size_y=1) + b"\x00"
        clean_plan_info = _u32(MAP_ID) + struct.pack("<H", 0) + b"\x00"
        plans = b"\x01" + _u32(1) + _string("p") + _u32(MAP_ID, 0) + _u32(1) + _u32(1, 0, 0) + _u32(0)
        payload = zlib.compress(_u32(0, MAP_ID, 0, 0) + head + clean_plan_info + b"\x00" + _u32(0) + plans)

        area = decode_area_list(payload).clean_plan_list[0].area_info_list[0]

        assert area.points == 0
        assert area.x == []


class TestDecodePoses:
    """Uncompressed pose updates."""

    def test_robot_pose(self) -> None:
        pose = decode_robot_pose(_robot_pose())
        assert pose.map_head_id == MAP_ID
        assert pose.update == 1
        assert pose.pose_y == pytest.approx(-2.5)
        assert pose.pose_phi == pytest.approx(0.25)

    def test_charger_pose(self) -> None:
        pose = decode_charger_pose(_u32(8) + _f32(-1.0, 4.0, 3.0))
        assert pose.pose_id == 8
        assert pose.pose_x == pytest.approx(-1.0)
        assert pose.pose_y == pytest.approx(4.0)

    def test_short_pose_raises(self) -> None:
        with pytest.raises(UnexpectedEndOfBufferError):
            decode_charger_pose(_u32(8))
