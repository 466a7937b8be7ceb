"""Decoders for the schema-less binary payloads: maps, area lists and pose updates.

Map and area-list payloads are zlib-compressed. A map payload starts with a
u32 mask and then carries one block per set bit, in ascending bit order::

    0x0001  status info          11 x u32
    0x0002  map head info        5 x u32, 5 x f32, then size_x * size_y grid bytes
    0x0004  history head info    3 x u32, then point_number * 9 opaque bytes
    0x0008  robot charge info    u32, 3 x f32
    0x0010  wall list info       3 x u32
    0x0020  area list info       3 x u32
    0x0040  spot info            2 x u32, 3 x f32
    0x0080  robot pose info      2 x u32, u8, 3 x f32
    0x0100  layout unknown, rejected
    0x0200  layout unknown, rejected
    0x0400  layout unknown, rejected
    0x0800  clean plan info      u32, u16, u8
    0x1000  map info list
    0x2000  room section: clean room list, clean plan list, room matrix, room enable info

Bits above 0x2000 are ignored; their blocks would follow everything parsed here.
"""

from __future__ import annotations

import zlib
from dataclasses import dataclass, field

from conga_controller.protocol.byte_cursor import ByteCursor
from conga_controller.protocol.exceptions import (
    CorruptMapPayloadError,
    UnhandledMapSectionError,
    UnsupportedMapSectionError,
)

__all__ = [
    "AreaInfo",
    "AreaListData",
    "AreaListHeader",
    "ChargerPose",
    "CleanPlan",
    "CleanPlanInfo",
    "CleanRoom",
    "CleanRoomInfo",
    "HistoryHeadInfo",
    "MapData",
    "MapHeadInfo",
    "MapInfoEntry",
    "RobotChargeInfo",
    "RobotPose",
    "RoomEnableInfo",
    "SpotInfo",
    "StatusInfo",
    "decode_area_list",
    "decode_charger_pose",
    "decode_map",
    "decode_robot_pose",
]

MASK_STATUS_INFO = 0x0001
MASK_MAP_HEAD_INFO = 0x0002
MASK_HISTORY_HEAD_INFO = 0x0004
MASK_ROBOT_CHARGE_INFO = 0x0008
MASK_WALL_LIST_INFO = 0x0010
MASK_AREA_LIST_INFO = 0x0020
MASK_SPOT_INFO = 0x0040
MASK_ROBOT_POSE_INFO = 0x0080
UNHANDLED_MASKS = (0x0100, 0x0200, 0x0400)
MASK_CLEAN_PLAN_INFO = 0x0800
MASK_MAP_INFO_LIST = 0x1000
MASK_ROOM_SECTION = 0x2000

HISTORY_POINT_SIZE = 9


@dataclass(frozen=True, slots=True)
class StatusInfo:
    map_head_id: int
    has_history_map: int
    working_mode: int
    battery_percent: int
    charge_state: int
    fault_type: int
    fault_code: int
    clean_preference: int
    repeat_clean: int
    clean_time: int
    clean_size: int


@dataclass(frozen=True, slots=True)
class MapHeadInfo:
    map_head_id: int
    map_valid: int
    map_type: int
    size_x: int
    size_y: int
    min_x: float
    min_y: float
    max_x: float
    max_y: float
    resolution: float


@dataclass(frozen=True, slots=True)
class HistoryHeadInfo:
    map_head_id: int
    point_number: int
    pose_id: int


@dataclass(frozen=True, slots=True)
class RobotChargeInfo:
    map_head_id: int
    pose_x: float
    pose_y: float
    pose_phi: float


@dataclass(frozen=True, slots=True)
class AreaListHeader:
    """Header shared by the wall list and area list blocks."""

    map_head_id: int
    clean_plan_id: int
    area_count: int


@dataclass(frozen=True, slots=True)
class SpotInfo:
    map_head_id: int
    ctrl_value: int
    pose_x: float
    pose_y: float
    pose_phi: float


@dataclass(frozen=True, slots=True)
class RobotPose:
    map_head_id: int
    pose_id: int
    update: int
    pose_x: float
    pose_y: float
    pose_phi: float


@dataclass(frozen=True, slots=True)
class ChargerPose:
    pose_id: int
    pose_x: float
    pose_y: float
    pose_phi: float


@dataclass(frozen=True, slots=True)
class CleanPlanInfo:
    map_head_id: int
    mask: int
    first_clean_flag: int


@dataclass(frozen=True, slots=True)
class MapInfoEntry:
    map_head_id: int
    map_name: str
    current_plan_id: int


@dataclass(frozen=True, slots=True)
class CleanRoom:
    room_id: int
    room_name: str
    room_state: int
    room_x: float
    room_y: float


@dataclass(frozen=True, slots=True)
class AreaInfo:
    area_id: int
    area_type: int
    points: int
    x: list[float] = field(default_factory=list)
    y: list[float] = field(default_factory=list)
    unk1: list[float] = field(default_factory=list)
    unk2: list[float] = field(default_factory=list)
    unk3: list[float] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class CleanRoomInfo:
    info_id: int
    info_type: int


@dataclass(frozen=True, slots=True)
class CleanPlan:
    plan_id: int
    plan_name: str
    map_head_id: int
    unk1: int
    area_info_list: list[AreaInfo]
    clean_room_info_list: list[CleanRoomInfo]


@dataclass(frozen=True, slots=True)
class RoomEnableInfo:
    map_head_id: int
    size: int


@dataclass(slots=True)
class MapData:
    """Blocks present in one map payload; blocks not selected by ``mask`` stay None."""

    mask: int
    status_info: StatusInfo | None = None
    map_head_info: MapHeadInfo | None = None
    map_grid: bytes | None = None
    history_head_info: HistoryHeadInfo | None = None
    history_data: bytes | None = None
    robot_charge_info: RobotChargeInfo | None = None
    wall_list_info: AreaListHeader | None = None
    area_list_info: AreaListHeader | None = None
    spot_info: SpotInfo | None = None
    robot_pose_info: RobotPose | None = None
    clean_plan_info: CleanPlanInfo | None = None
    map_info_list: list[MapInfoEntry] | None = None
    clean_room_list: list[CleanRoom] | None = None
    clean_plan_list: list[CleanPlan] | None = None
    room_matrix: bytes | None = None
    room_enable_info: RoomEnableInfo | None = None


@dataclass(slots=True)
class AreaListData:
    unk1: int
    map_head_id: int
    unk2: int
    unk3: int
    map_head_info: MapHeadInfo
    map_grid: bytes
    clean_plan_info: CleanPlanInfo
    map_info_list: list[MapInfoEntry]
    clean_room_list: list[CleanRoom]
    clean_plan_list: list[CleanPlan]


def _inflate(payload: bytes) -> bytes:
    try:
        return zlib.decompress(payload)
    except zlib.error as exc:
        raise CorruptMapPayloadError(str(exc), payload) from exc


def _read_map_head_info(cursor: ByteCursor) -> MapHeadInfo:
    return MapHeadInfo(
        map_head_id=cursor.u32(),
        map_valid=cursor.u32(),
        map_type=cursor.u32(),
        size_x=cursor.u32(),
        size_y=cursor.u32(),
        min_x=cursor.f32(),
        min_y=cursor.f32(),
        max_x=cursor.f32(),
        max_y=cursor.f32(),
        resolution=cursor.f32(),
    )


def _read_clean_plan_info(cursor: ByteCursor) -> CleanPlanInfo:
    return CleanPlanInfo(map_head_id=cursor.u32(), mask=cursor.u16(), first_clean_flag=cursor.u8())


def _read_area_list_header(cursor: ByteCursor) -> AreaListHeader:
    return AreaListHeader(map_head_id=cursor.u32(), clean_plan_id=cursor.u32(), area_count=cursor.u32())


def _read_map_info_list(cursor: ByteCursor) -> list[MapInfoEntry]:
    return [
        MapInfoEntry(map_head_id=cursor.u32(), map_name=cursor.string(), current_plan_id=cursor.u32())
        for _ in range(cursor.u8())
    ]


def _read_clean_room_list(cursor: ByteCursor) -> list[CleanRoom]:
    return [
        CleanRoom(
            room_id=cursor.u8(),
            room_name=cursor.string(),
            room_state=cursor.u8(),
            room_x=cursor.f32(),
            room_y=cursor.f32(),
        )
        for _ in range(cursor.u32())
    ]


def _read_area_info(cursor: ByteCursor) -> AreaInfo:
    area_id, area_type, points = cursor.u32(), cursor.u32(), cursor.u32()
    if not points:
        return AreaInfo(area_id=area_id, area_type=area_type, points=0)
    # five parallel arrays, each `points` floats long
    return AreaInfo(
        area_id=area_id,
        area_type=area_type,
        points=points,
        x=cursor.f32_array(points),
        y=cursor.f32_array(points),
        unk1=cursor.f32_array(points),
        unk2=cursor.f32_array(points),
        unk3=cursor.f32_array(points),
    )


def _read_clean_plan_list(cursor: ByteCursor) -> list[CleanPlan]:
    plans: list[CleanPlan] = []
    for _ in range(cursor.u8()):
        plan_id = cursor.u32()
        plan_name = cursor.string()
        map_head_id = cursor.u32()
        unk1 = cursor.u32()
        areas = [_read_area_info(cursor) for _ in range(cursor.u32())]
        room_infos = [CleanRoomInfo(info_id=cursor.u8(), info_type=cursor.u8()) for _ in range(cursor.u32())]
        plans.append(
            CleanPlan(
                plan_id=plan_id,
                plan_name=plan_name,
                map_head_id=map_head_id,
                unk1=unk1,
                area_info_list=areas,
                clean_room_info_list=room_infos,
            ),
        )
    return plans


def decode_map(payload: bytes) -> MapData:
    """Inflate and parse a RMSG_MAP_INFO / RMSG_MAP_UPDATE payload."""
    cursor = ByteCursor(_inflate(payload))
    data = MapData(mask=cursor.u32())
    mask = data.mask

    if mask & MASK_STATUS_INFO:
        data.status_info = StatusInfo(*(cursor.u32() for _ in range(11)))

    if mask & MASK_MAP_HEAD_INFO:
        head = data.map_head_info = _read_map_head_info(cursor)
        data.map_grid = cursor.read(head.size_x * head.size_y)

    if mask & MASK_HISTORY_HEAD_INFO:
        history = data.history_head_info = HistoryHeadInfo(
            map_head_id=cursor.u32(),
            point_number=cursor.u32(),
            pose_id=cursor.u32(),
        )
        data.history_data = cursor.read(history.point_number * HISTORY_POINT_SIZE)

    if mask & MASK_ROBOT_CHARGE_INFO:
        data.robot_charge_info = RobotChargeInfo(
            map_head_id=cursor.u32(),
            pose_x=cursor.f32(),
            pose_y=cursor.f32(),
            pose_phi=cursor.f32(),
        )

    if mask & MASK_WALL_LIST_INFO:
        data.wall_list_info = _read_area_list_header(cursor)

    if mask & MASK_AREA_LIST_INFO:
        data.area_list_info = _read_area_list_header(cursor)

    if mask & MASK_SPOT_INFO:
        data.spot_info = SpotInfo(
            map_head_id=cursor.u32(),
            ctrl_value=cursor.u32(),
            pose_x=cursor.f32(),
            pose_y=cursor.f32(),
            pose_phi=cursor.f32(),
        )

    if mask & MASK_ROBOT_POSE_INFO:
        data.robot_pose_info = _read_robot_pose(cursor)

    for bit in UNHANDLED_MASKS:
        if mask & bit:
            raise UnhandledMapSectionError(bit)

    if mask & MASK_CLEAN_PLAN_INFO:
        data.clean_plan_info = _read_clean_plan_info(cursor)

    if mask & MASK_MAP_INFO_LIST:
        data.map_info_list = _read_map_info_list(cursor)

    if mask & MASK_ROOM_SECTION:
        rooms = data.clean_room_list = _read_clean_room_list(cursor)
        data.clean_plan_list = _read_clean_plan_list(cursor)
        data.room_matrix = cursor.read(len(rooms) * len(rooms))
        enable = data.room_enable_info = RoomEnableInfo(map_head_id=cursor.u32(), size=cursor.u8())
        if enable.size:
            raise UnsupportedMapSectionError("room enable info", f"{enable.size} entries")

    return data


def decode_area_list(payload: bytes) -> AreaListData:
    """Inflate and parse a RMSG_AREA_LIST_INFO payload (fixed block order, no mask)."""
    cursor = ByteCursor(_inflate(payload))
    unk1, map_head_id, unk2, unk3 = cursor.u32(), cursor.u32(), cursor.u32(), cursor.u32()
    head = _read_map_head_info(cursor)
    grid = cursor.read(head.size_x * head.size_y)
    return AreaListData(
        unk1=unk1,
        map_head_id=map_head_id,
        unk2=unk2,
        unk3=unk3,
        map_head_info=head,
        map_grid=grid,
        clean_plan_info=_read_clean_plan_info(cursor),
        map_info_list=_read_map_info_list(cursor),
        clean_room_list=_read_clean_room_list(cursor),
        clean_plan_list=_read_clean_plan_list(cursor),
    )


def _read_robot_pose(cursor: ByteCursor) -> RobotPose:
    return RobotPose(
        map_head_id=cursor.u32(),
        pose_id=cursor.u32(),
        update=cursor.u8(),
        pose_x=cursor.f32(),
        pose_y=cursor.f32(),
        pose_phi=cursor.f32(),
    )


def decode_robot_pose(payload: bytes) -> RobotPose:
    """RMSG_UPDATE_ROBOT_POSITION payloads are not compressed."""
    return _read_robot_pose(ByteCursor(payload))


def decode_charger_pose(payload: bytes) -> ChargerPose:
    cursor = ByteCursor(payload)
    return ChargerPose(pose_id=cursor.u32(), pose_x=cursor.f32(), pose_y=cursor.f32(), pose_phi=cursor.f32())
