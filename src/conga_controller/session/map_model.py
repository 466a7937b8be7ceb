"""Live map state and the device <-> pixel coordinate transform.

Device coordinates are floats inside the map's ``min``/``max`` bounds. Pixel
coordinates index a ``size.x`` by ``size.y`` grid with Y growing downwards, so
the Y axis is inverted in both directions. Robot and charger markers, and any
pixel target coming from a UI, use a display scale of 5 on top of the grid.
"""

from __future__ import annotations

import math
from typing import NamedTuple

from conga_controller.const import DISPLAY_SCALE
from conga_controller.logging_abstraction import get_logger
from conga_controller.protocol.map_decoder import (
    AreaListData,
    ChargerPose,
    CleanRoom,
    MapData,
    MapHeadInfo,
    RobotChargeInfo,
    RobotPose,
)
from conga_controller.structs import MapSnapshot, Room

logger = get_logger(__name__)

WALL_CELL = 255

DEFAULT_SIZE = 800
DEFAULT_BOUND = 20.0


class Point(NamedTuple):
    x: float
    y: float


def classify_grid(grid: bytes, size_x: int, size_y: int) -> tuple[list[tuple[int, int]], list[tuple[int, int]]]:
    """Split a raw occupancy grid into (floor pixels, wall pixels).

    Pixel ``(x, y)`` reads grid row ``size_y - y``; rows outside the grid are
    skipped. 255 is a wall, any other non-zero value is floor, 0 is unknown.
    """
    floors: list[tuple[int, int]] = []
    walls: list[tuple[int, int]] = []
    for y in range(size_y):
        row = size_y - y
        if row >= size_y:
            continue
        start = row * size_x
        cells = grid[start : start + size_x]
        for x, cell in enumerate(cells):
            if cell == WALL_CELL:
                walls.append((x, y))
            elif cell:
                floors.append((x, y))
    return floors, walls


def has_usable_geometry(head: MapHeadInfo) -> bool:
    """A robot without a map reports ``map_valid == 0`` with empty bounds."""
    return bool(
        head.map_valid
        and head.size_x > 0
        and head.size_y > 0
        and head.max_x > head.min_x
        and head.max_y > head.min_y,
    )


def _to_pixel(point: Point, size: tuple[int, int], lo: Point, hi: Point) -> tuple[int, int]:
    size_x, size_y = size
    x = math.floor((point.x - lo.x) * size_x / (hi.x - lo.x))
    y = size_y - math.floor((point.y - lo.y) * size_y / (hi.y - lo.y))
    return x, y


def _marker(point: Point, size: tuple[int, int], lo: Point, hi: Point) -> tuple[int, int]:
    x, y = _to_pixel(point, size, lo, hi)
    return x * DISPLAY_SCALE, y * DISPLAY_SCALE


def _markers(
    data: MapData | AreaListData,
    size: tuple[int, int],
    lo: Point,
    hi: Point,
) -> tuple[tuple[int, int] | None, tuple[int, int] | None]:
    """(robot, charger) display pixels carried by a map payload, if any."""
    if not isinstance(data, MapData):
        return None, None
    robot = charger = None
    if data.robot_pose_info is not None:
        robot = _marker(Point(data.robot_pose_info.pose_x, data.robot_pose_info.pose_y), size, lo, hi)
    if data.robot_charge_info is not None:
        charger = _marker(Point(data.robot_charge_info.pose_x, data.robot_charge_info.pose_y), size, lo, hi)
    return robot, charger


class MapModel:
    """The map as last reported by the device."""

    def __init__(self) -> None:
        self.id = 0
        self.size = (DEFAULT_SIZE, DEFAULT_SIZE)
        self.min = Point(-DEFAULT_BOUND, -DEFAULT_BOUND)
        self.max = Point(DEFAULT_BOUND, DEFAULT_BOUND)
        self.floors: list[tuple[int, int]] = []
        self.walls: list[tuple[int, int]] = []
        self.robot: tuple[int, int] | None = None
        self.charger: tuple[int, int] | None = None
        self.rooms: list[Room] = []

    def to_pixel(self, point: Point) -> tuple[int, int]:
        return _to_pixel(point, self.size, self.min, self.max)

    def to_device(self, pixel: Point) -> Point:
        size_x, size_y = self.size
        x = pixel.x * (self.max.x - self.min.x) / size_x + self.min.x
        y = (size_y - pixel.y) * (self.max.y - self.min.y) / size_y + self.min.y
        return Point(x, y)

    def display_to_device(self, x: float, y: float) -> Point:
        """Device coordinates for a point given in display-scaled pixels."""
        return self.to_device(Point(x / DISPLAY_SCALE, y / DISPLAY_SCALE))

    def _marker(self, pose_x: float, pose_y: float) -> tuple[int, int]:
        return _marker(Point(pose_x, pose_y), self.size, self.min, self.max)

    def update(self, data: MapData | AreaListData) -> None:
        """Replace geometry from a decoded map or area list.

        Everything is computed before any attribute is assigned. A map payload
        without a usable head-info block only moves the markers, against the
        geometry already held.
        """
        head = data.map_head_info
        if head is not None and not has_usable_geometry(head):
            logger.debug(
                "Ignoring map head without usable geometry",
                extra={"map_id": head.map_head_id, "map_valid": head.map_valid, "size": (head.size_x, head.size_y)},
            )
            head = None
        if head is None or data.map_grid is None:
            self._update_markers(data)
            return

        size = (head.size_x, head.size_y)
        lo = Point(head.min_x, head.min_y)
        hi = Point(head.max_x, head.max_y)
        floors, walls = classify_grid(data.map_grid, head.size_x, head.size_y)
        rooms = self._rooms(data.clean_room_list)
        robot, charger = _markers(data, size, lo, hi)

        self.id = head.map_head_id
        self.size = size
        self.min = lo
        self.max = hi
        self.floors = floors
        self.walls = walls
        if rooms is not None:
            self.rooms = rooms
        if robot is not None:
            self.robot = robot
        if charger is not None:
            self.charger = charger
        logger.debug(
            "Map updated",
            extra={"map_id": self.id, "size": self.size, "floors": len(floors), "walls": len(walls)},
        )

    def _update_markers(self, data: MapData | AreaListData) -> None:
        robot, charger = _markers(data, self.size, self.min, self.max)
        if robot is not None:
            self.robot = robot
        if charger is not None:
            self.charger = charger

    @staticmethod
    def _rooms(clean_rooms: list[CleanRoom] | None) -> list[Room] | None:
        if clean_rooms is None:
            return None
        return [
            Room(id=room.room_id, name=room.room_name, state=room.room_state, x=room.room_x, y=room.room_y)
            for room in clean_rooms
        ]

    def update_robot_position(self, pose: RobotPose) -> None:
        self.robot = self._marker(pose.pose_x, pose.pose_y)

    def update_charger_position(self, pose: ChargerPose | RobotChargeInfo) -> None:
        self.charger = self._marker(pose.pose_x, pose.pose_y)

    def snapshot(self) -> MapSnapshot:
        # values are already typed; a full map holds hundreds of thousands of pixels
        return MapSnapshot.model_construct(
            id=self.id,
            size=self.size,
            min=(self.min.x, self.min.y),
            max=(self.max.x, self.max.y),
            floors=list(self.floors),
            walls=list(self.walls),
            robot=self.robot,
            charger=self.charger,
            rooms=list(self.rooms),
        )
