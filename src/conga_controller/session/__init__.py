"""Device session logic: handshake state machine, status classification and map model."""

from conga_controller.session.controller import DeviceSessionController
from conga_controller.session.map_model import MapModel, Point

__all__ = [
    "DeviceSessionController",
    "MapModel",
    "Point",
]
