"""Opname-driven payload decoding and encoding."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any, Final

from conga_controller.protocol.map_decoder import (
    decode_area_list,
    decode_charger_pose,
    decode_map,
    decode_robot_pose,
)
from conga_controller.protocol.packet import Packet
from conga_controller.protocol.schemas import SchemaRegistry, get_registry

BINARY_DECODERS: Final[Mapping[str, Callable[[bytes], Any]]] = MappingProxyType(
    {
        "RMSG_UPDATE_ROBOT_POSITION": decode_robot_pose,
        "RMSG_UPDATE_CHARGE_POSITION": decode_charger_pose,
        "RMSG_MAP_INFO": decode_map,
        "RMSG_MAP_UPDATE": decode_map,
        "RMSG_AREA_LIST_INFO": decode_area_list,
    },
)


class PayloadCodec:
    """Turns packet payloads into Python values and back.

    Schema messages decode to dicts, binary map/pose payloads to their
    dataclasses. Anything else, including an empty payload, decodes to None.
    """

    def __init__(self, registry: SchemaRegistry | None = None) -> None:
        self.registry = registry or get_registry()

    def decode(self, packet: Packet) -> Any:
        opname = packet.opname
        if opname is None or not packet.payload:
            return None
        if self.registry.has_schema(opname):
            return self.registry.decode(opname, packet.payload)
        decoder = BINARY_DECODERS.get(opname)
        if decoder is not None:
            return decoder(packet.payload)
        return None

    def encode(self, opname: str, data: Mapping[str, Any] | None) -> bytes:
        """Serialize ``data`` for ``opname``; None or an empty mapping yields no payload.

        Raises:
            SchemaValidationError: no schema for ``opname`` or ``data`` does not fit it
        """
        if not data:
            return b""
        return self.registry.encode(opname, data)
