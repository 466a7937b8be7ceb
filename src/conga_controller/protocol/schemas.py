"""Protocol Buffers message schemas, keyed by opname.

The message shapes are declared as plain tables and compiled once, on first use,
into a private descriptor pool. Field numbers follow declaration order.

Field type strings are protobuf scalar names (``uint32``, ``float``, ...) or
the name of another declared message. A ``[]`` suffix marks a repeated field.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Final

from google.protobuf import descriptor_pb2, descriptor_pool, json_format, message_factory
from google.protobuf.message import DecodeError, Message

from conga_controller.protocol.exceptions import PacketDecodeError, SchemaValidationError

__all__ = [
    "MESSAGE_TYPES",
    "OPNAME_SCHEMAS",
    "SchemaRegistry",
]

PACKAGE: Final = "conga"

_FDP = descriptor_pb2.FieldDescriptorProto
_SCALARS: Final = MappingProxyType(
    {
        "bool": _FDP.TYPE_BOOL,
        "float": _FDP.TYPE_FLOAT,
        "int32": _FDP.TYPE_INT32,
        "string": _FDP.TYPE_STRING,
        "uint32": _FDP.TYPE_UINT32,
        "uint64": _FDP.TYPE_UINT64,
    },
)

MESSAGE_TYPES: Final[Mapping[str, tuple[tuple[str, str], ...]]] = MappingProxyType(
    {
        "Result": (("result", "int32"), ("reason", "string")),
        "DeviceIdentity": (("device_serial_number", "string"), ("software_version", "string")),
        "DeviceRef": (("id", "uint32"),),
        "SignupResult": (("result", "int32"), ("device", "DeviceRef")),
        "BatteryInfo": (("level", "uint32"),),
        "BatteryLevel": (("battery", "BatteryInfo"),),
        "DeviceStatus": (
            ("work_mode", "uint32"),
            ("battery", "uint32"),
            ("charge_status", "bool"),
            ("clean_time", "uint32"),
            ("clean_size", "uint32"),
            ("type", "uint32"),
            ("clean_preference", "uint32"),
        ),
        "FanMode": (("mode", "uint32"),),
        "ReturnHome": (("unk1", "uint32"),),
        "CleanMode": (("mode", "uint32"), ("unk1", "uint32")),
        "StartAreaClean": (("unk1", "uint32"),),
        "MapInfoRequest": (("mask", "uint32"),),
        "Unk2": (("unk1", "uint32"), ("unk2", "string")),
        "SetPosition": (
            ("map_head_id", "uint32"),
            ("pose_x", "float"),
            ("pose_y", "float"),
            ("pose_phi", "float"),
            ("update", "uint32"),
        ),
        "Coordinate": (("x", "float"), ("y", "float")),
        "AreaEntry": (
            ("clean_area_id", "uint32"),
            ("unk1", "uint32"),
            ("coordinate_length", "uint32"),
            ("coordinate_list", "Coordinate[]"),
        ),
        "SetArea": (
            ("map_head_id", "uint32"),
            ("unk1", "uint32"),
            ("clean_area_length", "uint32"),
            ("clean_area_list", "AreaEntry[]"),
        ),
    },
)

OPNAME_SCHEMAS: Final[Mapping[str, str]] = MappingProxyType(
    {
        "QMSG_DEVICE_LOGIN": "DeviceIdentity",
        "RMSG_DEVICE_LOGIN": "Result",
        "QMSG_DEVICE_SIGNUP": "DeviceIdentity",
        "RMSG_DEVICE_SIGNUP": "SignupResult",
        "RMSG_DEVICE_INFO": "Result",
        "RMSG_DEVICE_VERSION": "Result",
        "RMSG_DEVICE_OTA": "Result",
        "RMSG_UNK1": "Result",
        "QMSG_BATTERY_LEVEL": "BatteryLevel",
        "RMSG_BATTERY_LEVEL": "Result",
        "QMSG_DEVICE_STATUS": "DeviceStatus",
        "QMSG_SET_FAN_MODE": "FanMode",
        "RMSG_SET_FAN_MODE": "Result",
        "QMSG_RETURN_HOME": "ReturnHome",
        "RMSG_RETURN_HOME": "Result",
        "QMSG_CLEAN_MODE": "CleanMode",
        "RMSG_CLEAN_MODE": "Result",
        "QMSG_CLEAN_AREA": "StartAreaClean",
        "RMSG_CLEAN_AREA": "Result",
        "QMSG_MAP_INFO": "MapInfoRequest",
        "QMSG_UNK2": "Unk2",
        "RMSG_UNK2": "Result",
        "QMSG_SET_POSITION": "SetPosition",
        "RMSG_SET_POSITION": "Result",
        "QMSG_SET_AREA": "SetArea",
        "RMSG_SET_AREA": "Result",
        "RMSG_LOCATE_DEVICE": "Result",
        "RMSG_DEVICE_TIME": "Result",
        "RMSG_DEVICE_CHECK": "Result",
    },
)


def _split_type(field_type: str) -> tuple[str, bool]:
    if field_type.endswith("[]"):
        return field_type[:-2], True
    return field_type, False


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(name="conga.proto", package=PACKAGE, syntax="proto3")
    for type_name, fields in MESSAGE_TYPES.items():
        message = file_proto.message_type.add(name=type_name)
        for number, (field_name, field_type) in enumerate(fields, start=1):
            base, repeated = _split_type(field_type)
            field = message.field.add(name=field_name, number=number)
            field.label = _FDP.LABEL_REPEATED if repeated else _FDP.LABEL_OPTIONAL
            if base in _SCALARS:
                field.type = _SCALARS[base]
            else:
                field.type = _FDP.TYPE_MESSAGE
                field.type_name = f".{PACKAGE}.{base}"
    return file_proto


class SchemaRegistry:
    """Compiled message classes and the dict <-> bytes conversions for each opname."""

    def __init__(self) -> None:
        self._pool = descriptor_pool.DescriptorPool()
        self._pool.AddSerializedFile(_build_file().SerializeToString())
        self._classes: dict[str, type[Message]] = {
            type_name: message_factory.GetMessageClass(self._pool.FindMessageTypeByName(f"{PACKAGE}.{type_name}"))
            for type_name in MESSAGE_TYPES
        }

    def has_schema(self, opname: str | None) -> bool:
        return opname in OPNAME_SCHEMAS

    def message_class(self, opname: str) -> type[Message]:
        return self._classes[OPNAME_SCHEMAS[opname]]

    def decode(self, opname: str, payload: bytes) -> dict[str, Any]:
        """Parse ``payload`` with the schema for ``opname``.

        Every declared field is present in the result, defaulted when absent
        on the wire.
        """
        message = self.message_class(opname)()
        try:
            message.ParseFromString(payload)
        except DecodeError as exc:
            raise PacketDecodeError("schema_decode", payload, message=f"{opname}: {exc}") from exc
        return self._to_dict(OPNAME_SCHEMAS[opname], message)

    def encode(self, opname: str, data: Mapping[str, Any]) -> bytes:
        if opname not in OPNAME_SCHEMAS:
            raise SchemaValidationError(opname, "no schema for opcode")
        if not isinstance(data, Mapping):
            raise SchemaValidationError(opname, f"expected a mapping, got {type(data).__name__}")
        message = self.message_class(opname)()
        try:
            json_format.ParseDict(dict(data), message)
        except json_format.ParseError as exc:
            raise SchemaValidationError(opname, str(exc)) from exc
        return message.SerializeToString()

    def _to_dict(self, type_name: str, message: Message) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for field_name, field_type in MESSAGE_TYPES[type_name]:
            base, repeated = _split_type(field_type)
            value = getattr(message, field_name)
            if base in _SCALARS:
                result[field_name] = list(value) if repeated else value
            elif repeated:
                result[field_name] = [self._to_dict(base, item) for item in value]
            else:
                result[field_name] = self._to_dict(base, value)
        return result


_registry: SchemaRegistry | None = None


def get_registry() -> SchemaRegistry:
    """Process-wide registry; compiled on first use and never modified afterwards."""
    global _registry
    if _registry is None:
        _registry = SchemaRegistry()
    return _registry
