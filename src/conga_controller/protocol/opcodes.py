"""Opcode table for the Conga cloud protocol.

``QMSG_*`` names are requests, ``RMSG_*`` names are replies or device-pushed
updates. The numeric values are fixed by the device firmware.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Final

OPCODES: Final = MappingProxyType(
    {
        "QMSG_DEVICE_LOGIN": 0x07D1,
        "RMSG_DEVICE_LOGIN": 0x07D2,
        "QMSG_PING": 0x07D5,
        "RMSG_PING": 0x07D6,
        "QMSG_DEVICE_SIGNUP": 0x0FA1,
        "RMSG_DEVICE_SIGNUP": 0x0FA2,
        "QMSG_CONNECT_DEVICE": 0x1009,
        "QMSG_DEVICE_TIME": 0x1011,
        "RMSG_DEVICE_TIME": 0x1012,
        "QMSG_RETURN_HOME": 0x1069,
        "RMSG_RETURN_HOME": 0x106A,
        "QMSG_CLEAN_AREA": 0x106B,
        "RMSG_CLEAN_AREA": 0x106C,
        "QMSG_CLEAN_MODE": 0x106D,
        "RMSG_CLEAN_MODE": 0x106E,
        "QMSG_DEVICE_CHECK": 0x1079,
        "RMSG_DEVICE_CHECK": 0x107A,
        "QMSG_SET_FAN_MODE": 0x10D9,
        "RMSG_SET_FAN_MODE": 0x10DA,
        "QMSG_LOCATE_DEVICE": 0x10EB,
        "RMSG_LOCATE_DEVICE": 0x10EC,
        "QMSG_DEVICE_STATUS": 0x10FE,
        "QMSG_SET_AREA": 0x1101,
        "RMSG_SET_AREA": 0x1102,
        "QMSG_SET_POSITION": 0x1103,
        "RMSG_SET_POSITION": 0x1104,
        "QMSG_UNK2": 0x111F,
        "RMSG_UNK2": 0x1120,
        "QMSG_MAP_INFO": 0x1162,
        "RMSG_MAP_INFO": 0x1163,
        "RMSG_MAP_UPDATE": 0x1164,
        "RMSG_UPDATE_ROBOT_POSITION": 0x1166,
        "RMSG_UPDATE_CHARGE_POSITION": 0x1168,
        "RMSG_AREA_LIST_INFO": 0x116A,
        "QMSG_UNK1": 0x119A,
        "RMSG_UNK1": 0x119B,
        "QMSG_DEVICE_VERSION": 0x119C,
        "RMSG_DEVICE_VERSION": 0x119D,
        "QMSG_DEVICE_OTA": 0x1461,
        "RMSG_DEVICE_OTA": 0x1462,
        "QMSG_DEVICE_INFO": 0x1465,
        "RMSG_DEVICE_INFO": 0x1466,
        "QMSG_BATTERY_LEVEL": 0x146F,
        "RMSG_BATTERY_LEVEL": 0x1470,
    },
)

OPNAMES: Final = MappingProxyType({code: name for name, code in OPCODES.items()})

# command name -> (request opname, reply opname)
COMMANDS: Final = MappingProxyType(
    {
        name: (f"QMSG_{name}", f"RMSG_{name}")
        for name in (
            "LOCATE_DEVICE",
            "RETURN_HOME",
            "CLEAN_MODE",
            "SET_FAN_MODE",
            "MAP_INFO",
            "SET_POSITION",
            "UNK2",
            "DEVICE_TIME",
            "DEVICE_CHECK",
            "SET_AREA",
            "CLEAN_AREA",
        )
    },
)


def opcode_of(opname: str) -> int:
    """Numeric opcode for ``opname``; raises KeyError for unknown names."""
    return OPCODES[opname]


def opname_of(opcode: int) -> str | None:
    """Symbolic name for ``opcode``, or None when the opcode is not in the table."""
    return OPNAMES.get(opcode)
