"""Device transport - listeners, connections and command correlation."""

from conga_controller.transport.channel import CommandChannel, Handler
from conga_controller.transport.connection import DeviceConnection, Message
from conga_controller.transport.exceptions import CongaConnectionError

__all__ = [
    "CommandChannel",
    "CongaConnectionError",
    "DeviceConnection",
    "Handler",
    "Message",
]
