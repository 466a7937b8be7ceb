"""MQTT bridge: state/map publishing and command routing."""

from conga_controller.mqtt.client import MQTTClient
from conga_controller.mqtt.command_routing import CommandRouter

__all__ = [
    "CommandRouter",
    "MQTTClient",
]
