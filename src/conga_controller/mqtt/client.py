"""MQTT client for the Conga controller.

Publishes robot state, map snapshots and availability, and feeds command
topics to the CommandRouter. These publishers are the default status/map
collaborators of the session controller.
"""

from __future__ import annotations

import asyncio

import aiomqtt

from conga_controller.const import DEVICE_LWT_MSG
from conga_controller.logging_abstraction import get_logger
from conga_controller.mqtt.command_routing import CommandRouter
from conga_controller.session.controller import DeviceSessionController
from conga_controller.structs import GlobalObject, MapSnapshot, RobotState

logger = get_logger(__name__)
g = GlobalObject()

BIRTH_MSG: bytes = b"online"


class MQTTClient:
    """Broker connection with a reconnect loop."""

    lp: str = "mqtt:"

    def __init__(self, controller: DeviceSessionController) -> None:
        self.controller = controller
        self.topic: str = g.env.mqtt_topic or "conga"
        self.client: aiomqtt.Client | None = None
        self.command_router = CommandRouter(self.topic, controller)
        self._connected = False
        controller.on_status_changed = self.publish_state
        controller.on_map_changed = self.publish_map

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _new_client(self) -> aiomqtt.Client:
        env = g.env
        return aiomqtt.Client(
            hostname=env.mqtt_host,
            port=env.mqtt_port,
            username=env.mqtt_user,
            password=env.mqtt_pass,
            will=aiomqtt.Will(topic=f"{self.topic}/availability", payload=DEVICE_LWT_MSG, retain=True),
        )

    def _get_connection_delay(self, lp: str) -> int:
        """Get connection retry delay, defaulting to 5 seconds."""
        delay = g.env.mqtt_conn_delay
        if delay <= 0:
            logger.debug("%s MQTT connection delay is <= 0, using 5 seconds", lp)
            return 5
        return delay

    async def start(self) -> None:
        lp = f"{self.lp}start:"
        while True:
            self.client = self._new_client()
            try:
                async with self.client:
                    self._connected = True
                    logger.info(
                        "%s Connected to MQTT broker: %s port: %s",
                        lp,
                        g.env.mqtt_host,
                        g.env.mqtt_port,
                    )
                    await self.client.publish(f"{self.topic}/availability", BIRTH_MSG, retain=True)
                    await self.client.subscribe(f"{self.topic}/command/#")
                    await self.publish_state(await self.controller.get_current_status())
                    await self.command_router.start_receiver_task(self.client.messages)
            except aiomqtt.MqttError as exc:
                logger.warning("%s MQTT error: %s", lp, exc)
            finally:
                self._connected = False
            delay = self._get_connection_delay(lp)
            logger.info("%s reconnecting to MQTT broker in %s seconds...", lp, delay)
            await asyncio.sleep(delay)

    async def stop(self) -> None:
        lp = f"{self.lp}stop:"
        if self._connected and self.client is not None:
            _ = await self.publish(f"{self.topic}/availability", DEVICE_LWT_MSG, retain=True)
        self._connected = False
        logger.debug("%s stopped", lp)

    async def publish(self, topic: str, msg_data: bytes, retain: bool = False) -> bool:
        """Publish a message to the MQTT broker."""
        lp = f"{self.lp}publish:"
        if not self._connected or self.client is None:
            return False
        try:
            await self.client.publish(topic, msg_data, qos=0, retain=retain)
        except aiomqtt.MqttError as mqtt_err:
            logger.warning("%s [MqttError] -> %s", lp, mqtt_err)
            self._connected = False
            return False
        return True

    async def publish_state(self, state: RobotState) -> None:
        _ = await self.publish(f"{self.topic}/state", state.model_dump_json().encode(), retain=True)

    async def publish_map(self, snapshot: MapSnapshot) -> None:
        _ = await self.publish(f"{self.topic}/map", snapshot.model_dump_json().encode(), retain=True)
