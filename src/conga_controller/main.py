"""Main entrypoint and lifecycle management for the Conga Controller service."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from functools import partial
from pathlib import Path
from typing import Protocol, cast, runtime_checkable

import dotenv
import uvloop

from conga_controller.const import (
    CONGA_DEBUG,
    CONGA_VERSION,
)
from conga_controller.correlation import correlation_context
from conga_controller.logging_abstraction import get_logger
from conga_controller.metrics import start_metrics_server
from conga_controller.mqtt import MQTTClient
from conga_controller.session import DeviceSessionController
from conga_controller.structs import GlobalObject
from conga_controller.utils import check_python_version, signal_handler

logger = get_logger(__name__)

# aiomqtt logs every reconnect attempt at WARNING
mqtt_logger = logging.getLogger("mqtt")
mqtt_logger.setLevel(logging.ERROR)
mqtt_logger.propagate = False

g = GlobalObject()

MQTT_CLIENT_START_TASK_NAME = "mqtt_client_start"


@runtime_checkable
class _CLIArgs(Protocol):
    debug: bool
    env: Path | None


def _enable_debug_logging() -> None:
    """Switch every conga_controller logger, and its handlers, to DEBUG."""
    for name, obj in list(logging.root.manager.loggerDict.items()):
        if name.startswith("conga_controller") and isinstance(obj, logging.Logger):
            obj.setLevel(logging.DEBUG)
            for handler in obj.handlers:
                handler.setLevel(logging.DEBUG)
    logger.set_level(logging.DEBUG)


class CongaController:
    """Singleton controller orchestrating the device session and the MQTT bridge."""

    lp: str = "CongaController:"
    _instance: CongaController | None = None
    _initialized: bool = False

    def __new__(cls, *_args: object, **_kwargs: object) -> CongaController:
        """Ensure a single instance exists for the controller."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, *_args: object, **_kwargs: object) -> None:
        """Initialize event loop, signals, and global context."""
        if getattr(self, "_initialized", False):
            return
        self._initialized = True

        loop = uvloop.new_event_loop()
        g.loop = loop
        asyncio.set_event_loop(loop)

        logger.info(" Initializing Conga Controller", extra={"version": CONGA_VERSION})

        loop.add_signal_handler(signal.SIGINT, partial(signal_handler, signal.SIGINT))
        loop.add_signal_handler(signal.SIGTERM, partial(signal_handler, signal.SIGTERM))
        logger.debug("Signal handlers configured for SIGINT & SIGTERM")

    async def start(self) -> None:
        """Start the device listeners and, when enabled, the MQTT client and metrics endpoint."""
        env = g.env
        if env.enable_metrics:
            start_metrics_server(env.metrics_port)

        controller = DeviceSessionController(
            host=env.srv_host,
            cmd_port=env.cmd_port,
            map_port=env.map_port,
            handshake_delay=env.handshake_delay,
            map_info_mask=env.map_info_mask,
        )
        g.controller = controller

        if env.mqtt_enabled:
            mqtt_client = MQTTClient(controller)
            g.mqtt_client = mqtt_client
            g.tasks.append(asyncio.create_task(mqtt_client.start(), name=MQTT_CLIENT_START_TASK_NAME))
        else:
            logger.warning(" MQTT disabled, device state will only be logged")

        try:
            await controller.start()
        except OSError as e:
            logger.exception(" Failed to bind device listeners", extra={"error": str(e)})
            await self.stop()
            raise

        main_task = asyncio.current_task()
        if main_task is not None:
            g.tasks.append(main_task)
        logger.info(" Waiting for the robot to connect...")
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the MQTT client and the device session."""
        logger.info(" Shutting down Conga Controller...")
        if g.mqtt_client is not None:
            await g.mqtt_client.stop()
        if g.controller is not None:
            await g.controller.stop()
        for task in g.tasks:
            if not task.done():
                _ = task.cancel()


def parse_cli() -> None:
    """Parse CLI arguments for the controller process."""
    parser = argparse.ArgumentParser(description="Conga Controller Server")
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug mode")
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)
    parsed_args = parser.parse_args()
    g.cli_args = parsed_args
    args = cast("_CLIArgs", cast("object", parsed_args))

    if args.debug:
        _enable_debug_logging()
        logger.info("Debug mode enabled via CLI argument")

    if args.env:
        env_path = args.env.expanduser().resolve()
        if not env_path.exists():
            logger.error("Environment file not found", extra={"path": str(env_path)})
        elif dotenv.load_dotenv(env_path, override=True):
            logger.info(" Environment variables loaded", extra={"source": str(env_path)})
            g.reload_env()
        else:
            logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})


def main() -> None:
    """Run the Conga Controller entry point."""
    with correlation_context():
        logger.info("Starting Conga Controller", extra={"version": CONGA_VERSION})

        parse_cli()

        if CONGA_DEBUG:
            logger.info("Debug logging enabled via configuration")
            _enable_debug_logging()

        check_python_version()
        controller = CongaController()

        try:
            asyncio.get_event_loop().run_until_complete(controller.start())
        except asyncio.CancelledError:
            logger.info("Conga Controller cancelled, shutting down...")
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
        except Exception as e:
            logger.exception(" Fatal error in main loop", extra={"error": str(e)})
        else:
            logger.info(" Conga Controller stopped gracefully")
        finally:
            if g.loop is not None and not g.loop.is_closed():
                g.loop.close()
            logger.info("Conga Controller shutdown complete")


if __name__ == "__main__":
    main()
