"""Signal handling and process-level helpers."""

from __future__ import annotations

import asyncio
import signal
import sys

from conga_controller.logging_abstraction import get_logger
from conga_controller.structs import GlobalObject

logger = get_logger(__name__)
g = GlobalObject()

MIN_PY_VERSION = (3, 12)


async def _async_signal_cleanup() -> None:
    logger.info("Conga Controller: Starting signal cleanup...")
    if g.mqtt_client is not None:
        logger.debug("Stopping mqtt_client...")
        await g.mqtt_client.stop()
    if g.controller is not None:
        logger.debug("Stopping device session...")
        await g.controller.stop()
    for task in g.tasks:
        if not task.done():
            logger.debug("Conga Controller: Cancelling task: %s", task.get_name())
            _ = task.cancel()
    logger.info("Conga Controller: Signal cleanup completed")


def signal_handler(signum: int) -> None:
    """Handle incoming POSIX signals by scheduling async cleanup."""
    logger.info("Conga Controller: Intercepted signal: %s (%s)", signal.Signals(signum).name, signum)
    loop = g.loop or asyncio.get_event_loop()
    _ = loop.create_task(_async_signal_cleanup())


def check_python_version() -> None:
    """Ensure the running interpreter meets the minimum supported version."""
    if sys.version_info < MIN_PY_VERSION:
        version_message = (
            f"Conga Controller requires Python {MIN_PY_VERSION[0]}.{MIN_PY_VERSION[1]} or newer; "
            f"detected {sys.version_info.major}.{sys.version_info.minor}"
        )
        raise RuntimeError(version_message)
