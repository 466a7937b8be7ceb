import os

from conga_controller import __version__

__all__ = [
    "BATTERY_MAX",
    "CONGA_CHUNK_SIZE",
    "CONGA_CMD_PORT",
    "CONGA_DEBUG",
    "CONGA_ENABLE_METRICS",
    "CONGA_HANDSHAKE_DELAY",
    "CONGA_LOG_FORMAT",
    "CONGA_LOG_HUMAN_OUTPUT",
    "CONGA_LOG_JSON_FILE",
    "CONGA_MAP_INFO_MASK",
    "CONGA_MAP_PORT",
    "CONGA_METRICS_PORT",
    "CONGA_MQTT_CONN_DELAY",
    "CONGA_MQTT_ENABLED",
    "CONGA_MQTT_HOST",
    "CONGA_MQTT_PASS",
    "CONGA_MQTT_PORT",
    "CONGA_MQTT_USER",
    "CONGA_RAW",
    "CONGA_SRV_HOST",
    "CONGA_TOPIC",
    "CONGA_VERSION",
    "DEVICE_LWT_MSG",
    "DISPLAY_SCALE",
    "HEADER_SIZE",
    "LOGIN_NOT_REGISTERED",
    "MAX_FRAME_SIZE",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
CONGA_VERSION: str = __version__
DEVICE_LWT_MSG: bytes = b"offline"


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw, 0)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


CONGA_SRV_HOST: str = os.environ.get("CONGA_SRV_HOST", "0.0.0.0")
CONGA_CMD_PORT: int = _int_env("CONGA_CMD_PORT", 4010)
CONGA_MAP_PORT: int = _int_env("CONGA_MAP_PORT", 4030)
CONGA_CHUNK_SIZE: int = _int_env("CONGA_CHUNK_SIZE", 4096)
# seconds between the time sync and the first map request of a login handshake
CONGA_HANDSHAKE_DELAY: float = _float_env("CONGA_HANDSHAKE_DELAY", 1.0)
CONGA_MAP_INFO_MASK: int = _int_env("CONGA_MAP_INFO_MASK", 0x78FF)

CONGA_RAW: bool = os.environ.get("CONGA_RAW_DEBUG", "0").casefold() in YES_ANSWER
CONGA_DEBUG: bool = os.environ.get("CONGA_DEBUG", "0").casefold() in YES_ANSWER

CONGA_MQTT_ENABLED: bool = os.environ.get("CONGA_MQTT_ENABLED", "true").casefold() in YES_ANSWER
CONGA_MQTT_HOST: str = os.environ.get("CONGA_MQTT_HOST", "homeassistant.local")
CONGA_MQTT_PORT: int = _int_env("CONGA_MQTT_PORT", 1883)
CONGA_MQTT_USER: str | None = os.environ.get("CONGA_MQTT_USER")
CONGA_MQTT_PASS: str | None = os.environ.get("CONGA_MQTT_PASS")
CONGA_TOPIC: str = os.environ.get("CONGA_TOPIC", "conga")
CONGA_MQTT_CONN_DELAY: int = _int_env("CONGA_MQTT_CONN_DELAY", 10)

CONGA_ENABLE_METRICS: bool = os.environ.get("CONGA_ENABLE_METRICS", "0").casefold() in YES_ANSWER
CONGA_METRICS_PORT: int = _int_env("CONGA_METRICS_PORT", 9400)

# Logging Configuration
CONGA_LOG_FORMAT: str = os.environ.get("CONGA_LOG_FORMAT", "human")  # "json", "human", or "both"
CONGA_LOG_JSON_FILE: str = os.environ.get("CONGA_LOG_JSON_FILE", "/var/log/conga_controller.json")
CONGA_LOG_HUMAN_OUTPUT: str = os.environ.get("CONGA_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path

HEADER_SIZE = 24
# whole maps arrive in a single frame; observed compressed maps stay well under 1 MiB
MAX_FRAME_SIZE = 8 * 1024 * 1024
BATTERY_MAX = 200
DISPLAY_SCALE = 5
LOGIN_NOT_REGISTERED = 12002
