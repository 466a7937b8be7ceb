"""Metrics module."""

from . import registry
from .registry import (
    record_command_latency,
    record_connection,
    record_decode_error,
    record_handler_error,
    record_packet_recv,
    record_packet_sent,
    start_metrics_server,
)

__all__ = [
    "record_command_latency",
    "record_connection",
    "record_decode_error",
    "record_handler_error",
    "record_packet_recv",
    "record_packet_sent",
    "registry",
    "start_metrics_server",
]
