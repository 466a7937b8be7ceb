"""Prometheus metrics for the device channels."""

import threading
from typing import Final

from prometheus_client import Counter, Gauge, Histogram, start_http_server

conga_packets_received_total: Final = Counter(
    "conga_packets_received_total",
    "Total frames received from the device",
    ["channel", "opname"],
)

conga_packets_sent_total: Final = Counter(
    "conga_packets_sent_total",
    "Total frames sent to the device",
    ["channel", "opname"],
)

conga_decode_errors_total: Final = Counter(
    "conga_decode_errors_total",
    "Total framing and decode errors",
    ["channel", "reason"],
)

conga_handler_errors_total: Final = Counter(
    "conga_handler_errors_total",
    "Total exceptions raised by packet handlers",
    ["channel", "opname"],
)

conga_connections_total: Final = Counter(
    "conga_connections_total",
    "Total device connections accepted",
    ["channel"],
)

conga_connection_state: Final = Gauge(
    "conga_connection_state",
    "1 while a device connection is open on the channel",
    ["channel"],
)

conga_command_latency_seconds: Final = Histogram(
    "conga_command_latency_seconds",
    "Command request/reply round-trip latency in seconds",
    ["command"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)
            _server_state["started"] = True


def record_packet_recv(channel: str, opname: str | None) -> None:
    conga_packets_received_total.labels(channel=channel, opname=opname or "unknown").inc()


def record_packet_sent(channel: str, opname: str) -> None:
    conga_packets_sent_total.labels(channel=channel, opname=opname).inc()


def record_decode_error(channel: str, reason: str) -> None:
    conga_decode_errors_total.labels(channel=channel, reason=reason).inc()


def record_handler_error(channel: str, opname: str) -> None:
    conga_handler_errors_total.labels(channel=channel, opname=opname).inc()


def record_connection(channel: str, connected: bool) -> None:
    """Track connection open/close; opens also bump the accepted counter."""
    if connected:
        conga_connections_total.labels(channel=channel).inc()
    conga_connection_state.labels(channel=channel).set(1 if connected else 0)


def record_command_latency(command: str, latency_seconds: float) -> None:
    conga_command_latency_seconds.labels(command=command).observe(latency_seconds)
