"""Custom exception types for the device transport layer."""

from __future__ import annotations

from conga_controller.protocol.exceptions import CongaProtocolError


class CongaConnectionError(CongaProtocolError):
    """No usable device connection on a channel.

    Raised when:
    - Sending while no device is connected
    - Writing to a connection that is closing
    - A command's connection closes or is replaced before its reply arrives

    Attributes:
        reason: Specific failure reason
        channel: Name of the channel ("cmd" or "map")

    """

    def __init__(self, reason: str, channel: str = "unknown") -> None:
        self.reason: str = reason
        self.channel: str = channel
        super().__init__(f"Connection error: {reason} (channel: {channel})")
