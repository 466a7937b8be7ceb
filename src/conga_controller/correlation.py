"""
Correlation ids for log lines.

A fresh id is bound for the app lifecycle and for every accepted device
connection, so all log lines produced while serving one socket can be grouped.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "get_correlation_id",
    "new_correlation_id",
]

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "conga_correlation_id",
    default=None,
)


def new_correlation_id(prefix: str = "") -> str:
    """Return a new id, optionally tagged with a short prefix (``cmd-``, ``map-``)."""
    return f"{prefix}{uuid.uuid4().hex}"


def get_correlation_id() -> str | None:
    return _correlation_id.get()


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Generator[str]:
    """
    Bind a correlation id for the duration of the block.

    The previous id is restored on exit. Tasks created inside the block copy the
    context and keep the id for their whole lifetime.
    """
    cid = correlation_id or new_correlation_id()
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)
