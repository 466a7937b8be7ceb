"""Logging front-end for the Conga bridge.

Every module asks for a logger through :func:`get_logger`. Output goes to a
human-readable stream and/or a JSON lines file, and each record is stamped with
the correlation id of the connection (or app lifecycle) that produced it.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing_extensions import override

__all__ = [
    "CongaLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "get_logger",
]

_CONTEXT_ATTR = "conga_context"


def _context_of(record: logging.LogRecord) -> dict[str, object]:
    context = getattr(record, _CONTEXT_ATTR, None)
    if isinstance(context, Mapping) and context:
        return dict(context)
    return {}


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        from conga_controller.correlation import get_correlation_id

        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}:{record.lineno}",
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        context = _context_of(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``time level [module:line] [corr] > message | key=value``"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_tag)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        from conga_controller.correlation import get_correlation_id

        correlation_id = get_correlation_id()
        record.correlation_tag = f"[{correlation_id[:8]}]" if correlation_id else "[--------]"
        line = super().format(record)
        context = _context_of(record)
        if context:
            line += " | " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


def _human_handler(target: str) -> logging.Handler:
    if target == "stdout":
        return logging.StreamHandler(sys.stdout)
    if target == "stderr":
        return logging.StreamHandler(sys.stderr)
    path = Path(target)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(path, mode="a")
    except OSError as exc:
        print(f"Warning: cannot open log file {target}: {exc}, using stdout", file=sys.stderr)
        return logging.StreamHandler(sys.stdout)


def _json_handler(target: str | Path) -> logging.Handler | None:
    path = Path(target)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(path, mode="a")
    except OSError as exc:
        print(f"Warning: cannot open JSON log file {target}: {exc}", file=sys.stderr)
        return None


class CongaLogger:
    """Thin wrapper over :class:`logging.Logger` that takes structured context.

    Context passed as ``extra={...}`` is rendered as ``key=value`` pairs in the
    human output and as a ``context`` object in the JSON output.
    """

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stdout",
    ) -> None:
        from conga_controller.const import CONGA_DEBUG

        self.name: str = name
        self.log_format: str = log_format
        self.logger: logging.Logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if CONGA_DEBUG else logging.INFO)
        if not self.logger.handlers:
            self._attach_handlers(json_file, human_output or "stdout")

    def _attach_handlers(self, json_file: str | Path | None, human_output: str) -> None:
        handlers: list[tuple[logging.Handler | None, logging.Formatter]] = []
        if self.log_format in ("json", "both") and json_file:
            handlers.append((_json_handler(json_file), JSONFormatter()))
        if self.log_format in ("human", "both"):
            handlers.append((_human_handler(human_output), HumanReadableFormatter()))
        for handler, formatter in handlers:
            if handler is None:
                continue
            handler.setFormatter(formatter)
            handler.setLevel(self.logger.level)
            self.logger.addHandler(handler)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None, exc_info: bool = False) -> None:
        payload = {_CONTEXT_ATTR: dict(extra)} if extra else None
        self.logger.log(level, msg, *args, extra=payload, exc_info=exc_info, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self._log(logging.ERROR, msg, *args, extra=extra, exc_info=True)

    def set_level(self, level: int) -> None:
        """Change the level of the logger and every attached handler."""
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> CongaLogger:
    """Build a :class:`CongaLogger` using the configured output defaults."""
    from conga_controller.const import (
        CONGA_LOG_FORMAT,
        CONGA_LOG_HUMAN_OUTPUT,
        CONGA_LOG_JSON_FILE,
    )

    return CongaLogger(
        name=name,
        log_format=log_format or CONGA_LOG_FORMAT,
        json_file=json_file or CONGA_LOG_JSON_FILE,
        human_output=human_output or CONGA_LOG_HUMAN_OUTPUT,
    )
