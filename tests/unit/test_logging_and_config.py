"""Unit tests for logging formatters, correlation ids and environment config."""

import json
import logging

import pytest

from conga_controller.correlation import correlation_context, get_correlation_id, new_correlation_id
from conga_controller.logging_abstraction import HumanReadableFormatter, JSONFormatter
from conga_controller.structs import GlobalObject


def _record(msg: str = "hello %s", args=("world",), context=None) -> logging.LogRecord:
    record = logging.LogRecord("conga_controller.test", logging.INFO, __file__, 10, msg, args, None)
    if context is not None:
        record.conga_context = context
    return record


class TestCorrelation:
    """Correlation ids are scoped to a context block."""

    def test_context_restores_previous_id(self) -> None:
        assert get_correlation_id() is None
        with correlation_context("outer") as outer:
            assert outer == "outer"
            with correlation_context() as inner:
                assert get_correlation_id() == inner
            assert get_correlation_id() == "outer"
        assert get_correlation_id() is None

    def test_prefix(self) -> None:
        assert new_correlation_id("cmd-").startswith("cmd-")


class TestFormatters:
    """Structured context reaches both output formats."""

    def test_json_formatter(self) -> None:
        with correlation_context("abc123"):
            line = JSONFormatter().format(_record(context={"channel": "cmd"}))
        entry = json.loads(line)
        assert entry["message"] == "hello world"
        assert entry["correlation_id"] == "abc123"
        assert entry["context"] == {"channel": "cmd"}

    def test_human_formatter(self) -> None:
        with correlation_context("0123456789abcdef"):
            line = HumanReadableFormatter().format(_record(context={"port": 4010}))
        assert "[01234567]" in line
        assert "hello world" in line
        assert line.endswith("| port=4010")

    def test_human_formatter_without_context(self) -> None:
        line = HumanReadableFormatter().format(_record())
        assert "[--------]" in line
        assert "|" not in line


class TestGlobalObject:
    """Environment reload."""

    def test_singleton(self) -> None:
        assert GlobalObject() is GlobalObject()

    def test_reload_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        g = GlobalObject()
        original = g.env
        monkeypatch.setenv("CONGA_CMD_PORT", "14010")
        monkeypatch.setenv("CONGA_MQTT_ENABLED", "no")
        monkeypatch.setenv("CONGA_TOPIC", "vacuum")
        monkeypatch.setenv("CONGA_MAP_INFO_MASK", "0x00FF")
        monkeypatch.setenv("CONGA_ENABLE_METRICS", "yes")
        monkeypatch.setenv("CONGA_METRICS_PORT", "19400")
        try:
            g.reload_env()
            assert g.env.cmd_port == 14010
            assert g.env.mqtt_enabled is False
            assert g.env.mqtt_topic == "vacuum"
            assert g.env.map_info_mask == 0xFF
            assert g.env.enable_metrics is True
            assert g.env.metrics_port == 19400
        finally:
            g.env = original
