"""
Unit tests for the structlog setup.
"""

import logging

import structlog
from structlog.testing import capture_logs

from opshealth.config import get_settings
from opshealth.utils.logging import (
    SERVICE_NAME,
    configure_logging,
    get_logger,
    resolve_level,
    select_renderer,
    stamp_service,
)


def _settings(**updates):
    return get_settings().model_copy(update=updates)


class TestRenderer:
    """Renderer choice from settings."""

    def test_json_outside_dev_mode(self):
        renderer = select_renderer(_settings(log_format="json", dev_mode=False))
        assert isinstance(renderer, structlog.processors.JSONRenderer)

    def test_dev_mode_uses_console(self):
        renderer = select_renderer(_settings(log_format="json", dev_mode=True))
        assert isinstance(renderer, structlog.dev.ConsoleRenderer)

    def test_console_format_uses_console(self):
        renderer = select_renderer(_settings(log_format="console", dev_mode=False))
        assert isinstance(renderer, structlog.dev.ConsoleRenderer)


class TestProcessors:
    """Event enrichment and level parsing."""

    def test_stamp_service_adds_service_and_severity(self):
        event = stamp_service(None, "warning", {"event": "snapshot_upsert_fallback"})
        assert event == {
            "event": "snapshot_upsert_fallback",
            "service": SERVICE_NAME,
            "severity": "WARNING",
        }

    def test_stamp_service_keeps_explicit_service(self):
        event = stamp_service(None, "info", {"event": "x", "service": "seed-script"})
        assert event["service"] == "seed-script"

    def test_level_names_resolve(self):
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level(" WARNING ") == logging.WARNING

    def test_unknown_level_defaults_to_info(self):
        assert resolve_level("chatty") == logging.INFO


class TestConfigureLogging:
    """configure_logging() wires structlog for the app and scripts."""

    def test_configured_logger_emits_events(self):
        configure_logging(_settings(log_level="debug", testing=True))
        with capture_logs() as captured:
            get_logger("opshealth.tests").info("reactor_completed", org_id="org-test")
        assert captured == [
            {"event": "reactor_completed", "org_id": "org-test", "log_level": "info"},
        ]

    def test_root_level_follows_settings(self):
        configure_logging(_settings(log_level="warning"))
        assert logging.getLogger().level == logging.WARNING
        configure_logging()
