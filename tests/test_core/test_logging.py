"""Tests for polycavora/core/logging.py."""

from __future__ import annotations

import logging

import pytest
import structlog
from structlog.testing import capture_logs

from polycavora.core.config import reset_settings
from polycavora.core.logging import make_sdk_logger, setup_logging


@pytest.fixture(autouse=True)
def _clean_logging():  # type: ignore[no-untyped-def]
    reset_settings()
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


class TestSetupLogging:
    def test_level_override(self) -> None:
        setup_logging(level="debug", fmt="console")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_uses_config_defaults(self) -> None:
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_repeated_setup_does_not_stack_handlers(self) -> None:
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1


class TestSdkLogger:
    def test_debug_instance_emits_debug(self) -> None:
        with capture_logs() as logs:
            make_sdk_logger(True, sdk_id=1).debug("sample")
        assert logs == [{"event": "sample", "log_level": "debug", "sdk_id": 1}]

    def test_quiet_instance_drops_debug(self) -> None:
        with capture_logs() as logs:
            log = make_sdk_logger(False, sdk_id=2)
            log.debug("sample")
            log.info("sample")
            log.warning("kept")
        assert [entry["event"] for entry in logs] == ["kept"]

    def test_instances_filter_independently(self) -> None:
        with capture_logs() as logs:
            loud = make_sdk_logger(True, sdk_id="loud")
            quiet = make_sdk_logger(False, sdk_id="quiet")
            loud.debug("sample")
            quiet.debug("sample")
        assert [entry["sdk_id"] for entry in logs] == ["loud"]
