from __future__ import annotations

import logging
from collections.abc import Generator

import pytest
import structlog

from unbias.core.config import settings
from unbias.core.logging_setup import NOISY_LOGGERS, configure_logging

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    yield
    structlog.reset_defaults()


def test_configure_logging_json_renderer_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "LOG_FORMAT", "json")

    configure_logging("INFO")

    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)


def test_configure_logging_console_renderer() -> None:
    configure_logging("DEBUG", log_format="console")

    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)


def test_configure_logging_quiets_third_party_loggers() -> None:
    configure_logging("DEBUG")

    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_configure_logging_uses_settings_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "LOG_LEVEL", "ERROR")

    configure_logging()

    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.ERROR
