import pytest
from structlog.testing import capture_logs

from app.core.logging_config import get_logger
from app.core.logging_setup import configure_logging


@pytest.fixture(autouse=True)
def _no_log_level_override(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)


def test_debug_events_emitted_outside_production():
    logger = get_logger("logging_test", component="validator")

    assert configure_logging(production=False) == "DEBUG"
    with capture_logs() as logs:
        logger.debug("key_validated", status="valid")

    assert [(e["event"], e["log_level"], e["component"]) for e in logs] == [
        ("key_validated", "debug", "validator")
    ]


def test_debug_events_dropped_in_production():
    logger = get_logger("logging_test")

    assert configure_logging(production=True) == "INFO"
    with capture_logs() as logs:
        logger.debug("key_validated")
        logger.info("batch_finished")

    assert [e["event"] for e in logs] == ["batch_finished"]


def test_log_level_env_overrides_default(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    logger = get_logger("logging_test")

    assert configure_logging(production=False) == "WARNING"
    with capture_logs() as logs:
        logger.info("batch_finished")
        logger.warning("batch_request_rejected")

    assert [e["event"] for e in logs] == ["batch_request_rejected"]
