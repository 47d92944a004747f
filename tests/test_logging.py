import logging

import pytest

from piiguard.core.logging import PIISafeFilter, setup_logging
from piiguard.core.settings import get_settings


def _filtered_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.filters = []
    logger.addFilter(PIISafeFilter())
    return logger


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def test_pii_filter_redacts_email_and_ssn(caplog) -> None:
    logger = _filtered_logger("test.pii")

    with caplog.at_level(logging.INFO, logger="test.pii"):
        logger.info("Contact john.doe@example.com SSN 555-55-5555")

    assert "john.doe@example.com" not in caplog.text
    assert "555-55-5555" not in caplog.text
    assert "[REDACTED]" in caplog.text


def test_pii_filter_redacts_card_phone_and_ip(caplog) -> None:
    logger = _filtered_logger("test.mixed")

    with caplog.at_level(logging.INFO, logger="test.mixed"):
        logger.info("card 4111111111111111 phone (555) 123-4567 host 192.168.1.100")

    assert "4111111111111111" not in caplog.text
    assert "123-4567" not in caplog.text
    assert "192.168.1.100" not in caplog.text


def test_pii_filter_redacts_args(caplog) -> None:
    logger = _filtered_logger("test.args")

    with caplog.at_level(logging.INFO, logger="test.args"):
        logger.info("match for %s at %d", "jane@example.org", 12)

    assert "jane@example.org" not in caplog.text
    assert "at 12" in caplog.text


def test_pii_filter_redacts_text_assignment(caplog) -> None:
    logger = _filtered_logger("test.raw")

    with caplog.at_level(logging.INFO, logger="test.raw"):
        logger.info("scanning text=secret-token-value for patterns")

    assert "secret-token-value" not in caplog.text
    assert "text=[REDACTED]" in caplog.text


def test_pii_filter_keeps_counts_and_types(caplog) -> None:
    logger = _filtered_logger("test.counts")

    with caplog.at_level(logging.INFO, logger="test.counts"):
        logger.info("Detection complete: spans=%d types=%s text_length=%d", 3, "email,ssn", 94105)

    assert "spans=3 types=email,ssn text_length=94105" in caplog.text


def test_setup_logging_installs_filter(monkeypatch, restore_root_logger) -> None:
    monkeypatch.setenv("PIIGUARD_LOG_LEVEL", "debug")
    get_settings.cache_clear()

    setup_logging()

    root = restore_root_logger
    assert root.level == logging.DEBUG
    assert any(
        isinstance(f, PIISafeFilter)
        for handler in root.handlers
        for f in handler.filters
    )
    assert logging.getLogger("presidio-analyzer").level == logging.WARNING
