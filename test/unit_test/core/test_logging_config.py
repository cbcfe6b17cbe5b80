"""Unit tests for the logging configuration module."""

import logging

import pytest

from farmmarket.core.logging_config import (
    DETAILED_FORMAT,
    JSON_FORMAT,
    MODULE_LOG_LEVELS,
    REDACTED,
    SIMPLE_FORMAT,
    RedactingFilter,
    get_logger,
    redact,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


def _console_handler():
    return next(h for h in logging.getLogger().handlers if isinstance(h, logging.StreamHandler))


class TestSetupLogging:
    """setup_logging levels, formats and handlers."""

    @pytest.mark.parametrize(
        "log_level,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("info", logging.INFO),
            ("WARNING", logging.WARNING),
            ("error", logging.ERROR),
        ],
    )
    def test_levels(self, log_level, expected_level):
        setup_logging(log_level=log_level)

        assert logging.getLogger().level == expected_level
        assert _console_handler().level == expected_level

    @pytest.mark.parametrize(
        "log_format,expected_format",
        [
            ("simple", SIMPLE_FORMAT),
            ("detailed", DETAILED_FORMAT),
            ("json", JSON_FORMAT),
            ("unknown", DETAILED_FORMAT),
        ],
    )
    def test_formats(self, log_format, expected_format):
        setup_logging(log_format=log_format)

        assert _console_handler().formatter._fmt == expected_format

    def test_does_not_stack_handlers(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_console_handler_redacts(self):
        setup_logging()

        assert any(isinstance(f, RedactingFilter) for f in _console_handler().filters)

    def test_third_party_levels(self):
        setup_logging(log_level="DEBUG")

        for module_name, module_level in MODULE_LOG_LEVELS.items():
            assert logging.getLogger(module_name).level == logging.getLevelName(module_level)

    def test_get_logger(self):
        assert get_logger("farmmarket.api.orders").name == "farmmarket.api.orders"


class TestRedaction:
    """Sensitive values never reach the log output."""

    def test_sensitive_keys_are_masked(self):
        assert redact("hunter2", "password") == REDACTED
        assert redact({"id": 1}, "metadata") == REDACTED

    def test_nested_dicts(self):
        value = {"user_id": 7, "card": "4242424242424242", "shipping": {"phone": "555-0100", "city": "Anytown"}}

        assert redact(value) == {"user_id": 7, "card": REDACTED, "shipping": {"phone": REDACTED, "city": "Anytown"}}

    def test_long_strings_are_truncated(self):
        redacted = redact("x" * 500, "note")

        assert len(redacted) == 203
        assert redacted.endswith("...")

    def test_filter_scrubs_extra_fields(self):
        record = logging.LogRecord("farmmarket", logging.INFO, __file__, 1, "hello", None, None)
        record.token = "eyJhbGciOi"
        record.user_id = 5

        assert RedactingFilter().filter(record) is True
        assert record.token == REDACTED
        assert record.user_id == 5
        assert record.getMessage() == "hello"

    def test_filter_scrubs_dict_args(self):
        record = logging.LogRecord("farmmarket", logging.INFO, __file__, 1, "%(password)s", None, None)
        record.args = {"password": "hunter2"}

        RedactingFilter().filter(record)

        assert record.getMessage() == REDACTED
