"""
Tests for the reloop logger setup.
"""

import logging

import pytest

from reloop.utils.logger import CLIENT_LOGGERS, configure_reloop_logger, logger


@pytest.fixture
def restore_logging():
    """Fixture restoring the configured log level after each test."""
    yield
    configure_reloop_logger()


class TestLogger:
    """Tests for configure_reloop_logger."""

    def test_module_logger_is_under_reloop(self):
        assert logger.name.startswith("reloop.")

    def test_reconfiguring_keeps_one_handler(self, restore_logging):
        configure_reloop_logger("INFO")
        reloop_logger = configure_reloop_logger("WARNING")

        assert len(reloop_logger.handlers) == 1
        assert reloop_logger.level == logging.WARNING
        assert reloop_logger.propagate is False

    def test_client_libraries_are_quiet_unless_debugging(self, restore_logging):
        configure_reloop_logger("INFO")
        assert all(logging.getLogger(name).level == logging.WARNING for name in CLIENT_LOGGERS)

        configure_reloop_logger("DEBUG")
        assert all(logging.getLogger(name).level == logging.DEBUG for name in CLIENT_LOGGERS)
