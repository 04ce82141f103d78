"""Tests for logging configuration."""

import logging

import pytest
import structlog
from checkout.utils.logging import add_context, clear_context, get_log_level, setup_stdlib_logging


@pytest.fixture()
def root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture()
def clean_env(monkeypatch):
    for name in ("LOG_LEVEL", "ENVIRONMENT", "ENV", "PROTEAN_ENV"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLogLevel:
    @pytest.mark.parametrize(
        "environment, level",
        [("production", "INFO"), ("staging", "INFO"), ("development", "DEBUG"), ("test", "WARNING"), ("qa", "INFO")],
    )
    def test_level_follows_environment(self, clean_env, environment, level):
        clean_env.setenv("ENVIRONMENT", environment)
        assert get_log_level() == level

    def test_defaults_to_development(self, clean_env):
        assert get_log_level() == "DEBUG"

    def test_explicit_level_wins(self, clean_env):
        clean_env.setenv("ENVIRONMENT", "production")
        clean_env.setenv("LOG_LEVEL", "error")
        assert get_log_level() == "ERROR"


class TestStdlibLogging:
    def test_single_console_handler(self, clean_env, root_logger):
        clean_env.setenv("LOG_LEVEL", "INFO")

        setup_stdlib_logging()

        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0], logging.StreamHandler)
        assert root_logger.level == logging.INFO

    def test_noisy_loggers_are_quietened(self, clean_env, root_logger):
        clean_env.setenv("LOG_LEVEL", "DEBUG")

        setup_stdlib_logging()

        assert logging.getLogger("stripe").level == logging.WARNING
        assert logging.getLogger("protean").level == logging.WARNING


class TestContext:
    def test_context_is_bound_and_cleared(self):
        add_context(draft_id="draft-1", step="payment")
        assert structlog.contextvars.get_contextvars() == {"draft_id": "draft-1", "step": "payment"}

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
