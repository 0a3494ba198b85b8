"""Tests for settings and logging configuration."""

import logging

from growcast.core.config import Settings, configure_logging


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        for name in ("GROWCAST_API_BASE_URL", "GROWCAST_TRAILING_DAYS", "GROWCAST_USE_MOCK_DATA"):
            monkeypatch.delenv(name, raising=False)

        config = Settings(_env_file=None)

        assert config.api_base_url == "http://localhost:55839"
        assert config.window_timeout_seconds == 5.0
        assert config.daily_timeout_seconds == 15.0
        assert config.max_parallel_requests == 8
        assert config.trailing_days == 30
        assert config.seasonal_period == 7
        assert config.use_mock_data is False

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("GROWCAST_API_BASE_URL", "http://sensors.local:8080")
        monkeypatch.setenv("GROWCAST_RANDOM_SEED", "123")
        monkeypatch.setenv("GROWCAST_USE_MOCK_DATA", "true")

        config = Settings(_env_file=None)

        assert config.api_base_url == "http://sensors.local:8080"
        assert config.random_seed == 123
        assert config.use_mock_data is True


class TestConfigureLogging:
    """Tests for the logging helper."""

    def test_handler_added_once(self):
        logger = logging.getLogger("growcast")
        original = list(logger.handlers)
        original_level = logger.level
        logger.handlers.clear()
        try:
            configure_logging("DEBUG")
            configure_logging("DEBUG")
            assert len(logger.handlers) == 1
            assert logger.level == logging.DEBUG
        finally:
            logger.handlers[:] = original
            logger.setLevel(original_level)
