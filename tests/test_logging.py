"""Tests for statcrab.utils.logging module."""

import logging
import os
import sys
import tempfile

from statcrab.config import StatcrabConfig
from statcrab.utils.logging import get_logger, setup_logging


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_with_defaults(self):
        """Should setup logging with sensible defaults."""
        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_setup_with_config(self):
        config = StatcrabConfig(log_level="DEBUG")
        setup_logging(config)
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(StatcrabConfig(log_level="chatty"))
        assert logging.getLogger().level == logging.INFO

    def test_console_handler_uses_stderr(self):
        """Log lines never mix into command output on stdout."""
        setup_logging()
        [handler] = logging.getLogger().handlers
        assert handler.stream is sys.stderr

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_setup_with_file(self):
        """Should create file handler when log_file is specified."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".log", delete=False) as f:
            log_file = f.name

        try:
            setup_logging(StatcrabConfig(log_file=log_file))

            logging.getLogger("statcrab.test").info("Cache warmed")
            for handler in logging.getLogger().handlers:
                handler.flush()

            with open(log_file) as f:
                content = f.read()
            assert "Cache warmed" in content
        finally:
            logging.getLogger().handlers.clear()
            if os.path.exists(log_file):
                os.unlink(log_file)

    def test_setup_with_custom_format(self):
        config = StatcrabConfig(log_format="[%(levelname)s] %(message)s")
        setup_logging(config)
        root = logging.getLogger()
        assert root.handlers[0].formatter._fmt == "[%(levelname)s] %(message)s"


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger(self):
        logger = get_logger("statcrab.module")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "statcrab.module"

    def test_get_logger_same_instance(self):
        assert get_logger("same.name") is get_logger("same.name")


class TestLoggingConfigIntegration:
    """Integration tests for logging configuration."""

    def test_config_round_trip_keeps_logging(self):
        config = StatcrabConfig.from_dict({
            "logging": {
                "level": "WARNING",
                "file": "statcrab.log",
                "format": "[%(name)s] %(message)s",
                "max_bytes": 5000,
                "backup_count": 2,
            }
        })
        d = config.to_dict()

        assert config.log_level == "WARNING"
        assert d["logging"] == {
            "level": "WARNING",
            "file": "statcrab.log",
            "format": "[%(name)s] %(message)s",
            "max_bytes": 5000,
            "backup_count": 2,
        }
