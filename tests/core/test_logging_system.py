"""Tests for the logging setup."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from soundsync.core.logging_system import (
    ROOT_LOGGER_NAME,
    get_logger,
    initialize_logging,
    is_initialized,
)


class TestLoggingSystem:
    """Test suite for initialize_logging and get_logger."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self) -> Iterator[None]:
        """Restore the soundsync logger after each test."""
        root = logging.getLogger(ROOT_LOGGER_NAME)
        level, handlers, propagate = root.level, list(root.handlers), root.propagate
        yield
        root.setLevel(level)
        root.handlers = handlers
        root.propagate = propagate

    def test_get_logger_returns_named_logger(self) -> None:
        """Test get_logger returns the standard logger of that name."""
        logger = get_logger("soundsync.audio.test")

        assert logger is logging.getLogger("soundsync.audio.test")

    def test_defaults_when_no_file(self, tmp_path: Path) -> None:
        """Test a missing file falls back to the console configuration."""
        initialize_logging(tmp_path / "missing.yaml", level="warning")

        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert is_initialized()
        assert root.level == logging.WARNING
        assert root.handlers

    def test_loads_yaml_config(self, tmp_path: Path) -> None:
        """Test a YAML dictConfig file is applied."""
        config = tmp_path / "logging.yaml"
        config.write_text(
            "version: 1\n"
            "disable_existing_loggers: false\n"
            "loggers:\n"
            "  soundsync:\n"
            "    level: ERROR\n"
        )

        initialize_logging(config)

        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.ERROR

    def test_level_override_wins(self, tmp_path: Path) -> None:
        """Test the level argument overrides the file level."""
        config = tmp_path / "logging.yaml"
        config.write_text(
            "version: 1\n"
            "disable_existing_loggers: false\n"
            "loggers:\n"
            "  soundsync:\n"
            "    level: ERROR\n"
        )

        initialize_logging(config, level="DEBUG")

        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG

    def test_malformed_yaml_falls_back(self, tmp_path: Path) -> None:
        """Test unreadable YAML falls back to defaults instead of raising."""
        config = tmp_path / "logging.yaml"
        config.write_text("version: [unclosed\n")

        initialize_logging(config, level="INFO")

        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.INFO
