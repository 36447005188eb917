"""Unit tests for configure_logging."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from umd.config.models import LoggingConfig
from umd.logging.config import QUIET_LOGGERS, configure_logging
from umd.logging.context import WorkerContextFilter
from umd.logging.handlers import JSONFormatter, TextFormatter


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers and level after the test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_stderr_only_by_default(self, restore_root_logger) -> None:
        """Without a file a single stderr handler is installed."""
        configure_logging(LoggingConfig(level="warning"))
        root = restore_root_logger
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert any(isinstance(f, WorkerContextFilter) for f in handler.filters)
        assert isinstance(handler.formatter, TextFormatter)

    def test_file_with_json_format(self, restore_root_logger, tmp_path) -> None:
        """A log file gets a rotating handler with the JSON formatter."""
        log_file = tmp_path / "logs" / "umd.log"
        configure_logging(LoggingConfig(file=log_file, format="json"))
        root = restore_root_logger
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, RotatingFileHandler)
        assert isinstance(handler.formatter, JSONFormatter)
        assert log_file.parent.is_dir()

    def test_file_plus_stderr(self, restore_root_logger, tmp_path) -> None:
        """include_stderr adds a stderr handler next to the file."""
        configure_logging(
            LoggingConfig(file=tmp_path / "umd.log", include_stderr=True)
        )
        assert len(restore_root_logger.handlers) == 2

    def test_noisy_loggers_quieted(self, restore_root_logger) -> None:
        """Access and PDF parser logs are raised to WARNING outside debug."""
        configure_logging(LoggingConfig(level="info"))
        assert "pdfminer" in QUIET_LOGGERS
        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_debug_restores_noisy_loggers(self, restore_root_logger) -> None:
        configure_logging(LoggingConfig(level="info"))
        configure_logging(LoggingConfig(level="debug"))
        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.NOTSET

    def test_unwritable_file_falls_back_to_stderr(
        self, restore_root_logger, tmp_path, capsys
    ) -> None:
        """A log path under a regular file cannot be opened."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        configure_logging(LoggingConfig(file=blocker / "umd.log"))
        handlers = restore_root_logger.handlers
        assert len(handlers) == 1
        assert not isinstance(handlers[0], RotatingFileHandler)
        assert "Could not open log file" in capsys.readouterr().err
