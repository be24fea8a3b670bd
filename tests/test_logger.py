"""
Unit tests for simple_gdrive.logger module.

Tests cover:
- FileHandler creation when file is specified
- StreamHandler creation when console=True
- Log level setting
- Log format validation (timestamp, level, thread name)
- Quieting of googleapiclient discovery logs
"""

import logging
import sys
from pathlib import Path

import pytest

from simple_gdrive.config import LogConfig
from simple_gdrive.logger import LOG_FORMAT, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root_logger = logging.getLogger()
    saved_handlers = root_logger.handlers[:]
    saved_level = root_logger.level
    yield
    for handler in root_logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    root_logger.handlers[:] = saved_handlers
    root_logger.setLevel(saved_level)


def _stream_handlers(root_logger):
    return [
        h
        for h in root_logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


class TestSetupLoggingHandlers:
    def test_file_handler_created_when_file_specified(self, tmp_path: Path):
        log_file = tmp_path / "test.log"
        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))

        root_logger = logging.getLogger()
        file_handlers = [h for h in root_logger.handlers if isinstance(h, logging.FileHandler)]

        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename) == log_file

    def test_file_handler_creates_parent_directories(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "nested" / "test.log"
        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))

        assert log_file.parent.exists()

    def test_no_file_handler_when_file_empty(self):
        setup_logging(LogConfig(level="INFO", file="", console=True))

        root_logger = logging.getLogger()
        assert not any(isinstance(h, logging.FileHandler) for h in root_logger.handlers)

    def test_console_handler_uses_stderr(self):
        setup_logging(LogConfig(level="INFO", file="", console=True))

        stream_handlers = _stream_handlers(logging.getLogger())
        assert len(stream_handlers) == 1
        assert stream_handlers[0].stream is sys.stderr

    def test_existing_handlers_cleared(self, tmp_path: Path):
        config = LogConfig(level="INFO", file=str(tmp_path / "test.log"), console=True)

        setup_logging(config)
        setup_logging(config)

        root_logger = logging.getLogger()
        assert len([h for h in root_logger.handlers if isinstance(h, logging.FileHandler)]) == 1
        assert len(_stream_handlers(root_logger)) == 1

    def test_previous_file_handler_closed(self, tmp_path: Path):
        setup_logging(LogConfig(level="INFO", file=str(tmp_path / "a.log"), console=False))
        first = next(h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler))

        setup_logging(LogConfig(level="INFO", file=str(tmp_path / "b.log"), console=False))

        assert first not in logging.getLogger().handlers
        assert first.stream is None


class TestSetupLoggingLevel:
    @pytest.mark.parametrize(
        "level_str,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("INFO", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
        ],
    )
    def test_log_level_set_correctly(self, level_str: str, expected_level: int):
        setup_logging(LogConfig(level=level_str, file="", console=False))
        assert logging.getLogger().level == expected_level

    def test_log_level_case_insensitive(self):
        setup_logging(LogConfig(level="debug", file="", console=False))
        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_log_level_defaults_to_info(self):
        setup_logging(LogConfig(level="INVALID_LEVEL", file="", console=False))
        assert logging.getLogger().level == logging.INFO

    def test_discovery_logger_kept_at_warning(self):
        setup_logging(LogConfig(level="DEBUG", file="", console=False))
        assert logging.getLogger("googleapiclient.discovery").level == logging.WARNING


class TestSetupLoggingFormat:
    def test_log_format_constant_matches_expected(self):
        assert LOG_FORMAT == "%(asctime)s - %(levelname)s - %(threadName)s - %(message)s"

    def test_messages_written_with_format(self, tmp_path: Path):
        log_file = tmp_path / "test.log"
        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))

        logging.getLogger("simple_gdrive.test").info("resolved A/B")
        logging.getLogger("simple_gdrive.test").debug("hidden")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert " - INFO - MainThread - resolved A/B" in content
        assert "hidden" not in content
