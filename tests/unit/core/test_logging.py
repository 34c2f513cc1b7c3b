"""Tests for structured logging and BatchLogger."""

import logging

import pytest

from commonmeta.core.logging import BatchLogger, configure_logging, current_config, get_logger


@pytest.fixture(autouse=True)
def restore_logging():
    previous = current_config()
    yield
    configure_logging(previous.level, previous.file_path, previous.console)


class TestStructuredLogger:
    """Tests for get_logger() and configure_logging()."""

    def test_get_logger_is_cached(self) -> None:
        assert get_logger("commonmeta.test") is get_logger("commonmeta.test")

    def test_format_message(self) -> None:
        logger = get_logger("commonmeta.test")
        assert logger._format_message("Fetched", id="x", status=200) == "Fetched | id=x | status=200"
        assert logger._format_message("Fetched") == "Fetched"

    def test_configure_applies_to_existing_loggers(self) -> None:
        logger = get_logger("commonmeta.test.level")
        configure_logging(level="DEBUG")
        assert logger.logger.level == logging.DEBUG
        configure_logging(level="ERROR")
        assert logger.logger.level == logging.ERROR

    def test_none_keeps_level(self) -> None:
        configure_logging(level="INFO")
        assert configure_logging(level=None).level == "INFO"

    def test_log_file(self, tmp_path) -> None:
        path = tmp_path / "logs" / "commonmeta.log"
        logger = get_logger("commonmeta.test.file")
        configure_logging(level="INFO", log_file=path, console=False)
        logger.warning("Skipping record", id="https://doi.org/10.5555/1")
        for handler in logger.logger.handlers:
            handler.flush()
        line = path.read_text(encoding="utf-8")
        assert "WARNING" in line
        assert "Skipping record | id=https://doi.org/10.5555/1" in line


class TestBatchLogger:
    """Tests for per-record outcome tracking."""

    def test_summary(self) -> None:
        batch = BatchLogger("crossref.read_all", source="crossref")
        batch.record_ok()
        batch.record_failed("https://doi.org/10.5555/1", "Invalid DOI")
        summary = batch.finish()
        assert summary["processed"] == 2
        assert summary["failed"] == 1
        assert summary["source"] == "crossref"
        assert batch.failures == [{"id": "https://doi.org/10.5555/1", "error": "Invalid DOI"}]

    def test_summary_without_failures(self) -> None:
        batch = BatchLogger("csl.write_all")
        batch.record_ok()
        assert batch.finish()["failed"] == 0
