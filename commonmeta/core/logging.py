"""
Structured logging for commonmeta.

Architecture Context
--------------------
Every reader, writer, registration client and CLI command logs through this
module:

    from commonmeta.core.logging import get_logger
    logger = get_logger(__name__)

    logger.warning("Skipping record", id="https://doi.org/10.5555/12345678")
    # -> Skipping record | id=https://doi.org/10.5555/12345678

Records go to stdout, so the console handler writes to stderr. Piped JSON,
XML and YAML output stays clean at any log level.

Logger Types
------------
**StructuredLogger**
    Wraps a ``logging.Logger``; keyword arguments are appended to the message
    as ``key=value`` fields.

**BatchLogger**
    Counts the outcome of each record in a list read, a batch write or a
    registration run, logs every failure with the record id and emits one
    summary line:

        batch = BatchLogger("datacite.upsert_all", source="datacite")
        batch.record_ok()
        batch.record_failed("https://doi.org/10.5555/x", "HTTP 422")
        batch.finish()

Design Decisions
----------------
1. **One instance per name**: get_logger() caches loggers, and
   configure_logging() re-applies the active LogConfig to all of them, so
   ``--verbose`` also affects loggers created at import time.
2. **Settings first**: the CLI starts from ``log_level`` and ``log_file`` in
   Settings; ``--verbose`` and ``--quiet`` only override the level.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class LogConfig:
    """Level and destinations shared by all commonmeta loggers."""

    level: str = "WARNING"
    format: str = FILE_FORMAT
    date_format: str = DATE_FORMAT
    file_path: Optional[Path] = None
    console: bool = True

    @property
    def numeric_level(self) -> int:
        return getattr(logging, self.level.upper(), logging.WARNING)


_active_config = LogConfig()
_loggers: Dict[str, "StructuredLogger"] = {}


# ============================================================================
# Handlers
# ============================================================================


def _console_handler(config: LogConfig) -> logging.Handler:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(config.numeric_level)
    return handler


def _file_handler(config: LogConfig) -> logging.Handler:
    config.file_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(config.file_path, encoding="utf-8")
    handler.setLevel(config.numeric_level)
    handler.setFormatter(logging.Formatter(config.format, datefmt=config.date_format))
    return handler


def _build_handlers(config: LogConfig) -> List[logging.Handler]:
    handlers = []
    if config.console:
        handlers.append(_console_handler(config))
    if config.file_path:
        handlers.append(_file_handler(config))
    return handlers


# ============================================================================
# Loggers
# ============================================================================


class StructuredLogger:
    """Logger that renders keyword context as ``message | key=value``."""

    def __init__(self, name: str, config: Optional[LogConfig] = None) -> None:
        self.logger = logging.getLogger(name)
        self.logger.propagate = False
        self.apply(config or _active_config)

    def apply(self, config: LogConfig) -> None:
        """Replace level and handlers with those of ``config``."""
        self.config = config
        self.logger.setLevel(config.numeric_level)
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()
        for handler in _build_handlers(config):
            self.logger.addHandler(handler)

    def _format_message(self, message: str, **fields: Any) -> str:
        if not fields:
            return message
        rendered = " | ".join(f"{key}={value}" for key, value in fields.items())
        return f"{message} | {rendered}"

    def debug(self, message: str, **fields: Any) -> None:
        self.logger.debug(self._format_message(message, **fields))

    def info(self, message: str, **fields: Any) -> None:
        self.logger.info(self._format_message(message, **fields))

    def warning(self, message: str, **fields: Any) -> None:
        self.logger.warning(self._format_message(message, **fields))

    def error(self, message: str, **fields: Any) -> None:
        self.logger.error(self._format_message(message, **fields))


def get_logger(name: str) -> StructuredLogger:
    """Return the cached StructuredLogger for ``name`` (usually ``__name__``)."""
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name)
    return _loggers[name]


def configure_logging(
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
    console: bool = True,
) -> LogConfig:
    """
    Set the level and destinations of every commonmeta logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL; None keeps the
            current level
        log_file: Also append log lines to this file
        console: Log to stderr through rich

    Returns:
        The LogConfig now in effect
    """
    global _active_config
    _active_config = replace(
        _active_config,
        level=level or _active_config.level,
        file_path=Path(log_file) if log_file else None,
        console=console,
    )
    for logger in _loggers.values():
        logger.apply(_active_config)
    return _active_config


def current_config() -> LogConfig:
    return _active_config


# ============================================================================
# Batch outcomes
# ============================================================================


class BatchLogger:
    """Per-record outcome counter for list, write and registration batches."""

    def __init__(self, operation: str, **context: Any) -> None:
        self.operation = operation
        self.context = context
        self.logger = get_logger("commonmeta.batch")
        self._started = datetime.now()
        self.processed = 0
        self.failures: List[Dict[str, str]] = []

    def record_ok(self) -> None:
        self.processed += 1

    def record_failed(self, record_id: str, error: str) -> None:
        """Log a failed record; the batch continues with the next one."""
        self.processed += 1
        self.failures.append({"id": record_id, "error": error})
        self.logger.warning(
            "Skipping record",
            operation=self.operation,
            id=record_id or "unknown",
            error=error,
        )

    @property
    def failed(self) -> int:
        return len(self.failures)

    def finish(self) -> Dict[str, Any]:
        """Log the summary line and return it as a dict."""
        summary = {
            "operation": self.operation,
            "processed": self.processed,
            "failed": self.failed,
            "duration_sec": f"{(datetime.now() - self._started).total_seconds():.2f}",
            **self.context,
        }
        if self.failures:
            self.logger.warning("Batch completed with failures", **summary)
        else:
            self.logger.info("Batch completed", **summary)
        return summary
