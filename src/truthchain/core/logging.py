# SPDX-License-Identifier: MIT
# Copyright (c) 2026 TruthChain Contributors

"""Structured logging for TruthChain.

Provides:
- JSON output for production and colour text for terminals
- Correlation IDs so a host can tie every engine log line to one request
- Engine context fields (claim id, pseudonym, rejection code) carried
  through ``extra=`` and rendered by both formatters
- ``log_rejection`` for uniform rejection logging

Raw registration identifiers are never logged; only pseudonyms and claim ids
appear in engine output.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Record attributes the formatters understand, in render order
CONTEXT_FIELDS = ("operation", "claim_id", "pseudonym", "code")

_correlation_id: ContextVar[str | None] = ContextVar("truthchain_correlation_id", default=None)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Generator[str, None, None]:
    """Scope a correlation ID over a block of engine calls.

    Example:
        with correlation_context(request_id):
            ledger.cast_vote(pseudonym, claim_id, VoteDirection.TRUE)
    """
    cid = correlation_id or str(uuid.uuid4())
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


def _context_of(record: logging.LogRecord) -> dict[str, str]:
    return {name: str(getattr(record, name)) for name in CONTEXT_FIELDS if getattr(record, name, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        cid = get_correlation_id()
        if cid:
            entry["correlation_id"] = cid

        context = _context_of(record)
        if context:
            entry["context"] = context

        if record.levelno >= logging.WARNING:
            entry["source"] = {"file": record.pathname, "line": record.lineno, "function": record.funcName}

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class StandardFormatter(logging.Formatter):
    """Readable single-line output, coloured by level on a TTY."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    DIM = "\033[90m"
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def _dim(self, text: str) -> str:
        return f"{self.DIM}{text}{self.RESET}" if self.use_colors else text

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy; other handlers must see the original record
        record = logging.makeLogRecord(record.__dict__)
        message = str(record.msg)

        cid = get_correlation_id()
        if cid:
            message = self._dim(f"[{cid[:8]}]") + " " + message

        context = _context_of(record)
        if context:
            message += " " + self._dim(" ".join(f"{k}={v}" for k, v in context.items()))

        record.msg = message
        if self.use_colors:
            record.levelname = f"{self.LEVEL_COLORS.get(record.levelname, '')}{record.levelname}{self.RESET}"

        return super().format(record)


def _resolve_level(level: str | int | None, configured: str) -> int:
    if level is None:
        level = configured
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def _resolve_json(json_format: bool | None, configured: str) -> bool:
    if json_format is not None:
        return json_format
    choice = configured.lower()
    if choice in ("json", "text"):
        return choice == "json"
    # Auto-detect: JSON unless attached to a terminal
    return not sys.stderr.isatty()


def configure_logging(
    level: str | int | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Install TruthChain log handlers on the root logger.

    Arguments left as None fall back to ``TRUTHCHAIN_LOG_LEVEL``,
    ``TRUTHCHAIN_LOG_FORMAT`` and ``TRUTHCHAIN_LOG_FILE``. A log file always
    receives JSON regardless of the console format.
    """
    from .config import get_config

    config = get_config()
    use_json = _resolve_json(json_format, config.log_format)
    log_file = config.log_file if log_file is None else log_file

    root = logging.getLogger()
    root.setLevel(_resolve_level(level, config.log_level))
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(JSONFormatter() if use_json else StandardFormatter())
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_rejection(
    logger: logging.Logger,
    operation: str,
    code: Any,
    message: str,
    *,
    claim_id: str | None = None,
    pseudonym: str | None = None,
    level: int = logging.INFO,
) -> None:
    """Log a rejected engine operation with its context fields attached."""
    logger.log(
        level,
        f"{operation} rejected: {message}",
        extra={"operation": operation, "code": str(code), "claim_id": claim_id, "pseudonym": pseudonym},
    )
