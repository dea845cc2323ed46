"""Structured logging for the evidence layer.

Context travels on log records as ``ctx_``-prefixed attributes (see
``context_extra``). ``JsonFormatter`` lifts them into the JSON line under
their bare name, except where that name would shadow one of the fixed
payload fields; those keep the prefix.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Iterator

import orjson

CONTEXT_PREFIX = "ctx_"
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_DEFAULT_LEVEL = os.environ.get("RAG_LOG_LEVEL", "INFO")


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    default_fields = ("timestamp", "level", "name", "message")
    reserved_fields = frozenset(default_fields + ("exc_info", "stack"))

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        payload.update(self._context_fields(record))
        return orjson.dumps(payload, default=str).decode("utf-8")

    def _context_fields(self, record: logging.LogRecord) -> Iterator[tuple[str, Any]]:
        for attribute, value in record.__dict__.items():
            if not attribute.startswith(CONTEXT_PREFIX):
                continue
            key = attribute[len(CONTEXT_PREFIX) :]
            yield (attribute if key in self.reserved_fields else key), value


def _build_handler(use_json: bool) -> logging.Handler:
    # stderr keeps stdout free for CLI output.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if use_json else logging.Formatter(PLAIN_FORMAT))
    return handler


def configure_logging(level: str | int = _DEFAULT_LEVEL, use_json: bool = True) -> None:
    """Install a single root handler, JSON by default."""
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [_build_handler(use_json)]


def get_logger(name: str = "evidence_rag") -> logging.Logger:
    """Return a named logger, configuring the root on first use."""
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


def context_extra(**context: Any) -> dict[str, Any]:
    """Build an ``extra=`` mapping; ``None`` values are dropped."""
    return {f"{CONTEXT_PREFIX}{key}": value for key, value in context.items() if value is not None}


__all__ = ["CONTEXT_PREFIX", "JsonFormatter", "configure_logging", "context_extra", "get_logger"]
