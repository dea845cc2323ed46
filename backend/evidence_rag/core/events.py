"""Structured lifecycle events for ingestion and query calls."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from evidence_rag.core.logging import context_extra, get_logger
from evidence_rag.core import metrics

logger = get_logger(__name__)

INGEST_STARTED = "rag.ingest.started"
INGEST_COMPLETED = "rag.ingest.completed"
INGEST_FAILED = "rag.ingest.failed"
QUERY_STARTED = "rag.query.started"
QUERY_COMPLETED = "rag.query.completed"
QUERY_FAILED = "rag.query.failed"
FALLBACK_USED = "rag.fallback.used"


class BaseEventSink(ABC):
    """Maps each lifecycle call onto a single ``emit`` hook."""

    @abstractmethod
    def emit(self, event: str, level: int, **context: Any) -> None:
        """Record one lifecycle event."""

    def ingest_started(self, **context: Any) -> None:
        self.emit(INGEST_STARTED, logging.INFO, **context)

    def ingest_completed(self, **context: Any) -> None:
        self.emit(INGEST_COMPLETED, logging.INFO, **context)

    def ingest_failed(self, **context: Any) -> None:
        self.emit(INGEST_FAILED, logging.ERROR, **context)

    def query_started(self, **context: Any) -> None:
        self.emit(QUERY_STARTED, logging.INFO, **context)

    def query_completed(self, **context: Any) -> None:
        self.emit(QUERY_COMPLETED, logging.INFO, **context)

    def query_failed(self, **context: Any) -> None:
        self.emit(QUERY_FAILED, logging.ERROR, **context)

    def fallback_used(self, **context: Any) -> None:
        self.emit(FALLBACK_USED, logging.WARNING, **context)


class NullEventSink(BaseEventSink):
    def emit(self, event: str, level: int, **context: Any) -> None:
        return None


class LoggingEventSink(BaseEventSink):
    """Writes events as JSON log records and updates Prometheus metrics."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_logger("evidence_rag.events")

    def emit(self, event: str, level: int, **context: Any) -> None:
        self.logger.log(level, event, extra=context_extra(event=event, **context))
        _record_metrics(event, context)


def emit_safely(hook: Callable[..., None], **context: Any) -> None:
    """Call a sink hook; a misbehaving sink is logged, never propagated."""
    try:
        hook(**context)
    except Exception:
        logger.exception("Event sink raised while recording %s", getattr(hook, "__name__", hook))


def _record_metrics(event: str, context: dict[str, Any]) -> None:
    duration_ms = context.get("duration_ms")
    if event == INGEST_COMPLETED:
        metrics.INGEST_COUNT.labels(outcome=str(context.get("mode", "unknown"))).inc()
        if duration_ms is not None:
            metrics.INGEST_DURATION.observe(duration_ms / 1000)
    elif event == INGEST_FAILED:
        metrics.INGEST_COUNT.labels(outcome="failed").inc()
    elif event == QUERY_COMPLETED:
        metrics.QUERY_COUNT.labels(mode=str(context.get("mode", "unknown"))).inc()
        if duration_ms is not None:
            metrics.QUERY_DURATION.observe(duration_ms / 1000)
    elif event == FALLBACK_USED:
        metrics.FALLBACK_COUNT.labels(reason=str(context.get("reason", "unknown"))).inc()


__all__ = [
    "BaseEventSink",
    "LoggingEventSink",
    "NullEventSink",
    "emit_safely",
    "INGEST_STARTED",
    "INGEST_COMPLETED",
    "INGEST_FAILED",
    "QUERY_STARTED",
    "QUERY_COMPLETED",
    "QUERY_FAILED",
    "FALLBACK_USED",
]
