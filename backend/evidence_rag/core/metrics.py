"""Prometheus metrics instrumentation."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

REGISTRY = CollectorRegistry()

INGEST_COUNT = Counter(
    "rag_ingest_total",
    "Ingestion calls by outcome",
    labelnames=("outcome",),
    registry=REGISTRY,
)

QUERY_COUNT = Counter(
    "rag_query_total",
    "Completed evidence queries by retrieval mode",
    labelnames=("mode",),
    registry=REGISTRY,
)

FALLBACK_COUNT = Counter(
    "rag_fallback_total",
    "Degraded evidence responses by reason",
    labelnames=("reason",),
    registry=REGISTRY,
)

INGEST_DURATION = Histogram(
    "rag_ingest_duration_seconds",
    "Ingest pipeline duration",
    registry=REGISTRY,
)

QUERY_DURATION = Histogram(
    "rag_query_duration_seconds",
    "Query pipeline duration",
    registry=REGISTRY,
)


def metrics_text() -> str:
    """Render the registry in the Prometheus text exposition format."""
    return generate_latest(REGISTRY).decode("utf-8")


__all__ = [
    "REGISTRY",
    "INGEST_COUNT",
    "QUERY_COUNT",
    "FALLBACK_COUNT",
    "INGEST_DURATION",
    "QUERY_DURATION",
    "metrics_text",
]
