"""Composition root wiring the evidence pipelines together."""

from __future__ import annotations

from typing import Sequence

from evidence_rag.core.config import Settings, get_settings
from evidence_rag.core.events import LoggingEventSink
from evidence_rag.db.memory_store import InMemoryEvidenceStore
from evidence_rag.ingest.embeddings import select_embedding_provider
from evidence_rag.ingest.pipeline import IngestionPipeline
from evidence_rag.models.entities import DocumentInput, IngestResult, Query, Result
from evidence_rag.models.ports import EventSink, EvidenceStore
from evidence_rag.retrieval.cache import SemanticCache
from evidence_rag.retrieval.formatting import format_evidence_for_prompt
from evidence_rag.retrieval.search import QueryPipeline


class EvidenceService:
    """Entry point used by route handlers and review orchestrators.

    Construct one per process and share it; every query pipeline it owns
    reads and writes the same ``SemanticCache``.
    """

    def __init__(
        self,
        settings: Settings,
        store: EvidenceStore,
        events: EventSink,
        cache: SemanticCache,
    ) -> None:
        self.settings = settings
        self.store = store
        self.cache = cache
        self.ingestion = IngestionPipeline(store=store, flags=settings, events=events)
        self.queries = QueryPipeline(store=store, flags=settings, events=events, cache=cache)

    def ingest_document(self, document: DocumentInput, trace_id: str | None = None) -> IngestResult:
        return self.ingestion.ingest_document(document, trace_id)

    def query_evidence(self, query: Query, trace_id: str | None = None) -> list[Result]:
        return self.queries.query_evidence(query, trace_id)

    def format_for_prompt(self, results: Sequence[Result], max_tokens: int | None = None) -> str:
        budget = self.settings.max_context_tokens if max_tokens is None else max_tokens
        return format_evidence_for_prompt(results, budget)


def build_service(
    settings: Settings | None = None,
    store: EvidenceStore | None = None,
    events: EventSink | None = None,
    cache: SemanticCache | None = None,
) -> EvidenceService:
    """Assemble a service, defaulting each collaborator from settings."""
    settings = settings or get_settings()
    if store is None:
        store = InMemoryEvidenceStore.from_settings(settings, provider=select_embedding_provider(settings))
    if cache is None:
        cache = SemanticCache(max_entries=settings.cache_max_entries, ttl_seconds=settings.cache_ttl_seconds)
    return EvidenceService(
        settings=settings,
        store=store,
        events=events or LoggingEventSink(),
        cache=cache,
    )


__all__ = ["EvidenceService", "build_service"]
