"""Interfaces of the collaborators the pipelines depend on."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from evidence_rag.core.config import ProviderFamily
from evidence_rag.models.entities import DocumentInput, IngestResult, Query, Result


class EvidenceStore(Protocol):
    """Persistence and similarity search. Either method may raise."""

    def upsert_document_and_chunks(self, document: DocumentInput) -> IngestResult: ...

    def query_similar(self, query: Query) -> Sequence[Result]: ...


class EventSink(Protocol):
    """Fire-and-forget lifecycle logging."""

    def ingest_started(self, **context: Any) -> None: ...

    def ingest_completed(self, **context: Any) -> None: ...

    def ingest_failed(self, **context: Any) -> None: ...

    def query_started(self, **context: Any) -> None: ...

    def query_completed(self, **context: Any) -> None: ...

    def query_failed(self, **context: Any) -> None: ...

    def fallback_used(self, **context: Any) -> None: ...


class FeatureFlags(Protocol):
    """Enable switches and tunables; ``Settings`` satisfies this."""

    chunk_size: int
    chunk_overlap: int
    embed_model: str
    max_context_tokens: int
    provider: ProviderFamily

    def is_ingest_enabled(self) -> bool: ...

    def is_query_enabled(self) -> bool: ...


__all__ = ["EvidenceStore", "EventSink", "FeatureFlags"]
