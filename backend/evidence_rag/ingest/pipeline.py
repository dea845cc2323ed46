"""Ingest pipeline orchestration."""

from __future__ import annotations

import time

from evidence_rag.core.events import emit_safely
from evidence_rag.models.entities import DocumentInput, IngestResult
from evidence_rag.models.outcome import DegradedReason, Outcome
from evidence_rag.models.ports import EventSink, EvidenceStore, FeatureFlags
from evidence_rag.utils.time import elapsed_ms


class IngestionPipeline:
    """Hands documents to the evidence store, absorbing every failure.

    Ingestion is best-effort: ``run`` and ``ingest_document`` never raise,
    so a broken store cannot abort the caller's own workflow.
    """

    def __init__(self, store: EvidenceStore, flags: FeatureFlags, events: EventSink) -> None:
        self.store = store
        self.flags = flags
        self.events = events

    def ingest_document(self, document: DocumentInput, trace_id: str | None = None) -> IngestResult:
        return self.run(document, trace_id).value

    def run(self, document: DocumentInput, trace_id: str | None = None) -> Outcome[IngestResult]:
        if not self.flags.is_ingest_enabled():
            return Outcome(IngestResult.disabled(), degraded=DegradedReason.DISABLED)

        started = time.perf_counter()
        context = {
            "organization_id": document.organization_id,
            "repository_id": document.repository_id,
            "source_type": document.source_type,
            "trace_id": trace_id,
        }
        emit_safely(self.events.ingest_started, source_ref=document.source_ref, **context)

        try:
            result = self.store.upsert_document_and_chunks(document)
        except Exception as exc:
            emit_safely(self.events.ingest_failed, error=str(exc) or type(exc).__name__, **context)
            return Outcome(IngestResult.failed(), degraded=DegradedReason.STORE_FAILED, detail=str(exc))

        emit_safely(
            self.events.ingest_completed,
            document_id=result.document_id,
            chunks_stored=result.chunks_stored,
            mode=result.mode,
            duration_ms=elapsed_ms(started),
            **context,
        )
        return Outcome(result)


__all__ = ["IngestionPipeline"]
