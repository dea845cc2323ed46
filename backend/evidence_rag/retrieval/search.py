"""Query orchestration."""

from __future__ import annotations

import time
from typing import Sequence

from evidence_rag.core.events import emit_safely
from evidence_rag.models.entities import Query, Result
from evidence_rag.models.outcome import DegradedReason, Outcome
from evidence_rag.models.ports import EventSink, EvidenceStore, FeatureFlags
from evidence_rag.retrieval.cache import SemanticCache, cache_key
from evidence_rag.utils.time import elapsed_ms

# Top-result similarity above which the store is assumed to have matched on vectors.
VECTOR_SIMILARITY_THRESHOLD = 0.5


class QueryPipeline:
    """Answers evidence queries from the cache or the store.

    A cache hit returns without touching the store. Store failures are
    logged and surface only as an empty result list.
    """

    def __init__(
        self,
        store: EvidenceStore,
        flags: FeatureFlags,
        events: EventSink,
        cache: SemanticCache,
    ) -> None:
        self.store = store
        self.flags = flags
        self.events = events
        self.cache = cache

    def query_evidence(self, query: Query, trace_id: str | None = None) -> list[Result]:
        return self.run(query, trace_id).value

    def run(self, query: Query, trace_id: str | None = None) -> Outcome[list[Result]]:
        if not self.flags.is_query_enabled():
            return Outcome([], degraded=DegradedReason.DISABLED)

        started = time.perf_counter()
        context = {
            "organization_id": query.organization_id,
            "repository_id": query.repository_id,
            "trace_id": trace_id,
        }
        emit_safely(self.events.query_started, query=query.query_text, **context)

        try:
            key = cache_key(query)
            cached = self.cache.get(key)
            if cached is not None:
                emit_safely(
                    self.events.query_completed,
                    result_count=len(cached),
                    mode="cached",
                    duration_ms=elapsed_ms(started),
                    **context,
                )
                return Outcome(list(cached))

            results = list(self.store.query_similar(query))
            self.cache.set(key, results)
        except Exception as exc:
            emit_safely(self.events.query_failed, error=str(exc) or type(exc).__name__, **context)
            emit_safely(self.events.fallback_used, reason="query_failed", **context)
            return Outcome([], degraded=DegradedReason.QUERY_FAILED, detail=str(exc))

        emit_safely(
            self.events.query_completed,
            result_count=len(results),
            mode=infer_mode(results),
            duration_ms=elapsed_ms(started),
            **context,
        )
        return Outcome(results)


def infer_mode(results: Sequence[Result]) -> str:
    """Label a result set 'vector' or 'lexical' from its top similarity."""
    if results and results[0].similarity > VECTOR_SIMILARITY_THRESHOLD:
        return "vector"
    return "lexical"


__all__ = ["QueryPipeline", "infer_mode", "VECTOR_SIMILARITY_THRESHOLD"]
