"""In-process evidence store built from the chunker, hasher and embedding provider."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from rapidfuzz import fuzz

from evidence_rag.core.config import Settings
from evidence_rag.core.errors import EmbeddingRequestFailed, StoreQueryFailed, StoreUpsertFailed
from evidence_rag.core.logging import get_logger
from evidence_rag.ingest.chunker import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    chunk_text,
    estimate_token_count,
)
from evidence_rag.ingest.embeddings import DisabledEmbeddingProvider, EmbeddingProvider
from evidence_rag.models.entities import (
    DEFAULT_TOP_K,
    Chunk,
    DocumentInput,
    EmbeddingStatus,
    IngestMode,
    IngestResult,
    Query,
    Result,
)
from evidence_rag.utils.hashing import hash_content, hash_multiple

logger = get_logger(__name__)


@dataclass(slots=True)
class StoredChunk:
    id: str
    document_id: str
    chunk: Chunk
    token_count: int
    embedding: list[float] | None = None


@dataclass(slots=True)
class StoredDocument:
    id: str
    document: DocumentInput
    content_hash: str
    embedding_status: EmbeddingStatus
    chunks: list[StoredChunk] = field(default_factory=list)


class InMemoryEvidenceStore:
    """Reference ``EvidenceStore`` keeping documents in process memory.

    Documents are idempotent on (organization, source type, source ref,
    content hash). Queries use cosine similarity when the provider can
    embed, and fall back to case-insensitive substring matching scored
    with ``rapidfuzz`` otherwise.
    """

    def __init__(
        self,
        provider: EmbeddingProvider | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        max_chunks_per_doc: int = 100,
    ) -> None:
        self.provider = provider or DisabledEmbeddingProvider()
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.max_chunks_per_doc = max_chunks_per_doc
        self._documents: dict[tuple[str, str, str, str], StoredDocument] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, provider: EmbeddingProvider | None = None) -> "InMemoryEvidenceStore":
        return cls(
            provider=provider,
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            max_chunks_per_doc=settings.max_chunks_per_doc,
        )

    @property
    def document_count(self) -> int:
        with self._lock:
            return len(self._documents)

    def upsert_document_and_chunks(self, document: DocumentInput) -> IngestResult:
        content_hash = hash_content(document.content)
        key = (document.organization_id, document.source_type, document.source_ref, content_hash)
        with self._lock:
            existing = self._documents.get(key)
        if existing is not None:
            logger.debug("Document %s already stored", existing.id)
            return IngestResult(
                document_id=existing.id,
                chunks_stored=len(existing.chunks),
                mode="vector" if existing.embedding_status == "ok" else "lexical",
                embedding_status=existing.embedding_status,
            )

        chunks = chunk_text(document.content, self.chunk_size, self.chunk_overlap)
        if len(chunks) > self.max_chunks_per_doc:
            raise StoreUpsertFailed(
                f"Document exceeds maximum chunks ({len(chunks)} > {self.max_chunks_per_doc})"
            )

        embeddings, mode, status = self._embed_chunks(chunks)
        document_id = "doc_" + hash_multiple(*key)[:32]
        stored = StoredDocument(id=document_id, document=document, content_hash=content_hash, embedding_status=status)
        for chunk in chunks:
            stored.chunks.append(
                StoredChunk(
                    id="chk_" + hash_multiple(document_id, str(chunk.index), chunk.content)[:32],
                    document_id=document_id,
                    chunk=chunk,
                    token_count=estimate_token_count(chunk.content),
                    embedding=embeddings[chunk.index] if embeddings else None,
                )
            )

        with self._lock:
            # A concurrent upsert of the same content may have won the race.
            winner = self._documents.setdefault(key, stored)
        if winner is not stored:
            mode = "vector" if winner.embedding_status == "ok" else "lexical"
        return IngestResult(
            document_id=winner.id,
            chunks_stored=len(winner.chunks),
            mode=mode,
            embedding_status=winner.embedding_status,
        )

    def query_similar(self, query: Query) -> list[Result]:
        if query.top_k < 0:
            raise StoreQueryFailed(f"top_k must not be negative, got {query.top_k}")
        # Zero means "use the default", matching the cache key.
        top_k = query.top_k or DEFAULT_TOP_K
        candidates = self._candidates(query)
        if not candidates:
            return []

        if self.provider.is_available():
            try:
                vectors = self.provider.embed([query.query_text])
            except EmbeddingRequestFailed as exc:
                logger.warning("Query embedding failed, using lexical fallback: %s", exc)
            else:
                if vectors and vectors[0]:
                    ranked = _rank_by_vector(vectors[0], candidates)
                    if ranked:
                        return ranked[:top_k]

        return _rank_lexical(query.query_text, candidates)[:top_k]

    # Internal helpers -------------------------------------------------

    def _embed_chunks(
        self, chunks: Sequence[Chunk]
    ) -> tuple[list[list[float]], IngestMode, EmbeddingStatus]:
        if not self.provider.is_available():
            return [], "lexical", "disabled"
        try:
            vectors = self.provider.embed([chunk.content for chunk in chunks])
        except EmbeddingRequestFailed as exc:
            logger.warning("Embedding generation failed, using lexical fallback: %s", exc)
            return [], "lexical", "failed"
        if len(vectors) != len(chunks):
            return [], "vector", "failed"
        return vectors, "vector", "ok"

    def _candidates(self, query: Query) -> list[tuple[StoredDocument, StoredChunk]]:
        filters = query.filters or {}
        source_types = filters.get("source_types")
        metadata = filters.get("metadata") or {}
        with self._lock:
            documents = list(self._documents.values())
        selected: list[tuple[StoredDocument, StoredChunk]] = []
        for stored in documents:
            document = stored.document
            if document.organization_id != query.organization_id:
                continue
            if query.repository_id is not None and document.repository_id != query.repository_id:
                continue
            if source_types and document.source_type not in source_types:
                continue
            if not _matches_metadata(document.metadata, metadata):
                continue
            selected.extend((stored, chunk) for chunk in stored.chunks)
        return selected


def _matches_metadata(actual: Mapping[str, Any], expected: Mapping[str, Any]) -> bool:
    return all(actual.get(key) == value for key, value in expected.items())


def _rank_by_vector(
    vector: Sequence[float], candidates: Sequence[tuple[StoredDocument, StoredChunk]]
) -> list[Result]:
    scored = [
        (_cosine(vector, chunk.embedding), stored, chunk)
        for stored, chunk in candidates
        if chunk.embedding
    ]
    scored.sort(key=lambda item: item[0], reverse=True)
    return [_to_result(stored, chunk, score) for score, stored, chunk in scored]


def _rank_lexical(query_text: str, candidates: Sequence[tuple[StoredDocument, StoredChunk]]) -> list[Result]:
    needle = query_text.lower()
    scored = [
        (fuzz.ratio(needle, chunk.chunk.content.lower()) / 100.0, stored, chunk)
        for stored, chunk in candidates
        if needle in chunk.chunk.content.lower()
    ]
    scored.sort(key=lambda item: item[0], reverse=True)
    return [_to_result(stored, chunk, score) for score, stored, chunk in scored]


def _cosine(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return max(0.0, min(1.0, dot / norm))


def _to_result(stored: StoredDocument, chunk: StoredChunk, similarity: float) -> Result:
    return Result(
        content=chunk.chunk.content,
        source_type=stored.document.source_type,
        source_ref=stored.document.source_ref,
        similarity=similarity,
        id=chunk.id,
        document_id=stored.id,
        chunk_index=chunk.chunk.index,
        metadata=dict(stored.document.metadata),
    )


__all__ = ["InMemoryEvidenceStore", "StoredChunk", "StoredDocument"]
