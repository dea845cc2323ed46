"""Domain dataclasses passed between the evidence layer and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

SourceType = Literal[
    "pr_diff",
    "repo_file",
    "review_result",
    "policy_doc",
    "test_precedent",
    "doc_convention",
]

IngestMode = Literal["disabled", "vector", "lexical"]
EmbeddingStatus = Literal["disabled", "ok", "failed"]

DEFAULT_TOP_K = 10


@dataclass(slots=True, frozen=True)
class Chunk:
    """A slice of a document; ``content == text[start_offset:end_offset]``."""

    content: str
    index: int
    start_offset: int
    end_offset: int


@dataclass(slots=True)
class DocumentInput:
    """A document submitted for ingestion."""

    organization_id: str
    source_type: str
    source_ref: str
    content: str
    repository_id: str | None = None
    title: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class IngestResult:
    """Outcome of a single ingestion call."""

    document_id: str
    chunks_stored: int
    mode: IngestMode
    embedding_status: EmbeddingStatus

    @classmethod
    def disabled(cls) -> "IngestResult":
        return cls(document_id="", chunks_stored=0, mode="disabled", embedding_status="disabled")

    @classmethod
    def failed(cls) -> "IngestResult":
        return cls(document_id="", chunks_stored=0, mode="disabled", embedding_status="failed")


@dataclass(slots=True)
class Query:
    """A retrieval request scoped to a tenant and optionally a repository."""

    organization_id: str
    query_text: str
    repository_id: str | None = None
    top_k: int = DEFAULT_TOP_K
    filters: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Result:
    """A ranked evidence snippet returned by the store."""

    content: str
    source_type: str
    source_ref: str
    similarity: float
    id: str = ""
    document_id: str = ""
    chunk_index: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "DEFAULT_TOP_K",
    "Chunk",
    "DocumentInput",
    "EmbeddingStatus",
    "IngestMode",
    "IngestResult",
    "Query",
    "Result",
    "SourceType",
]
