"""Evidence retrieval layer: chunking, embeddings, caching and prompt evidence."""

from evidence_rag.models.entities import Chunk, DocumentInput, IngestResult, Query, Result
from evidence_rag.models.outcome import DegradedReason, Outcome
from evidence_rag.retrieval.formatting import format_evidence_for_prompt
from evidence_rag.service import EvidenceService, build_service

__version__ = "0.1.0"

__all__ = [
    "Chunk",
    "DegradedReason",
    "DocumentInput",
    "EvidenceService",
    "IngestResult",
    "Outcome",
    "Query",
    "Result",
    "build_service",
    "format_evidence_for_prompt",
]
