"""Retrieval orchestration components."""

from .cache import SemanticCache, cache_key
from .formatting import format_evidence_for_prompt
from .search import QueryPipeline

__all__ = [
    "SemanticCache",
    "QueryPipeline",
    "cache_key",
    "format_evidence_for_prompt",
]
