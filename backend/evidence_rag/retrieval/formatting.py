"""Render ranked evidence into a token-bounded prompt block."""

from __future__ import annotations

from typing import Sequence

from evidence_rag.ingest.chunker import estimate_token_count
from evidence_rag.models.entities import Result

DEFAULT_MAX_TOKENS = 4000
SNIPPET_CHARS = 500
HEADER = "\n## Evidence\n\n"


def format_evidence_for_prompt(results: Sequence[Result], max_tokens: int = DEFAULT_MAX_TOKENS) -> str:
    """Format results in the given order, stopping before the budget is exceeded.

    Entries are included whole or not at all. The header does not count
    against ``max_tokens``.
    """
    if not results:
        return ""

    parts = [HEADER]
    used = 0
    for result in results:
        entry = format_entry(result)
        cost = estimate_token_count(entry)
        if used + cost > max_tokens:
            break
        parts.append(entry)
        used += cost
    return "".join(parts)


def format_entry(result: Result) -> str:
    snippet = result.content[:SNIPPET_CHARS]
    ellipsis = "..." if len(result.content) > SNIPPET_CHARS else ""
    return f"- [{result.source_type}:{result.source_ref}]: {snippet}{ellipsis}\n"


__all__ = ["format_evidence_for_prompt", "format_entry", "DEFAULT_MAX_TOKENS"]
