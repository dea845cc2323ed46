"""Chunking utilities."""

from __future__ import annotations

import math

from evidence_rag.models.entities import Chunk

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200

_BREAK_CHARS = frozenset("\n .;")


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[Chunk]:
    """Split text into overlapping, line-aligned chunks.

    The same ``(text, chunk_size, chunk_overlap)`` always yields the same
    sequence. ``chunk_size`` is a soft target: a single line longer than it
    is kept whole. An overlap at or above ``chunk_size`` is accepted and
    simply duplicates more text between neighbours.
    """
    if not text:
        return []

    chunks: list[Chunk] = []
    lines = text.split("\n")
    last = len(lines) - 1
    current = ""
    start = 0

    for position, line in enumerate(lines):
        piece = line + "\n" if position < last else line
        if len(current) + len(piece) >= chunk_size and current:
            chunks.append(_seal(current, len(chunks), start))
            overlap_start = _overlap_start(current, chunk_overlap)
            current = current[overlap_start:] + piece
            start += overlap_start
        else:
            current += piece

    if current:
        chunks.append(_seal(current, len(chunks), start))
    return chunks


def _seal(content: str, index: int, start: int) -> Chunk:
    return Chunk(content=content, index=index, start_offset=start, end_offset=start + len(content))


def _overlap_start(content: str, chunk_overlap: int) -> int:
    # Begin the carried-over window just after a word boundary when there is one.
    raw_start = max(0, len(content) - chunk_overlap)
    for position in range(raw_start, len(content)):
        if content[position] in _BREAK_CHARS:
            return position + 1
    return raw_start


def estimate_token_count(text: str) -> int:
    """Approximate token count at four characters per token."""
    return math.ceil(len(text) / 4)


__all__ = ["chunk_text", "estimate_token_count", "DEFAULT_CHUNK_SIZE", "DEFAULT_CHUNK_OVERLAP"]
