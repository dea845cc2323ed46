"""Error types raised below the pipeline boundary."""

from __future__ import annotations


class EvidenceError(RuntimeError):
    """Base class for evidence layer failures."""


class EmbeddingRequestFailed(EvidenceError):
    """The remote embedding call failed or returned an unusable payload."""

    def __init__(self, detail: str, status: int | None = None) -> None:
        self.status = status
        self.detail = detail
        message = f"Embedding request failed ({status}): {detail}" if status else f"Embedding request failed: {detail}"
        super().__init__(message)


class StoreUpsertFailed(EvidenceError):
    """The evidence store could not persist a document."""


class StoreQueryFailed(EvidenceError):
    """The evidence store could not answer a similarity query."""


__all__ = [
    "EvidenceError",
    "EmbeddingRequestFailed",
    "StoreUpsertFailed",
    "StoreQueryFailed",
]
