"""Embedding providers."""

from __future__ import annotations

from typing import Protocol, Sequence

import requests

from evidence_rag.core.config import ProviderFamily, Settings
from evidence_rag.core.errors import EmbeddingRequestFailed
from evidence_rag.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DIMENSIONS = 1536
LARGE_DIMENSIONS = 3072


class EmbeddingProvider(Protocol):
    @property
    def dimensions(self) -> int: ...

    def is_available(self) -> bool: ...

    def embed(self, texts: Sequence[str]) -> list[list[float]]: ...


class RemoteEmbeddingProvider:
    """OpenAI-compatible ``/embeddings`` client.

    One batched POST per ``embed`` call. Any transport error, non-success
    status or malformed payload raises ``EmbeddingRequestFailed``; callers
    never receive partial or zero-filled vectors.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 30.0,
    ) -> None:
        self.api_key = api_key or ""
        self.model = model
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._dimensions = LARGE_DIMENSIONS if "large" in model else DEFAULT_DIMENSIONS

    @classmethod
    def from_settings(cls, settings: Settings) -> "RemoteEmbeddingProvider":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.embed_model,
            base_url=settings.embed_base_url,
            timeout_seconds=settings.embed_timeout_seconds,
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def is_available(self) -> bool:
        return bool(self.api_key)

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        if not self.is_available():
            raise EmbeddingRequestFailed("API key not configured")

        try:
            response = requests.post(
                f"{self._base_url}/embeddings",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"model": self.model, "input": list(texts)},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise EmbeddingRequestFailed(str(exc)) from exc

        if not response.ok:
            raise EmbeddingRequestFailed(response.text, status=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise EmbeddingRequestFailed("response body is not JSON", status=response.status_code) from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            raise EmbeddingRequestFailed("invalid embeddings payload: missing data", status=response.status_code)

        vectors: list[list[float]] = []
        for item in data:
            embedding = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(embedding, list) or not embedding:
                raise EmbeddingRequestFailed(
                    "invalid embeddings payload: missing embedding vector", status=response.status_code
                )
            vectors.append([float(value) for value in embedding])

        if len(vectors) != len(texts):
            raise EmbeddingRequestFailed(
                f"invalid embeddings payload: expected {len(texts)} vectors, got {len(vectors)}",
                status=response.status_code,
            )
        return vectors


class DisabledEmbeddingProvider:
    """Embeddings switched off; the store falls back to lexical matching."""

    @property
    def dimensions(self) -> int:
        # Schemas sized for the default model stay valid with embeddings off.
        return DEFAULT_DIMENSIONS

    def is_available(self) -> bool:
        return False

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        return []


def select_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Resolve the configured provider family once, degrading to disabled."""
    if settings.provider is ProviderFamily.OPENAI:
        remote = RemoteEmbeddingProvider.from_settings(settings)
        if remote.is_available():
            return remote
        logger.debug("Embedding provider %s has no credential; embeddings disabled", settings.provider.value)
    return DisabledEmbeddingProvider()


__all__ = [
    "EmbeddingProvider",
    "RemoteEmbeddingProvider",
    "DisabledEmbeddingProvider",
    "select_embedding_provider",
    "DEFAULT_DIMENSIONS",
    "LARGE_DIMENSIONS",
]
