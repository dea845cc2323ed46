"""Application configuration handling."""

from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

from evidence_rag.core.logging import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "RAG_"
DEFAULT_CONFIG_PATH = Path("~/.config/evidence-rag/config.yaml")

# Unprefixed variables shared with the rest of the platform.
_SHARED_ENV: Mapping[str, str] = {
    "OPENAI_API_KEY": "openai_api_key",
}

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("rag", "enabled"): "enabled",
    ("rag", "ingest_enabled"): "ingest_enabled",
    ("rag", "query_enabled"): "query_enabled",
    ("embeddings", "provider"): "provider",
    ("embeddings", "model"): "embed_model",
    ("embeddings", "base_url"): "embed_base_url",
    ("embeddings", "api_key"): "openai_api_key",
    ("embeddings", "timeout_seconds"): "embed_timeout_seconds",
    ("chunking", "size"): "chunk_size",
    ("chunking", "overlap"): "chunk_overlap",
    ("chunking", "max_chunks_per_doc"): "max_chunks_per_doc",
    ("prompt", "max_context_tokens"): "max_context_tokens",
    ("cache", "max_entries"): "cache_max_entries",
    ("cache", "ttl_seconds"): "cache_ttl_seconds",
}


class ProviderFamily(str, Enum):
    """Embedding provider families selectable from configuration."""

    OPENAI = "openai"
    DISABLED = "disabled"


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    enabled: bool = False
    ingest_enabled: bool = True
    query_enabled: bool = True
    provider: ProviderFamily = ProviderFamily.DISABLED
    openai_api_key: str | None = None
    embed_model: str = "text-embedding-3-small"
    embed_base_url: str = "https://api.openai.com/v1"
    embed_timeout_seconds: float = Field(default=30.0, gt=0)
    chunk_size: int = Field(default=1000, ge=1)
    chunk_overlap: int = Field(default=200, ge=0)
    max_chunks_per_doc: int = Field(default=100, ge=1)
    max_context_tokens: int = Field(default=4000, ge=0)
    cache_max_entries: int = Field(default=1000, ge=1)
    cache_ttl_seconds: float = Field(default=300.0, gt=0)

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: Any) -> Any:
        if isinstance(value, ProviderFamily):
            return value
        if value is None:
            return ProviderFamily.DISABLED
        name = str(value).strip().lower()
        try:
            return ProviderFamily(name)
        except ValueError:
            logger.warning("Unknown embedding provider %r; embeddings disabled", value)
            return ProviderFamily.DISABLED

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def is_ingest_enabled(self) -> bool:
        return self.enabled and self.ingest_enabled

    def is_query_enabled(self) -> bool:
        return self.enabled and self.query_enabled

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map RAG_-prefixed (and shared) environment variables into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, field_name in _SHARED_ENV.items():
        if key in os.environ:
            overrides[field_name] = os.environ[key]
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["ProviderFamily", "Settings", "get_settings"]
