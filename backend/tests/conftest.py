"""Test fixtures for the evidence layer."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from evidence_rag.core.config import Settings, get_settings  # noqa: E402
from evidence_rag.core.events import BaseEventSink  # noqa: E402
from evidence_rag.models.entities import DocumentInput, IngestResult, Query, Result  # noqa: E402


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests from the developer's environment and cached settings."""
    for key in list(os.environ):
        if key.startswith("RAG_") and key != "RAG_LOG_LEVEL":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("RAG_CONFIG", str(tmp_path / "missing.yaml"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class RecordingSink(BaseEventSink):
    """Event sink that keeps every emitted event for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event: str, level: int, **context: Any) -> None:
        self.events.append((event, context))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def last(self, name: str) -> dict[str, Any]:
        return next(context for event, context in reversed(self.events) if event == name)


class FakeStore:
    """Evidence store double with call counters and switchable failures."""

    def __init__(
        self,
        results: list[Result] | None = None,
        ingest_result: IngestResult | None = None,
        error: Exception | None = None,
    ) -> None:
        self.results = results or []
        self.ingest_result = ingest_result or IngestResult(
            document_id="doc_1", chunks_stored=3, mode="vector", embedding_status="ok"
        )
        self.error = error
        self.upsert_calls = 0
        self.query_calls = 0

    def upsert_document_and_chunks(self, document: DocumentInput) -> IngestResult:
        self.upsert_calls += 1
        if self.error is not None:
            raise self.error
        return self.ingest_result

    def query_similar(self, query: Query) -> list[Result]:
        self.query_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.results)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def enabled_settings() -> Settings:
    return Settings(enabled=True)


@pytest.fixture
def document() -> DocumentInput:
    return DocumentInput(
        organization_id="org_1",
        repository_id="repo_1",
        source_type="policy_doc",
        source_ref="docs/security.md",
        content="Secrets must never be committed.\nRotate keys every 90 days.\n",
    )


@pytest.fixture
def query() -> Query:
    return Query(organization_id="org_1", repository_id="repo_1", query_text="rotate keys")


def make_result(content: str = "evidence", similarity: float = 0.9, ref: str = "a.py") -> Result:
    return Result(content=content, source_type="repo_file", source_ref=ref, similarity=similarity)
