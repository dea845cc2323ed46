"""Tests for the in-process evidence store."""

from __future__ import annotations

from typing import Sequence

import pytest

from evidence_rag.core.errors import EmbeddingRequestFailed, StoreQueryFailed, StoreUpsertFailed
from evidence_rag.db.memory_store import InMemoryEvidenceStore
from evidence_rag.models.entities import DocumentInput, Query


class KeywordProvider:
    """Two-dimensional embeddings: axis 0 for 'secret', axis 1 for everything else."""

    dimensions = 2

    def __init__(self) -> None:
        self.calls = 0

    def is_available(self) -> bool:
        return True

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls += 1
        return [[1.0, 0.0] if "secret" in text.lower() else [0.0, 1.0] for text in texts]


class BrokenProvider:
    dimensions = 2

    def is_available(self) -> bool:
        return True

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        raise EmbeddingRequestFailed("upstream down", status=503)


class ShortProvider(KeywordProvider):
    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        return super().embed(texts)[:-1]


def _doc(content: str, ref: str = "docs/a.md", **overrides) -> DocumentInput:
    fields = {
        "organization_id": "org_1",
        "repository_id": "repo_1",
        "source_type": "policy_doc",
        "source_ref": ref,
        "content": content,
    }
    fields.update(overrides)
    return DocumentInput(**fields)


def test_lexical_ingest_and_query() -> None:
    store = InMemoryEvidenceStore()
    result = store.upsert_document_and_chunks(_doc("Rotate keys every 90 days.\n"))
    store.upsert_document_and_chunks(_doc("Unrelated text about caching.\n", ref="docs/b.md"))

    assert result.mode == "lexical"
    assert result.embedding_status == "disabled"
    assert result.chunks_stored == 1
    assert result.document_id.startswith("doc_")

    hits = store.query_similar(Query(organization_id="org_1", query_text="ROTATE KEYS"))
    assert [hit.source_ref for hit in hits] == ["docs/a.md"]
    hit = hits[0]
    assert 0 < hit.similarity <= 1
    assert hit.document_id == result.document_id
    assert hit.id.startswith("chk_")
    assert hit.chunk_index == 0


def test_same_content_is_idempotent() -> None:
    store = InMemoryEvidenceStore()
    first = store.upsert_document_and_chunks(_doc("Same body.\n"))
    second = store.upsert_document_and_chunks(_doc("Same body.\n"))
    changed = store.upsert_document_and_chunks(_doc("New body.\n"))

    assert first == second
    assert changed.document_id != first.document_id
    assert store.document_count == 2


def test_document_ids_are_stable_across_stores() -> None:
    first = InMemoryEvidenceStore().upsert_document_and_chunks(_doc("Body.\n"))
    second = InMemoryEvidenceStore().upsert_document_and_chunks(_doc("Body.\n"))
    assert first.document_id == second.document_id


def test_vector_path_ranks_by_cosine() -> None:
    provider = KeywordProvider()
    store = InMemoryEvidenceStore(provider=provider)
    stored = store.upsert_document_and_chunks(_doc("Never commit a secret.\n"))
    store.upsert_document_and_chunks(_doc("Prefer small functions.\n", ref="docs/style.md"))

    assert (stored.mode, stored.embedding_status) == ("vector", "ok")

    hits = store.query_similar(Query(organization_id="org_1", query_text="secret handling", top_k=1))
    assert len(hits) == 1
    assert hits[0].source_ref == "docs/a.md"
    assert hits[0].similarity == pytest.approx(1.0)


def test_embedding_failure_degrades_to_lexical() -> None:
    store = InMemoryEvidenceStore(provider=BrokenProvider())
    result = store.upsert_document_and_chunks(_doc("Rotate keys every 90 days.\n"))
    assert (result.mode, result.embedding_status) == ("lexical", "failed")

    hits = store.query_similar(Query(organization_id="org_1", query_text="rotate keys"))
    assert len(hits) == 1


def test_vector_count_mismatch_marks_failed() -> None:
    store = InMemoryEvidenceStore(provider=ShortProvider())
    result = store.upsert_document_and_chunks(_doc("Body.\n"))
    assert (result.mode, result.embedding_status) == ("vector", "failed")


def test_repeat_ingest_reports_stored_mode() -> None:
    store = InMemoryEvidenceStore(provider=BrokenProvider())
    store.upsert_document_and_chunks(_doc("Body.\n"))
    again = store.upsert_document_and_chunks(_doc("Body.\n"))
    assert (again.mode, again.embedding_status) == ("lexical", "failed")


def test_too_many_chunks_is_rejected() -> None:
    store = InMemoryEvidenceStore(chunk_size=10, chunk_overlap=0, max_chunks_per_doc=2)
    content = "".join(f"line {n:04d}\n" for n in range(10))
    with pytest.raises(StoreUpsertFailed, match="maximum chunks"):
        store.upsert_document_and_chunks(_doc(content))
    assert store.document_count == 0


def test_query_scoping_and_filters() -> None:
    store = InMemoryEvidenceStore()
    store.upsert_document_and_chunks(_doc("token rotation policy\n", metadata={"team": "sec"}))
    store.upsert_document_and_chunks(
        _doc("token rotation diff\n", ref="pr/7", source_type="pr_diff", metadata={"team": "infra"})
    )
    store.upsert_document_and_chunks(_doc("token rotation elsewhere\n", ref="x.md", repository_id="repo_2"))
    store.upsert_document_and_chunks(_doc("token rotation other org\n", organization_id="org_2"))

    def refs(**kwargs) -> set[str]:
        query = Query(organization_id="org_1", query_text="token rotation", **kwargs)
        return {hit.source_ref for hit in store.query_similar(query)}

    assert refs() == {"docs/a.md", "pr/7", "x.md"}
    assert refs(repository_id="repo_1") == {"docs/a.md", "pr/7"}
    assert refs(filters={"source_types": ["pr_diff"]}) == {"pr/7"}
    assert refs(filters={"metadata": {"team": "sec"}}) == {"docs/a.md"}


def test_top_k_limits_results() -> None:
    store = InMemoryEvidenceStore()
    for n in range(5):
        store.upsert_document_and_chunks(_doc(f"shared phrase {n}\n", ref=f"doc{n}.md"))
    hits = store.query_similar(Query(organization_id="org_1", query_text="shared phrase", top_k=3))
    assert len(hits) == 3
    assert [hit.similarity for hit in hits] == sorted((hit.similarity for hit in hits), reverse=True)


def test_negative_top_k_raises() -> None:
    with pytest.raises(StoreQueryFailed):
        InMemoryEvidenceStore().query_similar(Query(organization_id="org_1", query_text="q", top_k=-1))


def test_zero_top_k_uses_default() -> None:
    store = InMemoryEvidenceStore()
    for n in range(12):
        store.upsert_document_and_chunks(_doc(f"shared phrase {n}\n", ref=f"doc{n}.md"))
    hits = store.query_similar(Query(organization_id="org_1", query_text="shared phrase", top_k=0))
    assert len(hits) == 10
