"""Tests for the semantic cache."""

from __future__ import annotations

import threading

from conftest import make_result

from evidence_rag.models.entities import Query
from evidence_rag.retrieval.cache import SemanticCache, cache_key


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_get_missing_key_returns_none() -> None:
    assert SemanticCache().get("absent") is None


def test_entry_expires_after_ttl() -> None:
    clock = FakeClock()
    cache = SemanticCache(ttl_seconds=300, clock=clock)
    results = [make_result()]
    cache.set("k", results)

    clock.now += 300 - 0.001
    assert cache.get("k") == results

    clock.now += 0.002
    assert cache.get("k") is None
    assert len(cache) == 0, "expired entries are removed on read"


def test_capacity_evicts_first_inserted() -> None:
    cache = SemanticCache(max_entries=3)
    for key in ("a", "b", "c", "d"):
        cache.set(key, [make_result(key)])

    assert len(cache) == 3
    assert cache.get("a") is None
    assert [cache.get(key)[0].content for key in ("b", "c", "d")] == ["b", "c", "d"]


def test_eviction_ignores_read_recency() -> None:
    cache = SemanticCache(max_entries=2)
    cache.set("a", [])
    cache.set("b", [])
    assert cache.get("a") == []
    cache.set("c", [])
    assert "a" not in cache
    assert "b" in cache


def test_resetting_existing_key_does_not_evict() -> None:
    cache = SemanticCache(max_entries=2)
    cache.set("a", [])
    cache.set("b", [])
    cache.set("a", [make_result("fresh")])
    assert len(cache) == 2
    assert cache.get("a")[0].content == "fresh"
    assert cache.get("b") == []


def test_clear_removes_everything() -> None:
    cache = SemanticCache()
    cache.set("a", [])
    cache.clear()
    assert len(cache) == 0
    assert cache.get("a") is None


def test_concurrent_sets_respect_capacity() -> None:
    cache = SemanticCache(max_entries=50)

    def writer(offset: int) -> None:
        for n in range(200):
            cache.set(f"{offset}-{n}", [])

    threads = [threading.Thread(target=writer, args=(offset,)) for offset in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(cache) == 50


def test_cache_key_ignores_filter_ordering() -> None:
    first = Query(
        organization_id="org",
        query_text="q",
        filters={"source_types": ["pr_diff"], "metadata": {"a": 1, "b": 2}},
    )
    second = Query(
        organization_id="org",
        query_text="q",
        filters={"metadata": {"b": 2, "a": 1}, "source_types": ["pr_diff"]},
    )
    assert cache_key(first) == cache_key(second)


def test_cache_key_distinguishes_parameters() -> None:
    base = Query(organization_id="org", repository_id="repo", query_text="q")
    variants = [
        Query(organization_id="other", repository_id="repo", query_text="q"),
        Query(organization_id="org", repository_id=None, query_text="q"),
        Query(organization_id="org", repository_id="repo", query_text="q2"),
        Query(organization_id="org", repository_id="repo", query_text="q", top_k=5),
        Query(organization_id="org", repository_id="repo", query_text="q", filters={"source_types": ["pr_diff"]}),
    ]
    keys = {cache_key(base)} | {cache_key(variant) for variant in variants}
    assert len(keys) == len(variants) + 1


def test_cache_key_accepts_non_string_and_nested_filter_keys() -> None:
    numeric = Query(organization_id="org", query_text="q", filters={"metadata": {1: "x"}})
    assert cache_key(numeric) == cache_key(Query(organization_id="org", query_text="q", filters={"metadata": {1: "x"}}))
    assert cache_key(numeric) != cache_key(Query(organization_id="org", query_text="q", filters={"metadata": {2: "x"}}))

    nested_a = Query(organization_id="org", query_text="q", filters={"metadata": {"team": {"b": 1, "a": 2}}})
    nested_b = Query(organization_id="org", query_text="q", filters={"metadata": {"team": {"a": 2, "b": 1}}})
    assert cache_key(nested_a) == cache_key(nested_b)


def test_cache_key_treats_zero_top_k_as_default() -> None:
    assert cache_key(Query(organization_id="org", query_text="q", top_k=0)) == cache_key(
        Query(organization_id="org", query_text="q", top_k=10)
    )
