"""Tests for the Elasticsearch store."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from docmapper.stores.base.exceptions import (
    ConnectionError,
    DocumentNotFoundError,
    QueryError,
    RequestError,
    VersionConflictError,
)
from docmapper.stores.elasticsearch.store import ElasticsearchStore

Handler = Callable[[httpx.Request], httpx.Response]


def _attach(store: ElasticsearchStore, handler: Handler) -> list[httpx.Request]:
    """Route the store's requests through ``handler`` and record them."""
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    store._client = httpx.AsyncClient(base_url="http://es:9200", transport=httpx.MockTransport(record))
    return seen


def _body(request: httpx.Request) -> dict[str, Any]:
    return json.loads(request.content)


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def store() -> ElasticsearchStore:
    return ElasticsearchStore(hosts=["http://es:9200"])


@pytest.fixture
def sample_hit() -> dict[str, Any]:
    return {
        "_index": "persistent_articles",
        "_id": "1",
        "_version": 3,
        "_score": 1.2,
        "_source": {"title": "One", "count": "1"},
    }


# ── Properties ───────────────────────────────────────────────────────────────


class TestElasticsearchProperties:
    def test_name(self, store: ElasticsearchStore) -> None:
        assert store.name == "elasticsearch"

    def test_default_hosts(self) -> None:
        assert ElasticsearchStore()._hosts == ["http://localhost:9200"]


# ── Initialization ───────────────────────────────────────────────────────────


class TestElasticsearchInitialization:
    async def test_not_initialized_raises(self, store: ElasticsearchStore) -> None:
        with pytest.raises(ConnectionError, match="not initialized"):
            await store.get_document("articles", "1")

    async def test_shutdown_closes_client(self, store: ElasticsearchStore) -> None:
        _attach(store, lambda r: httpx.Response(200, json={}))
        await store.shutdown()
        assert store._client is None

    async def test_transport_error_is_connection_error(self, store: ElasticsearchStore) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        _attach(store, refuse)
        with pytest.raises(ConnectionError):
            await store.refresh("articles")


# ── Writes ───────────────────────────────────────────────────────────────────


class TestElasticsearchWrites:
    async def test_index_with_id(self, store: ElasticsearchStore) -> None:
        seen = _attach(
            store,
            lambda r: httpx.Response(201, json={"_id": "1", "_version": 1, "result": "created"}),
        )

        written = await store.index_document("articles", "article", {"title": "One"}, doc_id="1")

        assert written.id == "1"
        assert written.version == 1
        assert written.result == "created"
        assert seen[0].method == "PUT"
        assert seen[0].url.path == "/articles/_doc/1"
        assert "version" not in seen[0].url.params
        assert _body(seen[0]) == {"title": "One"}

    async def test_index_without_id_posts(self, store: ElasticsearchStore) -> None:
        seen = _attach(
            store,
            lambda r: httpx.Response(201, json={"_id": "abc", "_version": 1, "result": "created"}),
        )

        written = await store.index_document("articles", "article", {"title": "One"})

        assert written.id == "abc"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/articles/_doc"

    async def test_expected_version_pins_write_to_sequence_number(self, store: ElasticsearchStore) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(
                    200,
                    json={"_id": "1", "_version": 2, "_seq_no": 7, "_primary_term": 1, "found": True},
                )
            return httpx.Response(200, json={"_id": "1", "_version": 3, "result": "updated"})

        seen = _attach(store, handler)

        written = await store.index_document(
            "articles", "article", {"title": "One"}, doc_id="1", expected_version=2, refresh=True
        )

        assert written.version == 3
        assert seen[0].method == "GET"
        assert seen[0].url.params["_source"] == "false"
        params = seen[1].url.params
        assert params["if_seq_no"] == "7"
        assert params["if_primary_term"] == "1"
        assert params["refresh"] == "true"
        assert "version_type" not in params

    async def test_held_version_ahead_of_stored_is_rejected(self, store: ElasticsearchStore) -> None:
        seen = _attach(
            store,
            lambda r: httpx.Response(
                200,
                json={"_id": "1", "_version": 2, "_seq_no": 1, "_primary_term": 1, "found": True},
            ),
        )

        with pytest.raises(VersionConflictError):
            await store.index_document("articles", "article", {}, doc_id="1", expected_version=5)
        assert [r.method for r in seen] == ["GET"]

    async def test_expected_version_on_missing_document_is_rejected(self, store: ElasticsearchStore) -> None:
        seen = _attach(store, lambda r: httpx.Response(404, json={"_id": "1", "found": False}))

        with pytest.raises(VersionConflictError):
            await store.index_document("articles", "article", {}, doc_id="1", expected_version=1)
        assert len(seen) == 1

    async def test_conflict_raises_version_conflict(self, store: ElasticsearchStore) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(
                    200,
                    json={"_id": "1", "_version": 1, "_seq_no": 0, "_primary_term": 1, "found": True},
                )
            return httpx.Response(
                409,
                json={"error": {"type": "version_conflict_engine_exception", "reason": "[1]: version conflict"}},
            )

        _attach(store, handler)

        with pytest.raises(VersionConflictError) as exc_info:
            await store.index_document("articles", "article", {}, doc_id="1", expected_version=1)
        assert exc_info.value.reason == "version_conflict_engine_exception"
        assert exc_info.value.status_code == 409

    async def test_ids_are_escaped_in_paths(self, store: ElasticsearchStore) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"_id": "a/b?x#y", "_version": 1, "found": True, "_source": {}})
            return httpx.Response(201, json={"_id": "a/b?x#y", "_version": 1, "result": "created"})

        seen = _attach(store, handler)

        await store.index_document("articles", "article", {}, doc_id="a/b?x#y")
        hit = await store.get_document("articles", "a/b?x#y")

        assert [r.url.raw_path for r in seen] == [b"/articles/_doc/a%2Fb%3Fx%23y"] * 2
        assert hit.id == "a/b?x#y"

    async def test_other_error_raises_request_error(self, store: ElasticsearchStore) -> None:
        _attach(store, lambda r: httpx.Response(503, text="unavailable"))

        with pytest.raises(RequestError) as exc_info:
            await store.index_document("articles", "article", {}, doc_id="1")
        assert exc_info.value.status_code == 503


# ── Reads ────────────────────────────────────────────────────────────────────


class TestElasticsearchReads:
    async def test_get_document(self, store: ElasticsearchStore, sample_hit: dict) -> None:
        seen = _attach(store, lambda r: httpx.Response(200, json={**sample_hit, "found": True}))

        hit = await store.get_document("persistent_articles", "1")

        assert seen[0].url.path == "/persistent_articles/_doc/1"
        assert hit.id == "1"
        assert hit.version == 3
        assert hit.source == {"title": "One", "count": "1"}

    async def test_get_missing_document(self, store: ElasticsearchStore) -> None:
        _attach(store, lambda r: httpx.Response(404, json={"_index": "articles", "_id": "9", "found": False}))

        with pytest.raises(DocumentNotFoundError):
            await store.get_document("articles", "9")

    async def test_multi_get_skips_missing(self, store: ElasticsearchStore, sample_hit: dict) -> None:
        seen = _attach(
            store,
            lambda r: httpx.Response(
                200,
                json={"docs": [{**sample_hit, "found": True}, {"_index": "persistent_articles", "_id": "2", "found": False}]},
            ),
        )

        hits = await store.multi_get("persistent_articles", ["1", "2"])

        assert [h.id for h in hits] == ["1"]
        assert _body(seen[0]) == {"ids": ["1", "2"]}

    async def test_multi_get_missing_index(self, store: ElasticsearchStore) -> None:
        _attach(store, lambda r: httpx.Response(404, json={"error": {"type": "index_not_found_exception"}}))
        assert await store.multi_get("nothing", ["1"]) == []

    async def test_multi_get_no_ids_skips_request(self, store: ElasticsearchStore) -> None:
        seen = _attach(store, lambda r: httpx.Response(500))
        assert await store.multi_get("articles", []) == []
        assert seen == []


# ── Search ───────────────────────────────────────────────────────────────────


class TestElasticsearchSearch:
    async def test_search_returns_hits(self, store: ElasticsearchStore, sample_hit: dict) -> None:
        seen = _attach(
            store,
            lambda r: httpx.Response(200, json={"took": 2, "hits": {"total": {"value": 9}, "hits": [sample_hit]}}),
        )

        hits = await store.search("persistent_articles", {"query": {"match_all": {}}, "from": 0, "size": 5})

        assert hits.total == 9
        assert hits.hits[0].score == 1.2
        body = _body(seen[0])
        assert body["version"] is True
        assert body["size"] == 5
        assert seen[0].url.path == "/persistent_articles/_search"

    async def test_search_legacy_total(self, store: ElasticsearchStore) -> None:
        _attach(store, lambda r: httpx.Response(200, json={"hits": {"total": 4, "hits": []}}))
        assert (await store.search("articles", {})).total == 4

    async def test_bad_query_raises_query_error(self, store: ElasticsearchStore) -> None:
        _attach(store, lambda r: httpx.Response(400, json={"error": {"type": "parsing_exception"}}))

        with pytest.raises(QueryError) as exc_info:
            await store.search("articles", {"query": {"nope": {}}})
        assert exc_info.value.reason == "parsing_exception"


# ── Index upkeep ─────────────────────────────────────────────────────────────


class TestElasticsearchIndexUpkeep:
    async def test_refresh(self, store: ElasticsearchStore) -> None:
        seen = _attach(store, lambda r: httpx.Response(200, json={}))
        await store.refresh("articles")
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/articles/_refresh"

    async def test_delete_missing_index_is_ignored(self, store: ElasticsearchStore) -> None:
        _attach(store, lambda r: httpx.Response(404, json={"error": {"type": "index_not_found_exception"}}))
        await store.delete_index("articles")


# ── Health ───────────────────────────────────────────────────────────────────


class TestElasticsearchHealth:
    async def test_health_not_initialized(self, store: ElasticsearchStore) -> None:
        health = await store.health_check()
        assert health.status == "unhealthy"

    async def test_health_yellow_is_degraded(self, store: ElasticsearchStore) -> None:
        _attach(
            store,
            lambda r: httpx.Response(200, json={"status": "yellow", "cluster_name": "docs", "number_of_nodes": 1}),
        )
        health = await store.health_check()
        assert health.status == "degraded"
        assert "docs" in (health.message or "")
