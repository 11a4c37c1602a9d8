"""Elasticsearch store — Document persistence over the Elasticsearch REST API.

Talks to Elasticsearch (v7+) with ``httpx`` (async); no client library is
needed.  Documents live under ``/{index}/_doc/{id}``.

A write guarded by a version token first reads the stored document's
version and sequence number, then writes with ``if_seq_no`` /
``if_primary_term``.  The write lands only if the stored version equals the
token and nothing was written in between; internal versioning then moves
the version up by exactly one.

Usage::

    store = ElasticsearchStore(hosts=["http://localhost:9200"])
    await store.initialize()
    written = await store.index_document("articles", "article", {"title": "One"})
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

import httpx

from docmapper.stores.base.exceptions import (
    ConnectionError,
    DocumentNotFoundError,
    QueryError,
    RequestError,
    VersionConflictError,
)
from docmapper.stores.base.store import (
    DocumentHit,
    DocumentStore,
    SearchHits,
    StoreHealth,
    WriteResult,
    conditional_write_params,
)

logger = logging.getLogger(__name__)


class ElasticsearchStore(DocumentStore):
    """Document store for Elasticsearch.

    Args:
        hosts: Elasticsearch node URLs; the first one is used.
        username: Optional HTTP basic-auth username.
        password: Optional HTTP basic-auth password.
        api_key: Optional encoded API key (sent as ``Authorization: ApiKey``).
        verify_certs: Whether to verify TLS certificates.
        timeout: HTTP request timeout in seconds.
        **kwargs: Additional keyword arguments forwarded to ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        hosts: list[str] | None = None,
        username: str | None = None,
        password: str | None = None,
        api_key: str | None = None,
        verify_certs: bool = True,
        timeout: float = 30.0,
        **kwargs: Any,
    ) -> None:
        self._hosts = hosts or ["http://localhost:9200"]
        self._username = username
        self._password = password
        self._api_key = api_key
        self._verify_certs = verify_certs
        self._timeout = timeout
        self._extra_kwargs = kwargs
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "elasticsearch"

    async def initialize(self) -> None:
        """Create an ``httpx.AsyncClient`` and read the cluster info."""
        auth = None
        if self._username and self._password:
            auth = httpx.BasicAuth(self._username, self._password)
        headers = {"Authorization": f"ApiKey {self._api_key}"} if self._api_key else None

        self._client = httpx.AsyncClient(
            base_url=self._hosts[0].rstrip("/"),
            timeout=httpx.Timeout(self._timeout),
            auth=auth,
            headers=headers,
            verify=self._verify_certs,
            **self._extra_kwargs,
        )

        try:
            resp = await self._client.get("/")
            resp.raise_for_status()
            info = resp.json()
            logger.info(
                "Connected to Elasticsearch cluster: %s (v%s)",
                info.get("cluster_name", "unknown"),
                info.get("version", {}).get("number", "unknown"),
            )
        except httpx.HTTPError as e:
            raise ConnectionError(f"Failed to connect to Elasticsearch: {e}") from e

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ── Documents ────────────────────────────────────────────────────────

    async def index_document(
        self,
        index: str,
        doc_type: str,
        document: dict[str, Any],
        *,
        doc_id: str | None = None,
        expected_version: int | None = None,
        refresh: bool = False,
    ) -> WriteResult:
        """Write a document, optionally guarded by a version precondition."""
        params: dict[str, Any] = {}
        if expected_version is not None:
            current = await self._stored_state(index, doc_id) if doc_id is not None else None
            params.update(conditional_write_params(index, doc_id, expected_version, current))
        if refresh:
            params["refresh"] = "true"

        if doc_id is None:
            resp = await self._request("POST", f"/{index}/_doc", json=document, params=params)
        else:
            resp = await self._request("PUT", self._doc_path(index, doc_id), json=document, params=params)

        data = resp.json()
        logger.debug("Indexed %s/%s/%s at version %s", index, doc_type, data.get("_id"), data.get("_version"))
        return WriteResult(
            id=str(data["_id"]),
            version=int(data["_version"]),
            result=data.get("result", "updated"),
        )

    async def get_document(self, index: str, doc_id: str) -> DocumentHit:
        """Retrieve a single document by id."""
        try:
            resp = await self._request("GET", self._doc_path(index, doc_id))
        except RequestError as e:
            if e.status_code == 404:
                raise DocumentNotFoundError(f"Document '{doc_id}' not found in '{index}'.", reason=e.reason) from e
            raise

        data = resp.json()
        if not data.get("found", True):
            raise DocumentNotFoundError(f"Document '{doc_id}' not found in '{index}'.")
        return self._to_hit(data, index)

    async def multi_get(self, index: str, doc_ids: list[str]) -> list[DocumentHit]:
        """Retrieve several documents with ``_mget``; missing ids are skipped."""
        if not doc_ids:
            return []
        try:
            resp = await self._request("POST", f"/{index}/_mget", json={"ids": doc_ids})
        except RequestError as e:
            if e.status_code == 404:
                return []
            raise

        docs = resp.json().get("docs", [])
        return [self._to_hit(doc, index) for doc in docs if doc.get("found")]

    # ── Search ───────────────────────────────────────────────────────────

    async def search(self, index: str, body: dict[str, Any]) -> SearchHits:
        """Execute a search request body against ``index``."""
        start = time.monotonic()
        try:
            resp = await self._request("POST", f"/{index}/_search", json={**body, "version": True})
        except RequestError as e:
            if e.status_code == 400:
                raise QueryError(f"Elasticsearch rejected the query: {e}", reason=e.reason) from e
            raise
        took_ms = int((time.monotonic() - start) * 1000)

        hits = resp.json().get("hits", {})
        total = hits.get("total", 0)
        # ES 7+ reports {"value": n, "relation": "eq"}, ES 6 a bare number
        if isinstance(total, dict):
            total = total.get("value", 0)

        return SearchHits(
            total=int(total),
            hits=[self._to_hit(hit, index) for hit in hits.get("hits", [])],
            took_ms=took_ms,
        )

    # ── Index upkeep ─────────────────────────────────────────────────────

    async def refresh(self, index: str) -> None:
        await self._request("POST", f"/{index}/_refresh")

    async def delete_index(self, index: str) -> None:
        try:
            await self._request("DELETE", f"/{index}", params={"ignore_unavailable": "true"})
        except RequestError as e:
            if e.status_code != 404:
                raise

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> StoreHealth:
        """Check Elasticsearch cluster health."""
        if not self._client:
            return StoreHealth(status="unhealthy", message="Client not initialized")

        try:
            start = time.monotonic()
            resp = await self._client.get("/_cluster/health")
            latency_ms = int((time.monotonic() - start) * 1000)
            resp.raise_for_status()
            health = resp.json()

            status_map = {"green": "healthy", "yellow": "degraded", "red": "unhealthy"}

            return StoreHealth(
                status=status_map.get(health.get("status", "red"), "unhealthy"),
                latency_ms=latency_ms,
                last_check=datetime.now(UTC).isoformat(),
                message=f"Cluster: {health.get('cluster_name')}, Nodes: {health.get('number_of_nodes')}",
            )
        except Exception as e:
            return StoreHealth(status="unhealthy", message=str(e))

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _doc_path(index: str, doc_id: str) -> str:
        return f"/{index}/_doc/{quote(doc_id, safe='')}"

    async def _stored_state(self, index: str, doc_id: str) -> DocumentHit | None:
        """Version and sequence number of a stored document, None if it is absent."""
        try:
            resp = await self._request("GET", self._doc_path(index, doc_id), params={"_source": "false"})
        except RequestError as e:
            if e.status_code == 404:
                return None
            raise

        data = resp.json()
        return self._to_hit(data, index) if data.get("found", True) else None

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and translate failures into store exceptions."""
        if not self._client:
            raise ConnectionError("Elasticsearch client not initialized.")

        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise ConnectionError(f"Elasticsearch request failed: {e}") from e

        if resp.is_success:
            return resp

        reason = self._error_reason(resp)
        message = f"{method} {url} returned HTTP {resp.status_code}: {reason}"
        if resp.status_code == 409:
            raise VersionConflictError(message, reason=reason)
        raise RequestError(message, status_code=resp.status_code, reason=reason)

    @staticmethod
    def _error_reason(resp: httpx.Response) -> str:
        """Pull the error type out of an Elasticsearch error body."""
        try:
            data = resp.json()
        except ValueError:
            return resp.text or resp.reason_phrase
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            return str(error.get("type") or error.get("reason") or error)
        if error:
            return str(error)
        return resp.reason_phrase

    @staticmethod
    def _to_hit(raw: dict[str, Any], index: str) -> DocumentHit:
        """Map a get / mget / search entry to ``DocumentHit``."""
        return DocumentHit(
            index=raw.get("_index", index),
            id=str(raw["_id"]),
            version=raw.get("_version"),
            score=raw.get("_score"),
            seq_no=raw.get("_seq_no"),
            primary_term=raw.get("_primary_term"),
            source=raw.get("_source", {}),
        )
