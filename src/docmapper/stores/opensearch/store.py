"""OpenSearch store — Document persistence for OpenSearch (v2+).

OpenSearch is an AWS-maintained fork of Elasticsearch with a compatible
document API.  This store uses ``opensearch-py`` (async) and follows the
same read-then-conditional-write scheme as ``ElasticsearchStore``:
a guarded write is pinned with ``if_seq_no`` / ``if_primary_term``.

Install the optional dependency::

    pip install docmapper[opensearch]
    # or: pip install opensearch-py
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any

from docmapper.stores.base.exceptions import (
    ConfigurationError,
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


class OpenSearchStore(DocumentStore):
    """Document store for OpenSearch (v2+).

    Args:
        hosts: List of OpenSearch node URLs.
        username: Optional HTTP basic-auth username.
        password: Optional HTTP basic-auth password.
        api_key: Accepted for interface consistency; OpenSearch uses basic auth.
        verify_certs: Whether to verify TLS certificates.
        timeout: Request timeout in seconds.
        **kwargs: Additional keyword arguments forwarded to ``AsyncOpenSearch``.
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
        self._hosts = hosts or ["https://localhost:9200"]
        self._username = username
        self._password = password
        self._api_key = api_key
        self._verify_certs = verify_certs
        self._timeout = timeout
        self._extra_kwargs = kwargs
        self._client: Any = None

    @property
    def name(self) -> str:
        return "opensearch"

    async def initialize(self) -> None:
        """Create and verify the ``AsyncOpenSearch`` client."""
        try:
            from opensearchpy import AsyncOpenSearch
        except ImportError as e:
            raise ConfigurationError(
                "opensearch-py package is required.  Install with: pip install docmapper[opensearch]"
            ) from e

        client_kwargs: dict[str, Any] = {
            "hosts": self._hosts,
            "verify_certs": self._verify_certs,
            "ssl_show_warn": False,
            "timeout": self._timeout,
        }
        if self._username and self._password:
            client_kwargs["http_auth"] = (self._username, self._password)

        client_kwargs.update(self._extra_kwargs)

        try:
            self._client = AsyncOpenSearch(**client_kwargs)
            info = await self._client.info()
            version = info.get("version", {}).get("number", "unknown")
            cluster = info.get("cluster_name", "unknown")
            logger.info("Connected to OpenSearch cluster: %s (v%s)", cluster, version)
        except Exception as e:
            raise ConnectionError(f"Failed to connect to OpenSearch: {e}") from e

    async def shutdown(self) -> None:
        """Close the OpenSearch client."""
        if self._client:
            await self._client.close()
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
        client = self._require_client()

        params: dict[str, Any] = {}
        if expected_version is not None:
            current = await self._stored_state(index, doc_id) if doc_id is not None else None
            params.update(conditional_write_params(index, doc_id, expected_version, current))
        if refresh:
            params["refresh"] = "true"

        try:
            response = await client.index(index=index, body=document, id=doc_id, params=params)
        except _transport_error() as e:
            raise self._translate_error(e, f"index into '{index}'") from e

        logger.debug("Indexed %s/%s/%s at version %s", index, doc_type, response.get("_id"), response.get("_version"))
        return WriteResult(
            id=str(response["_id"]),
            version=int(response["_version"]),
            result=response.get("result", "updated"),
        )

    async def get_document(self, index: str, doc_id: str) -> DocumentHit:
        """Retrieve a single document by id."""
        client = self._require_client()
        try:
            response = await client.get(index=index, id=doc_id)
        except _transport_error() as e:
            if _status_of(e) == 404:
                raise DocumentNotFoundError(f"Document '{doc_id}' not found in '{index}'.") from e
            raise self._translate_error(e, f"fetch '{doc_id}'") from e

        if not response.get("found", True):
            raise DocumentNotFoundError(f"Document '{doc_id}' not found in '{index}'.")
        return self._to_hit(response, index)

    async def multi_get(self, index: str, doc_ids: list[str]) -> list[DocumentHit]:
        """Retrieve several documents; missing ids are skipped."""
        if not doc_ids:
            return []
        client = self._require_client()
        try:
            response = await client.mget(index=index, body={"ids": doc_ids})
        except _transport_error() as e:
            if _status_of(e) == 404:
                return []
            raise self._translate_error(e, f"multi-get from '{index}'") from e

        return [self._to_hit(doc, index) for doc in response.get("docs", []) if doc.get("found")]

    # ── Search ───────────────────────────────────────────────────────────

    async def search(self, index: str, body: dict[str, Any]) -> SearchHits:
        """Execute a search request body against ``index``."""
        client = self._require_client()
        try:
            start = time.monotonic()
            response = await client.search(index=index, body={**body, "version": True})
            took_ms = int((time.monotonic() - start) * 1000)
        except _transport_error() as e:
            raise self._translate_error(e, f"search '{index}'") from e

        hits = response.get("hits", {})
        total = hits.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)

        return SearchHits(
            total=int(total),
            hits=[self._to_hit(hit, index) for hit in hits.get("hits", [])],
            took_ms=took_ms,
        )

    # ── Index upkeep ─────────────────────────────────────────────────────

    async def refresh(self, index: str) -> None:
        client = self._require_client()
        try:
            await client.indices.refresh(index=index)
        except _transport_error() as e:
            raise self._translate_error(e, f"refresh '{index}'") from e

    async def delete_index(self, index: str) -> None:
        client = self._require_client()
        try:
            await client.indices.delete(index=index, params={"ignore_unavailable": "true"})
        except _transport_error() as e:
            if _status_of(e) != 404:
                raise self._translate_error(e, f"delete '{index}'") from e

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> StoreHealth:
        """Check OpenSearch cluster health."""
        if not self._client:
            return StoreHealth(status="unhealthy", message="Client not initialized")

        try:
            start = time.monotonic()
            health = await self._client.cluster.health()
            latency_ms = int((time.monotonic() - start) * 1000)

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

    def _require_client(self) -> Any:
        if not self._client:
            raise ConnectionError("OpenSearch client not initialized.")
        return self._client

    async def _stored_state(self, index: str, doc_id: str) -> DocumentHit | None:
        """Version and sequence number of a stored document, None if it is absent."""
        client = self._require_client()
        try:
            response = await client.get(index=index, id=doc_id, params={"_source": "false"})
        except _transport_error() as e:
            if _status_of(e) == 404:
                return None
            raise self._translate_error(e, f"read '{doc_id}'") from e

        return self._to_hit(response, index) if response.get("found", True) else None

    @staticmethod
    def _translate_error(error: Exception, action: str) -> Exception:
        """Map an opensearch-py exception onto the store exception hierarchy."""
        status = _status_of(error)
        reason = getattr(error, "error", None)
        reason = str(reason) if reason is not None else None
        message = f"OpenSearch failed to {action}: {error}"
        if status == 409:
            return VersionConflictError(message, reason=reason)
        if status == 400:
            return QueryError(message, reason=reason)
        if isinstance(status, int):
            return RequestError(message, status_code=status, reason=reason)
        return ConnectionError(message)

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


def _transport_error() -> type[Exception]:
    """opensearch-py's ``TransportError``, base of its HTTP and connection errors."""
    from opensearchpy.exceptions import TransportError

    return TransportError


def _status_of(error: Exception) -> int | str | None:
    """HTTP status carried by an opensearch-py ``TransportError``.

    ``ConnectionError`` from opensearch-py reports the string ``"N/A"``.
    """
    return getattr(error, "status_code", None)
