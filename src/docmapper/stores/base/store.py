"""Base document store — Abstract interface for all search engine backends.

Every backend must implement this interface to hold persistent models.
The store is responsible for:
  1. Writing documents, enforcing the version precondition when one is given
  2. Fetching documents by id, singly and in batches
  3. Executing search request bodies
  4. Reporting health status
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from docmapper.stores.base.exceptions import RequestError, VersionConflictError


class StoreHealth(BaseModel):
    """Health status of a document store."""

    status: str = Field(description="Health status: healthy, degraded, unhealthy")
    latency_ms: int = Field(default=0, description="Latency of last health check in ms")
    last_check: str | None = Field(default=None, description="ISO timestamp of last health check")
    message: str | None = Field(default=None, description="Additional health message")


class WriteResult(BaseModel):
    """Outcome of a successful document write."""

    id: str = Field(description="Document id (assigned by the store if none was given)")
    version: int = Field(description="Version token now held by the store")
    result: str = Field(default="updated", description="Store verdict: created or updated")


class DocumentHit(BaseModel):
    """A stored document as returned by get, multi-get or search."""

    index: str = Field(description="Index holding the document")
    id: str = Field(description="Document id")
    version: int | None = Field(default=None, description="Current version token")
    score: float | None = Field(default=None, description="Relevance score (search only)")
    seq_no: int | None = Field(default=None, description="Sequence number of the last write to this document")
    primary_term: int | None = Field(default=None, description="Primary term of the last write to this document")
    source: dict[str, Any] = Field(default_factory=dict, description="Stored JSON body")


class SearchHits(BaseModel):
    """One page of search results before they are cast to models."""

    total: int = Field(default=0, description="Total number of matching documents")
    hits: list[DocumentHit] = Field(default_factory=list, description="Documents in the requested window")
    took_ms: int = Field(default=0, description="Store query execution time in ms")


class DocumentStore(ABC):
    """Abstract base class for document stores.

    All stores must implement:
      - index_document(): Write a document, honouring ``expected_version``
      - get_document() / multi_get(): Fetch documents by id
      - search(): Execute a search request body
      - refresh() / delete_index(): Minimal index upkeep used by tooling
      - health_check(): Report store health status

    ``expected_version`` is the version token the caller last saw. A store
    accepts the write only while the stored version still equals it, and the
    accepted write leaves the stored version at ``expected_version + 1``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique store name (e.g., 'elasticsearch', 'memory')."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the store (connections, pools, etc.)."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Close connections and release resources."""

    @abstractmethod
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
        """Create or replace a document.

        Args:
            index: Target index name.
            doc_type: Document type of the record (kept as record identity).
            document: JSON body to store.
            doc_id: Document id; the store assigns one when omitted.
            expected_version: Version precondition; ``None`` writes unconditionally.
            refresh: Make the write visible to search immediately.

        Returns:
            The id and the new version token.

        Raises:
            VersionConflictError: If ``expected_version`` is stale.
            RequestError: For any other rejected write.
        """

    @abstractmethod
    async def get_document(self, index: str, doc_id: str) -> DocumentHit:
        """Retrieve a single document by its id.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """

    @abstractmethod
    async def multi_get(self, index: str, doc_ids: list[str]) -> list[DocumentHit]:
        """Retrieve several documents; ids that do not exist are skipped."""

    @abstractmethod
    async def search(self, index: str, body: dict[str, Any]) -> SearchHits:
        """Execute a search request body (``query``, ``from``, ``size``, ``sort``)."""

    @abstractmethod
    async def refresh(self, index: str) -> None:
        """Make all writes to ``index`` visible to search."""

    @abstractmethod
    async def delete_index(self, index: str) -> None:
        """Drop ``index`` and its documents; a missing index is ignored."""

    @abstractmethod
    async def health_check(self) -> StoreHealth:
        """Check the health of the store."""


def conditional_write_params(
    index: str,
    doc_id: str | None,
    expected_version: int,
    current: DocumentHit | None,
) -> dict[str, Any]:
    """Write parameters that pin a write to the stored state read in ``current``.

    Elasticsearch and OpenSearch compare-and-swap on sequence numbers, not on
    versions.  The stored version is checked here against
    ``expected_version``; the returned ``if_seq_no`` / ``if_primary_term``
    (or ``op_type=create`` for a document that does not exist yet) make the
    engine reject the write with 409 if anything was written since the read.

    Args:
        index: Index holding the document.
        doc_id: Document id, None when the store assigns one.
        expected_version: Version token the caller holds.
        current: The stored document, or None if it does not exist.

    Raises:
        VersionConflictError: If the stored version differs from ``expected_version``.
    """
    stored_version = (current.version or 0) if current is not None else 0
    if stored_version != expected_version:
        raise VersionConflictError(
            f"Document '{doc_id}' in '{index}' is at version {stored_version}, not {expected_version}.",
            reason="version_conflict_engine_exception",
        )
    if current is None:
        return {"op_type": "create"}
    if current.seq_no is None or current.primary_term is None:
        raise RequestError(f"Store did not report a sequence number for '{doc_id}' in '{index}'.")
    return {"if_seq_no": current.seq_no, "if_primary_term": current.primary_term}
