"""In-memory store — Process-local document storage with engine-like versioning.

Useful for tests and local development.  Writes follow the same rules as
the search engine stores: every accepted write bumps the version by one and
a write carrying a stale ``expected_version`` is rejected without touching
the stored document.

Search understands the query clauses produced by ``QueryBuilder``:
``match_all``, ``query_string``, ``match``, ``term``, ``terms`` and ``range``,
plus ``sort``, ``from`` and ``size``.
"""

from __future__ import annotations

import copy
import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from docmapper.stores.base.exceptions import DocumentNotFoundError, QueryError, VersionConflictError
from docmapper.stores.base.store import DocumentHit, DocumentStore, SearchHits, StoreHealth, WriteResult

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


@dataclass
class _StoredDocument:
    version: int
    source: dict[str, Any]
    seq: int = 0


@dataclass
class _Index:
    documents: dict[str, _StoredDocument] = field(default_factory=dict)
    next_seq: int = 0


class MemoryStore(DocumentStore):
    """Document store that keeps everything in a dict.

    There is no await between reading and writing a document, so each
    operation is atomic within one event loop.

    Args:
        **kwargs: Accepted and ignored, for parity with network stores.
    """

    def __init__(self, **kwargs: Any) -> None:
        self._indices: dict[str, _Index] = {}
        self._initialized = False

    @property
    def name(self) -> str:
        return "memory"

    async def initialize(self) -> None:
        self._initialized = True
        logger.info("Using in-memory document store")

    async def shutdown(self) -> None:
        self._initialized = False

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
        target = self._indices.setdefault(index, _Index())
        doc_id = doc_id or uuid.uuid4().hex
        current = target.documents.get(doc_id)
        current_version = current.version if current else 0

        if expected_version is not None and expected_version != current_version:
            raise VersionConflictError(
                f"[{doc_id}]: version conflict, current version [{current_version}] "
                f"is different than the one provided [{expected_version}]",
                reason="version_conflict_engine_exception",
            )

        if current:
            current.version += 1
            current.source = copy.deepcopy(document)
            result = "updated"
        else:
            target.documents[doc_id] = _StoredDocument(version=1, source=copy.deepcopy(document), seq=target.next_seq)
            target.next_seq += 1
            result = "created"

        version = target.documents[doc_id].version
        logger.debug("Indexed %s/%s/%s at version %s", index, doc_type, doc_id, version)
        return WriteResult(id=doc_id, version=version, result=result)

    async def get_document(self, index: str, doc_id: str) -> DocumentHit:
        stored = self._indices.get(index, _Index()).documents.get(doc_id)
        if stored is None:
            raise DocumentNotFoundError(f"Document '{doc_id}' not found in '{index}'.")
        return self._to_hit(index, doc_id, stored)

    async def multi_get(self, index: str, doc_ids: list[str]) -> list[DocumentHit]:
        documents = self._indices.get(index, _Index()).documents
        return [self._to_hit(index, doc_id, documents[doc_id]) for doc_id in doc_ids if doc_id in documents]

    # ── Search ───────────────────────────────────────────────────────────

    async def search(self, index: str, body: dict[str, Any]) -> SearchHits:
        start = time.monotonic()
        documents = self._indices.get(index, _Index()).documents
        query = body.get("query") or {"match_all": {}}

        matched = [
            (doc_id, stored)
            for doc_id, stored in sorted(documents.items(), key=lambda item: item[1].seq)
            if _matches(query, stored.source)
        ]
        for key, descending in reversed(_sort_keys(body.get("sort"))):
            matched.sort(key=lambda item, k=key: _sort_value(item[1].source.get(k)), reverse=descending)

        offset = int(body.get("from", 0))
        size = int(body.get("size", 10))
        window = matched[offset : offset + size]

        return SearchHits(
            total=len(matched),
            hits=[self._to_hit(index, doc_id, stored, score=1.0) for doc_id, stored in window],
            took_ms=int((time.monotonic() - start) * 1000),
        )

    # ── Index upkeep ─────────────────────────────────────────────────────

    async def refresh(self, index: str) -> None:
        """Writes are visible immediately; nothing to do."""

    async def delete_index(self, index: str) -> None:
        self._indices.pop(index, None)

    async def health_check(self) -> StoreHealth:
        if not self._initialized:
            return StoreHealth(status="unhealthy", message="Store not initialized")
        return StoreHealth(
            status="healthy",
            last_check=datetime.now(UTC).isoformat(),
            message=f"Indices: {len(self._indices)}",
        )

    @staticmethod
    def _to_hit(index: str, doc_id: str, stored: _StoredDocument, score: float | None = None) -> DocumentHit:
        return DocumentHit(
            index=index,
            id=doc_id,
            version=stored.version,
            score=score,
            source=copy.deepcopy(stored.source),
        )


# ── Query evaluation ─────────────────────────────────────────────────────────


def _tokens(value: Any) -> set[str]:
    if isinstance(value, list):
        return set().union(*(_tokens(v) for v in value)) if value else set()
    if value is None or isinstance(value, dict):
        return set()
    return {t.lower() for t in _TOKEN_RE.findall(str(value))}


def _text_match(text: str, values: list[Any], operator: str) -> bool:
    wanted = _tokens(text)
    if not wanted:
        return False
    present: set[str] = set()
    for value in values:
        present |= _tokens(value)
    if operator.upper() == "AND":
        return wanted <= present
    return bool(wanted & present)


def _field_values(source: dict[str, Any], fields: list[str] | None) -> list[Any]:
    if not fields:
        return list(source.values())
    return [source.get(f.split("^", 1)[0]) for f in fields]


def _equals(stored: Any, value: Any) -> bool:
    if isinstance(stored, list):
        return any(_equals(item, value) for item in stored)
    return stored == value or (stored is not None and str(stored) == str(value))


def _in_range(stored: Any, bounds: dict[str, Any]) -> bool:
    if stored is None:
        return False
    checks = {
        "gt": lambda a, b: a > b,
        "gte": lambda a, b: a >= b,
        "lt": lambda a, b: a < b,
        "lte": lambda a, b: a <= b,
    }
    try:
        return all(checks[op](stored, bound) for op, bound in bounds.items() if op in checks)
    except TypeError:
        return False


def _matches(query: dict[str, Any], source: dict[str, Any]) -> bool:
    if len(query) != 1:
        raise QueryError(f"Expected exactly one query clause, got {sorted(query)}")
    (kind, clause), = query.items()

    if kind == "match_all":
        return True
    if kind == "query_string":
        return _text_match(
            clause.get("query", ""),
            _field_values(source, clause.get("fields") or ([clause["default_field"]] if "default_field" in clause else None)),
            clause.get("default_operator", "OR"),
        )
    if kind == "match":
        (name, text), = clause.items()
        if isinstance(text, dict):
            return _text_match(text.get("query", ""), [source.get(name)], text.get("operator", "OR"))
        return _text_match(text, [source.get(name)], "OR")
    if kind == "term":
        (name, value), = clause.items()
        if isinstance(value, dict):
            value = value.get("value")
        return _equals(source.get(name), value)
    if kind == "terms":
        (name, values), = clause.items()
        return any(_equals(source.get(name), v) for v in values)
    if kind == "range":
        (name, bounds), = clause.items()
        return _in_range(source.get(name), bounds)

    raise QueryError(f"Unsupported query clause for the memory store: '{kind}'")


def _sort_keys(sort: Any) -> list[tuple[str, bool]]:
    """Normalize ``sort`` into ``[(field, descending), ...]``."""
    if not sort:
        return []
    if not isinstance(sort, list):
        sort = [sort]
    keys: list[tuple[str, bool]] = []
    for entry in sort:
        if isinstance(entry, str):
            keys.append((entry, False))
            continue
        for name, order in entry.items():
            if isinstance(order, dict):
                order = order.get("order", "asc")
            keys.append((name, str(order).lower() == "desc"))
    return keys


def _sort_value(value: Any) -> tuple[int, Any]:
    # Missing values sort last; mixed types compare by their string form
    if value is None:
        return (2, "")
    if isinstance(value, int | float) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))
