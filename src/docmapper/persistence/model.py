"""Persistent model — Typed records stored as documents in a search index.

Subclass ``PersistentModel`` and declare fields the pydantic way.  Field
types drive casting in both directions: raw values read from the store (or
passed to the constructor) are validated into the declared types, and
``to_document()`` serializes them back to JSON.

Example::

    class Article(PersistentModel):
        title: str = ""
        count: int = 0
        created_at: datetime | None = None
        tags: list[str] = Field(default_factory=list)

    article = await Article.create(title="One", count="1")
    article.meta.version            # 1
    article.title = "Uno"
    await article.save()            # True, version 2

Every record carries a ``DocumentMeta`` with its index, document type and
version token.  ``save()`` sends the held version as a precondition, so a
record loaded before someone else's write cannot overwrite it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, ClassVar, Self, get_args, overload

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationInfo, field_validator

from docmapper.connection import get_default_store, get_settings
from docmapper.models.pagination import Pagination
from docmapper.models.search import SearchOptions
from docmapper.persistence.naming import document_type_for, index_name_for
from docmapper.persistence.results import Results
from docmapper.query.builder import QueryBuilder
from docmapper.stores.base.exceptions import ConnectionError, RequestError, VersionConflictError
from docmapper.stores.base.store import DocumentHit, DocumentStore

logger = logging.getLogger(__name__)

QueryLike = str | dict[str, Any] | QueryBuilder | Callable[[QueryBuilder], Any] | None

# e.g. "1970-01-01 00:00:00 +0000"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"


class DocumentMeta(BaseModel):
    """Store-side identity of a record.

    Frozen: a successful write replaces the whole value rather than bumping
    the version in place.
    """

    model_config = ConfigDict(frozen=True)

    index: str | None = Field(default=None, description="Index holding the document")
    doc_type: str | None = Field(default=None, description="Document type of the record")
    version: int | None = Field(default=None, description="Version token from the last read or write")
    score: float | None = Field(default=None, description="Relevance score when loaded from a search")


class PersistentModel(BaseModel):
    """Base class for records persisted in a document store.

    Class attributes:
        __index_name__: Overrides the derived (pluralized) index name.
        __document_type__: Overrides the derived (singular) document type.
        __namespace__: Dotted namespace prefixed to both derived names.
        __store__: Store for this model; the default store when None.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    __index_name__: ClassVar[str | None] = None
    __document_type__: ClassVar[str | None] = None
    __namespace__: ClassVar[str | None] = None
    __store__: ClassVar[DocumentStore | None] = None

    id: str | None = Field(default=None, description="Document id")

    _meta: DocumentMeta = PrivateAttr(default_factory=DocumentMeta)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str | None:
        """Ids are strings in the store; accept numbers for convenience."""
        return None if v is None else str(v)

    @field_validator("*", mode="before")
    @classmethod
    def _parse_timestamp_strings(cls, v: Any, info: ValidationInfo) -> Any:
        """Accept ``YYYY-MM-DD HH:MM:SS +HHMM`` strings for datetime fields."""
        if not isinstance(v, str) or info.field_name is None:
            return v
        annotation = cls.model_fields[info.field_name].annotation
        if annotation is not datetime and datetime not in get_args(annotation):
            return v
        try:
            return datetime.strptime(v, TIMESTAMP_FORMAT)
        except ValueError:
            return v

    # ── Identity ─────────────────────────────────────────────────────────

    @classmethod
    def index_name(cls) -> str:
        return cls.__index_name__ or index_name_for(cls)

    @classmethod
    def document_type(cls) -> str:
        return cls.__document_type__ or document_type_for(cls)

    @classmethod
    def get_store(cls) -> DocumentStore:
        return cls.__store__ or get_default_store()

    @property
    def meta(self) -> DocumentMeta:
        return self._meta

    @property
    def persisted(self) -> bool:
        """True once the record has been written to or loaded from the store."""
        return self._meta.version is not None

    @property
    def new_record(self) -> bool:
        return not self.persisted

    # ── Mapping ──────────────────────────────────────────────────────────

    def to_document(self) -> dict[str, Any]:
        """JSON body stored for this record (the id travels separately)."""
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_hit(cls, hit: DocumentHit) -> Self:
        """Cast a stored document into a record of this class."""
        record = cls.model_validate({**hit.source, "id": hit.id})
        record._meta = DocumentMeta(
            index=cls.index_name(),
            doc_type=cls.document_type(),
            version=hit.version,
            score=hit.score,
        )
        return record

    # ── Writes ───────────────────────────────────────────────────────────

    @classmethod
    async def create(cls, **attributes: Any) -> Self:
        """Build a record from ``attributes`` and write it.

        Raises:
            RequestError: If the store rejects the write.
        """
        record = cls(**attributes)
        return await record.save_or_raise()

    async def save_or_raise(self) -> Self:
        """Write the record, guarded by the held version token.

        Returns:
            The record, now holding the new id and version.

        Raises:
            VersionConflictError: If the stored version moved on since this
                record was read or last saved.
            RequestError: For any other rejected write.
        """
        cls = type(self)
        written = await cls.get_store().index_document(
            cls.index_name(),
            cls.document_type(),
            self.to_document(),
            doc_id=self.id,
            expected_version=self._meta.version,
            refresh=get_settings().store.refresh_on_write,
        )
        self.id = written.id
        self._meta = DocumentMeta(
            index=cls.index_name(),
            doc_type=cls.document_type(),
            version=written.version,
            score=self._meta.score,
        )
        logger.debug("Saved %s '%s' at version %d", cls.__name__, written.id, written.version)
        return self

    async def save(self) -> bool:
        """Write the record; report failure instead of raising.

        Returns:
            True if the store accepted the write, False on a version
            conflict or any other store failure.  The record is left
            unchanged on failure.
        """
        try:
            await self.save_or_raise()
        except VersionConflictError as e:
            logger.warning(
                "Version conflict saving %s '%s' at version %s: %s",
                type(self).__name__,
                self.id,
                self._meta.version,
                e,
            )
            return False
        except (RequestError, ConnectionError):
            logger.warning("Failed to save %s '%s'", type(self).__name__, self.id, exc_info=True)
            return False
        return True

    async def update_attributes(self, **attributes: Any) -> bool:
        """Assign ``attributes`` (with casting) and ``save()``.

        All values are validated before any is assigned, so a
        ``ValidationError`` leaves the record untouched.
        """
        fields = type(self).model_fields
        unknown = sorted(set(attributes) - set(fields))
        if unknown:
            raise AttributeError(f"{type(self).__name__} has no attributes {unknown}")
        validated = type(self).model_validate({**dict(self), **attributes})
        for name in attributes:
            setattr(self, name, getattr(validated, name))
        return await self.save()

    async def update_attribute(self, name: str, value: Any) -> bool:
        return await self.update_attributes(**{name: value})

    # ── Reads ────────────────────────────────────────────────────────────

    @overload
    @classmethod
    async def find(cls, ids: str | int) -> Self: ...

    @overload
    @classmethod
    async def find(cls, ids: list[str | int] | tuple[str | int, ...]) -> list[Self]: ...

    @classmethod
    async def find(cls, ids: Any) -> Self | list[Self]:
        """Load records by id.

        A single id returns one record or raises ``DocumentNotFoundError``.
        A list of ids returns the records that exist; missing ids are
        dropped and the order is whatever the store returns.
        """
        store = cls.get_store()
        if isinstance(ids, list | tuple | set):
            hits = await store.multi_get(cls.index_name(), [str(i) for i in ids])
            logger.debug("Found %d of %d %s records", len(hits), len(ids), cls.__name__)
            return [cls.from_hit(hit) for hit in hits]

        hit = await store.get_document(cls.index_name(), str(ids))
        return cls.from_hit(hit)

    @classmethod
    async def search(
        cls,
        query: QueryLike = None,
        *,
        page: int = 1,
        per_page: int | None = None,
        sort: str | list[str] | None = None,
    ) -> Results[Self]:
        """Search this model's index.

        Args:
            query: A query-string text, a ``QueryBuilder``, a callable that
                fills in a fresh ``QueryBuilder``, a raw query clause dict,
                or None to match everything.
            page: 1-based page number.
            per_page: Page size; the configured default when None.
            sort: Field names, ``"field:desc"`` for descending order.

        Returns:
            One page of records of this class, with pagination attributes.
        """
        clause, builder_sort = cls._query_clause(query)

        defaults = get_settings().pagination
        per_page = per_page or defaults.default_per_page
        if per_page > defaults.max_per_page:
            logger.debug("Clamping per_page %d to %d", per_page, defaults.max_per_page)
            per_page = defaults.max_per_page

        options = SearchOptions(page=page, per_page=per_page, sort=sort)
        if builder_sort:
            options = options.model_copy(update={"sort": [*builder_sort, *options.sort]})

        hits = await cls.get_store().search(cls.index_name(), options.to_body(clause))
        logger.debug("Search on %s matched %d documents", cls.index_name(), hits.total)
        return Results(cls, hits, Pagination(page=options.page, per_page=options.per_page, total=hits.total))

    @classmethod
    async def all(cls, *, page: int = 1, per_page: int | None = None) -> Results[Self]:
        return await cls.search(None, page=page, per_page=per_page)

    @classmethod
    async def first(cls) -> Self | None:
        return (await cls.search(None, per_page=1)).first

    @staticmethod
    def _query_clause(query: QueryLike) -> tuple[dict[str, Any], list[str]]:
        if query is None or (isinstance(query, str) and not query.strip()):
            return QueryBuilder().all().to_dict(), []
        if isinstance(query, str):
            return QueryBuilder().string(query).to_dict(), []
        if isinstance(query, QueryBuilder):
            return query.to_dict(), query.sort_fields
        if isinstance(query, dict):
            return query, []
        if callable(query):
            builder = QueryBuilder()
            query(builder)
            return builder.to_dict(), builder.sort_fields
        raise TypeError(f"Unsupported query type: {type(query).__name__}")

    # ── Index upkeep ─────────────────────────────────────────────────────

    @classmethod
    async def refresh_index(cls) -> None:
        await cls.get_store().refresh(cls.index_name())

    @classmethod
    async def delete_index(cls) -> None:
        await cls.get_store().delete_index(cls.index_name())
