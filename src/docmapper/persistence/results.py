"""Search results — A page of typed records backed by raw store hits."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Generic, TypeVar, overload

from docmapper.models.pagination import Pagination

if TYPE_CHECKING:
    from docmapper.persistence.model import PersistentModel
    from docmapper.stores.base.store import SearchHits

ModelT = TypeVar("ModelT", bound="PersistentModel")


class Results(Sequence[ModelT], Generic[ModelT]):
    """One page of records returned by ``PersistentModel.search``.

    Hits are cast into ``model_class`` instances on first access and cached.
    ``len()`` is the size of the current page; ``total`` counts every match.
    Pagination attributes are available directly on the results::

        results = await Article.search("one", page=1, per_page=5)
        results.total_pages, results.next_page
        results.limit_value, results.offset_value
    """

    def __init__(self, model_class: type[ModelT], hits: SearchHits, pagination: Pagination) -> None:
        self.model_class = model_class
        self.pagination = pagination
        self._hits = hits
        self._records: list[ModelT] | None = None

    def _materialize(self) -> list[ModelT]:
        if self._records is None:
            self._records = [self.model_class.from_hit(hit) for hit in self._hits.hits]
        return self._records

    @overload
    def __getitem__(self, index: int) -> ModelT: ...

    @overload
    def __getitem__(self, index: slice) -> list[ModelT]: ...

    def __getitem__(self, index: int | slice) -> ModelT | list[ModelT]:
        return self._materialize()[index]

    def __len__(self) -> int:
        return len(self._hits.hits)

    def __iter__(self) -> Iterator[ModelT]:
        return iter(self._materialize())

    def __bool__(self) -> bool:
        return bool(self._hits.hits)

    def __repr__(self) -> str:
        return (
            f"<Results {self.model_class.__name__} size={len(self)} total={self.total} "
            f"page={self.current_page}/{self.total_pages}>"
        )

    @property
    def first(self) -> ModelT | None:
        records = self._materialize()
        return records[0] if records else None

    @property
    def total(self) -> int:
        return self._hits.total

    @property
    def took_ms(self) -> int:
        return self._hits.took_ms

    # Pagination, as page numbers

    @property
    def total_pages(self) -> int:
        return self.pagination.total_pages

    @property
    def current_page(self) -> int:
        return self.pagination.current_page

    @property
    def previous_page(self) -> int | None:
        return self.pagination.previous_page

    @property
    def next_page(self) -> int | None:
        return self.pagination.next_page

    # Pagination, as offset and limit

    @property
    def limit_value(self) -> int:
        return self.pagination.limit_value

    @property
    def total_count(self) -> int:
        return self.pagination.total_count

    @property
    def num_pages(self) -> int:
        return self.pagination.num_pages

    @property
    def offset_value(self) -> int:
        return self.pagination.offset_value
