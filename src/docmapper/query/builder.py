"""Query builder — Small fluent surface over the engine's query DSL.

Only the clauses the persistence layer needs are covered; anything else
can be passed to ``PersistentModel.search`` as a raw dict.

Example::

    results = await Article.search(lambda q: q.string("one"), sort="title")
    results = await Article.search(QueryBuilder().term("tags", "python"))
"""

from __future__ import annotations

from typing import Any


class QueryBuilder:
    """Collects one query clause and an optional sort order.

    Each clause method replaces the current clause and returns the builder,
    so the last call wins.
    """

    def __init__(self) -> None:
        self._query: dict[str, Any] = {"match_all": {}}
        self._sort: list[str] = []

    def string(self, text: str, fields: list[str] | None = None, default_operator: str = "OR") -> QueryBuilder:
        """Free-text query-string search."""
        clause: dict[str, Any] = {"query": text, "default_operator": default_operator.upper()}
        if fields:
            clause["fields"] = list(fields)
        self._query = {"query_string": clause}
        return self

    def all(self) -> QueryBuilder:
        self._query = {"match_all": {}}
        return self

    def match(self, field: str, text: str) -> QueryBuilder:
        self._query = {"match": {field: text}}
        return self

    def term(self, field: str, value: Any) -> QueryBuilder:
        self._query = {"term": {field: value}}
        return self

    def terms(self, field: str, values: list[Any]) -> QueryBuilder:
        self._query = {"terms": {field: list(values)}}
        return self

    def range(
        self,
        field: str,
        *,
        gt: Any = None,
        gte: Any = None,
        lt: Any = None,
        lte: Any = None,
    ) -> QueryBuilder:
        bounds = {op: value for op, value in (("gt", gt), ("gte", gte), ("lt", lt), ("lte", lte)) if value is not None}
        if not bounds:
            raise ValueError("range() needs at least one of gt, gte, lt, lte")
        self._query = {"range": {field: bounds}}
        return self

    def sort(self, *fields: str) -> QueryBuilder:
        """Sort by ``fields`` (``"title"`` or ``"title:desc"``)."""
        self._sort.extend(fields)
        return self

    @property
    def sort_fields(self) -> list[str]:
        return list(self._sort)

    def to_dict(self) -> dict[str, Any]:
        """Return the query clause."""
        return dict(self._query)

    def __repr__(self) -> str:
        return f"QueryBuilder(query={self._query!r}, sort={self._sort!r})"
