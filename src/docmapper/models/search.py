"""Search request models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class SearchOptions(BaseModel):
    """Options controlling one search against a model's index."""

    page: int = Field(default=1, ge=1, description="1-based page number")
    per_page: int = Field(default=10, ge=1, description="Number of records per page")
    sort: list[str] = Field(
        default_factory=list,
        description="Sort fields, e.g. ['title', 'created_at:desc']",
    )

    @field_validator("sort", mode="before")
    @classmethod
    def _parse_sort(cls, v: Any) -> list[str]:
        """Accept a single field name or a comma-separated string."""
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return list(v)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def sort_clause(self) -> list[dict[str, Any]]:
        """Render ``sort`` as the engine's sort clause."""
        clause: list[dict[str, Any]] = []
        for entry in self.sort:
            name, _, order = entry.partition(":")
            clause.append({name: {"order": (order or "asc").lower()}})
        return clause

    def to_body(self, query: dict[str, Any]) -> dict[str, Any]:
        """Build the search request body for ``query``."""
        body: dict[str, Any] = {
            "query": query,
            "from": self.offset,
            "size": self.per_page,
        }
        if self.sort:
            body["sort"] = self.sort_clause()
        return body
