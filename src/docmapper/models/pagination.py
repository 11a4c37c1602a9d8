"""Pagination model — One page window described under two naming conventions.

Callers coming from different pagination helpers expect different names for
the same numbers.  ``Pagination`` computes everything from ``page``,
``per_page`` and ``total`` and exposes both sets:

- ``total_pages`` / ``current_page`` / ``previous_page`` / ``next_page``
- ``limit_value`` / ``total_count`` / ``num_pages`` / ``offset_value``
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field


class Pagination(BaseModel):
    """Immutable description of one page of a result set."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1, description="1-based page number")
    per_page: int = Field(default=10, ge=1, description="Page size")
    total: int = Field(default=0, ge=0, description="Total matching documents across all pages")

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.per_page)

    @property
    def current_page(self) -> int:
        return self.page

    @property
    def previous_page(self) -> int | None:
        return self.page - 1 if self.page > 1 else None

    @property
    def next_page(self) -> int | None:
        return self.page + 1 if self.page < self.total_pages else None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    # Offset/limit naming

    @property
    def limit_value(self) -> int:
        return self.per_page

    @property
    def total_count(self) -> int:
        return self.total

    @property
    def num_pages(self) -> int:
        return self.total_pages

    @property
    def offset_value(self) -> int:
        return self.offset

    @property
    def first_page(self) -> bool:
        return self.page == 1

    @property
    def last_page(self) -> bool:
        return self.page >= self.total_pages
