"""Structured query construction."""

from docmapper.query.builder import QueryBuilder

__all__ = ["QueryBuilder"]
