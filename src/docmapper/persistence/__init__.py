"""Persistence layer — Typed records mapped onto search engine documents."""

from docmapper.persistence.model import DocumentMeta, PersistentModel
from docmapper.persistence.results import Results

__all__ = ["DocumentMeta", "PersistentModel", "Results"]
