"""docmapper — Persistent models stored as search engine documents.

Quick start::

    from docmapper import PersistentModel, connect

    class Article(PersistentModel):
        title: str = ""
        tags: list[str] = Field(default_factory=list)

    await connect()
    article = await Article.create(title="One")
    results = await Article.search("one")
"""

from docmapper.connection import connect, disconnect, get_default_store, set_default_store
from docmapper.persistence.model import DocumentMeta, PersistentModel
from docmapper.persistence.results import Results
from docmapper.query.builder import QueryBuilder

__version__ = "0.1.0"

__all__ = [
    "DocumentMeta",
    "PersistentModel",
    "QueryBuilder",
    "Results",
    "__version__",
    "connect",
    "disconnect",
    "get_default_store",
    "set_default_store",
]
