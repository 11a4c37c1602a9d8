"""Base store interface — Abstract classes for document backends."""

from docmapper.stores.base.registry import StoreRegistry
from docmapper.stores.base.store import DocumentStore, conditional_write_params

__all__ = ["DocumentStore", "StoreRegistry", "conditional_write_params"]
