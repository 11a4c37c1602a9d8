"""Store Registry — Manages registration and creation of document stores.

The registry maps backend names to store classes and builds initialized
instances from ``StoreSettings``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from docmapper.stores.base.store import DocumentStore

if TYPE_CHECKING:
    from docmapper.config.settings import StoreSettings

logger = logging.getLogger(__name__)


class StoreNotFoundError(Exception):
    """Raised when a requested store backend is not registered."""


class StoreRegistry:
    """Registry of store classes by backend name.

    Example:
        >>> registry = StoreRegistry()
        >>> registry.register("memory", MemoryStore)
        >>> store = await registry.create("memory")
    """

    def __init__(self) -> None:
        self._classes: dict[str, type[DocumentStore]] = {}

    def register(self, name: str, store_class: type[DocumentStore]) -> None:
        """Register a store class.

        Args:
            name: Unique backend name.
            store_class: The store class to register.
        """
        if name in self._classes:
            logger.warning("Overwriting existing store registration: %s", name)
        self._classes[name] = store_class
        logger.debug("Registered store: %s", name)

    async def create(self, name: str, **kwargs: Any) -> DocumentStore:
        """Create and initialize a store instance.

        Args:
            name: The registered backend name.
            **kwargs: Parameters passed to the store constructor.

        Returns:
            The initialized store.

        Raises:
            StoreNotFoundError: If no store is registered under this name.
        """
        if name not in self._classes:
            raise StoreNotFoundError(
                f"No store registered with name '{name}'. "
                f"Available stores: {list(self._classes.keys())}"
            )

        store = self._classes[name](**kwargs)
        await store.initialize()
        logger.info("Initialized store: %s", name)
        return store

    async def create_from_settings(self, settings: StoreSettings) -> DocumentStore:
        """Build the store described by ``settings``."""
        if settings.backend == "memory":
            return await self.create("memory", **settings.extra)

        return await self.create(
            settings.backend,
            hosts=settings.hosts,
            username=settings.username,
            password=settings.password,
            api_key=settings.api_key,
            verify_certs=settings.verify_certs,
            timeout=settings.timeout,
            **settings.extra,
        )

    @property
    def registered_stores(self) -> list[str]:
        """List all registered backend names."""
        return list(self._classes.keys())


def default_registry() -> StoreRegistry:
    """Return a registry with the built-in stores registered."""
    from docmapper.stores.elasticsearch.store import ElasticsearchStore
    from docmapper.stores.memory.store import MemoryStore
    from docmapper.stores.opensearch.store import OpenSearchStore

    registry = StoreRegistry()
    registry.register("elasticsearch", ElasticsearchStore)
    registry.register("opensearch", OpenSearchStore)
    registry.register("memory", MemoryStore)
    return registry
