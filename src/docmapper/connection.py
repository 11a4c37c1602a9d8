"""Connection — Process-wide default store used by persistent models.

Models without their own ``__store__`` read and write through the store set
here.  ``connect()`` builds it from ``Settings``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from docmapper.stores.base.exceptions import ConfigurationError
from docmapper.stores.base.registry import default_registry

if TYPE_CHECKING:
    from docmapper.config.settings import Settings
    from docmapper.stores.base.store import DocumentStore

logger = logging.getLogger(__name__)

# Global store instance (set by connect() or set_default_store())
_store: DocumentStore | None = None
_settings: Settings | None = None


def set_default_store(store: DocumentStore | None, settings: Settings | None = None) -> None:
    """Set the global store instance, and optionally the settings it came from."""
    global _store, _settings
    _store = store
    _settings = settings


def get_default_store() -> DocumentStore:
    """Get the global store instance.

    Raises:
        ConfigurationError: If no store has been configured.
    """
    if _store is None:
        raise ConfigurationError("No document store configured. Call docmapper.connect() first.")
    return _store


def get_settings() -> Settings:
    """Settings of the current connection, or defaults when none were given."""
    global _settings
    if _settings is None:
        from docmapper.config.settings import Settings

        _settings = Settings()
    return _settings


async def connect(settings: Settings | None = None) -> DocumentStore:
    """Create, initialize and install the default store.

    Args:
        settings: Settings to use; loaded from the environment if None.

    Returns:
        The initialized store.
    """
    if settings is None:
        from docmapper.config.settings import Settings

        settings = Settings()

    store = await default_registry().create_from_settings(settings.store)
    set_default_store(store, settings)
    logger.info("Default store set to %s", store.name)
    return store


async def disconnect() -> None:
    """Shut down and clear the default store."""
    global _store
    if _store is not None:
        await _store.shutdown()
        _store = None
