"""Shared test fixtures and configuration."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterator

import pytest

from docmapper.config.settings import Settings
from docmapper.connection import set_default_store
from docmapper.stores.memory.store import MemoryStore


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
        store={"backend": "memory"},
    )


@pytest.fixture
async def memory_store(settings: Settings) -> AsyncIterator[MemoryStore]:
    """An initialized in-memory store installed as the default store."""
    store = MemoryStore()
    await store.initialize()
    set_default_store(store, settings)
    yield store
    await store.shutdown()
    set_default_store(None)


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """Undo handler and level changes made by ``setup_logging``."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
