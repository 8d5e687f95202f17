"""Factory function for creating document cache instances based on settings."""

from pathlib import Path

from chaindocs_core.cache.protocol import KeyValueStore
from chaindocs_core.cache.store import DocumentCacheStore
from chaindocs_core.settings import Settings


def create_key_value_store(settings: Settings) -> KeyValueStore:
    """Create a KeyValueStore based on settings.

    Selects LocalKeyValueStore when cache_dir is configured,
    otherwise falls back to MemoryKeyValueStore.
    """
    if settings.cache_dir:
        from chaindocs_core.cache.local import LocalKeyValueStore

        return LocalKeyValueStore(Path(settings.cache_dir))

    from chaindocs_core.cache.memory import MemoryKeyValueStore

    return MemoryKeyValueStore()


def create_document_cache(settings: Settings) -> DocumentCacheStore:
    """Create a DocumentCacheStore over the configured backend."""
    return DocumentCacheStore(create_key_value_store(settings), key_prefix=settings.cache_key_prefix)
