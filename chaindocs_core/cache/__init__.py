"""Document cache: key-value backends and the typed document store."""

from .factory import create_document_cache, create_key_value_store
from .local import LocalKeyValueStore
from .memory import MemoryKeyValueStore
from .protocol import KeyValueStore
from .store import DocumentCacheStore

__all__ = [
    "DocumentCacheStore",
    "KeyValueStore",
    "LocalKeyValueStore",
    "MemoryKeyValueStore",
    "create_document_cache",
    "create_key_value_store",
]
