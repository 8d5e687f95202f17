"""Key-value blob store protocol backing the document cache."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """String-keyed blob store.

    Implementations: LocalKeyValueStore (filesystem), MemoryKeyValueStore (testing).
    """

    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key was never set."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...
