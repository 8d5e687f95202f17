"""In-memory key-value store.

Not for production use: all data is lost when the process exits.
"""


class MemoryKeyValueStore:
    """Dict-based key-value store for tests and cache-less sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def keys(self) -> list[str]:
        return list(self._values)
