"""Local filesystem key-value store.

Layout:
    {base_path}/{key}.txt    <- one value per key

Writes go to a temporary sibling first and are moved into place with
os.replace, so a crash never leaves a half-written value behind.
"""

import hashlib
import os
import re
import tempfile
import threading
from pathlib import Path

from chaindocs_core.logging import get_chaindocs_logger

logger = get_chaindocs_logger(__name__)

_VALID_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalKeyValueStore:
    """Filesystem-backed key-value store for the document cache."""

    def __init__(self, base_path: Path | None = None) -> None:
        self._base_path = base_path or Path.cwd() / ".chaindocs"
        self._lock = threading.Lock()

    @property
    def base_path(self) -> Path:
        """Directory holding one file per key."""
        return self._base_path

    def _path(self, key: str) -> Path:
        if not key:
            raise ValueError("cache key must not be empty")
        if _VALID_KEY.match(key) and not key.startswith("."):
            return self._base_path / f"{key}.txt"
        # Keys with path-unsafe characters are stored under their digest
        return self._base_path / f"_{hashlib.sha256(key.encode('utf-8')).hexdigest()}.txt"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            self._base_path.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._base_path, prefix=".", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        logger.debug(f"Wrote cache key {key} ({len(value)} chars)")
