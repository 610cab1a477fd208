"""Key-value persistence providers for the local word store.

The ``WordStore`` treats persistence as a flat key -> string mapping,
which is all browser-local storage offers and all the store needs.

Key design choices:

* **Atomic writes** -- ``JsonFileKeyValueStore.set()`` writes to a temp
  file then calls ``os.replace()`` so readers never see partial data.
* **One file per key** -- the word collection and the sync cursor can be
  rewritten independently.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class KeyValueStore(Protocol):
    """Protocol that all persistence providers must satisfy."""

    def get(self, key: str) -> str | None:
        """Return the stored value for *key*, or ``None`` if absent."""
        ...  # pragma: no cover

    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...  # pragma: no cover

    def delete(self, key: str) -> None:
        """Remove *key*.  No-op if not present."""
        ...  # pragma: no cover


class MemoryKeyValueStore:
    """In-process provider for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """Store each key as a file under *directory*.

    Args:
        directory: Directory holding the value files.  Created on first
            write.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        """Persist *value* atomically."""
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._directory), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_path, self._path(key))
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass

    def _path(self, key: str) -> Path:
        return self._directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"
