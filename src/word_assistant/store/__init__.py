"""Local persistence for the device's word collection.

- ``persistence`` -- ``KeyValueStore`` protocol with in-memory and
  JSON-file providers.
- ``word_store``  -- ``WordStore``: the authoritative local collection,
  sync cursor and credential slot.
"""

from .persistence import (
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
)
from .word_store import WordStore

__all__ = [
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "WordStore",
]
