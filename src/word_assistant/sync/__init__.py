"""Offline-first synchronisation of the local word collection.

Architecture
------------
Local and remote copies of a word are reconciled **field by field**
(max / richer / non-empty / earliest wins), never by whole-record
last-write-wins.  Because every rule is commutative and idempotent, a
sync round can be retried, replayed or run out of order without losing
a locally earned stage or review count, and without a transaction log.

Modules:

- ``merge``   -- ``merge_words`` / ``merge_into_local``: the field rules.
- ``engine``  -- ``SyncEngine``: debounced, offline-aware client rounds.
- ``service`` -- ``SyncService``: the server half of ``POST /sync``.

Usage example
-------------
::

    from pathlib import Path
    from word_assistant.config import load_config
    from word_assistant.core.client import SyncApiClient
    from word_assistant.store import JsonFileKeyValueStore, WordStore
    from word_assistant.sync import SyncEngine

    config = load_config()
    store = WordStore(JsonFileKeyValueStore(Path(config.data_dir)))
    engine = SyncEngine(store, SyncApiClient(config))

    engine.start()              # periodic loop + initial round
    engine.trigger_sync()       # after each local edit
    await engine.full_sync()    # "sync now"
"""

from .engine import SyncEngine
from .merge import merge_into_local, merge_words
from .service import InMemoryWordRepository, SyncService, WordRepository

__all__ = [
    "InMemoryWordRepository",
    "SyncEngine",
    "SyncService",
    "WordRepository",
    "merge_into_local",
    "merge_words",
]
