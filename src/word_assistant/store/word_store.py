"""Authoritative local word collection.

``WordStore`` owns the device's word records, the sync cursor and the
bearer credential.  Every mutation persists the full collection through
the ``KeyValueStore`` before returning, so a read that follows a write
always observes it.

Records are keyed by normalised word; ``get_all()`` returns a snapshot
list, so callers iterating over it are never affected by a later
``replace_all()``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from pydantic import TypeAdapter, ValidationError

from ..models import WordRecord, as_utc, normalize_word
from .persistence import KeyValueStore

logger = logging.getLogger(__name__)

WORDS_KEY = "word-assistant-words"
LAST_SYNCED_KEY = "word-assistant-last-synced"
TOKEN_KEY = "word-assistant-token"

_WORD_LIST = TypeAdapter(list[WordRecord])

Listener = Callable[[list[WordRecord]], None]


class WordStore:
    """Local collection of ``WordRecord`` backed by a key-value store.

    Args:
        backend: Persistence provider.  The collection, cursor and
            credential are loaded from it at construction time.
    """

    def __init__(self, backend: KeyValueStore) -> None:
        self._backend = backend
        self._words: dict[str, WordRecord] = {}
        self._listeners: list[Listener] = []
        self._last_synced_at: datetime | None = None
        self._token: str | None = None
        self._load()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self) -> list[WordRecord]:
        """Return a snapshot of every record."""
        return list(self._words.values())

    def find_by_word(self, word: str) -> WordRecord | None:
        """Return the record for *word* (case-insensitive), if any."""
        return self._words.get(normalize_word(word))

    def find_by_id(self, word_id: str) -> WordRecord | None:
        """Return the record whose ``id`` is *word_id*, if any."""
        for record in self._words.values():
            if record.id == word_id:
                return record
        return None

    def __len__(self) -> int:
        return len(self._words)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, record: WordRecord) -> None:
        """Insert *record*, or replace the record for the same word."""
        self._words[record.word] = record
        self._commit()

    def replace_all(self, records: Iterable[WordRecord]) -> None:
        """Replace the whole collection with *records*.

        Duplicate words collapse to the last occurrence.
        """
        self._words = {r.word: r for r in records}
        self._commit()

    # ------------------------------------------------------------------
    # Sync cursor
    # ------------------------------------------------------------------

    @property
    def last_synced_at(self) -> datetime | None:
        return self._last_synced_at

    def set_last_synced_at(self, value: datetime | None) -> None:
        if value is None:
            self._last_synced_at = None
            self._backend.delete(LAST_SYNCED_KEY)
            return
        self._last_synced_at = as_utc(value)
        self._backend.set(
            LAST_SYNCED_KEY, json.dumps(self._last_synced_at.isoformat())
        )

    # ------------------------------------------------------------------
    # Credential
    # ------------------------------------------------------------------

    @property
    def token(self) -> str | None:
        return self._token

    def set_token(self, value: str | None) -> None:
        self._token = value or None
        if self._token is None:
            self._backend.delete(TOKEN_KEY)
        else:
            self._backend.set(TOKEN_KEY, json.dumps(self._token))

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with the new snapshot after every mutation.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _commit(self) -> None:
        snapshot = self.get_all()
        payload = [r.to_wire() for r in snapshot]
        self._backend.set(WORDS_KEY, json.dumps(payload))
        for listener in list(self._listeners):
            listener(snapshot)

    def _load(self) -> None:
        raw_words = self._read_json(WORDS_KEY)
        if raw_words is not None:
            try:
                records = _WORD_LIST.validate_python(raw_words)
            except ValidationError as exc:
                logger.warning(
                    "Discarding unreadable word collection: %s", exc
                )
                records = []
            self._words = {r.word: r for r in records}

        raw_cursor = self._read_json(LAST_SYNCED_KEY)
        if isinstance(raw_cursor, str):
            try:
                self._last_synced_at = as_utc(
                    datetime.fromisoformat(raw_cursor)
                )
            except ValueError:
                logger.warning("Ignoring invalid sync cursor %r", raw_cursor)

        raw_token = self._read_json(TOKEN_KEY)
        if isinstance(raw_token, str) and raw_token:
            self._token = raw_token

    def _read_json(self, key: str):
        raw = self._backend.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt value stored under %s", key)
            return None
