"""Server side of the sync contract.

``SyncService`` implements what ``POST /sync`` and ``GET /words`` do on
the remote word store, independent of any HTTP framework:

1. Each incoming client word is looked up by (user, normalised word).
   Absent -> stored as sent.  Present -> merged with the stored version,
   keeping the stored ``id`` and recomputing ``next_review_date`` from
   the merged stage.  Stored words get ``updated_at`` set to the request
   time, so devices whose cursor is later than an offline edit still
   receive it.  A client word that adds nothing to the stored version
   (an echo from a full sync) is not written, so it cannot look newer
   than a real edit still waiting on another device.
2. The response carries every record of the user updated after the
   client's cursor (all records without a cursor), which always includes
   the words merged in step 1.

One timestamp is taken per request and used both as the merge stamp and
as ``syncedAt``, so the merged records are not echoed again by the next
delta round.  Replaying a request yields the same stored records.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Protocol

from ..models import (
    SyncRequest,
    SyncResponse,
    WordRecord,
    WordsResponse,
    normalize_word,
    utc_now,
)
from .merge import merge_words

logger = logging.getLogger(__name__)

# Set by every server-side merge rather than by the client.
_DERIVED_FIELDS = frozenset({"updated_at", "next_review_date"})


def _adds_nothing(merged: WordRecord, existing: WordRecord) -> bool:
    return merged.model_dump(exclude=_DERIVED_FIELDS) == existing.model_dump(
        exclude=_DERIVED_FIELDS
    )


class WordRepository(Protocol):
    """Storage used by ``SyncService``; one word per (user, word)."""

    def get(self, user_id: str, word: str) -> WordRecord | None:
        """Return the stored record for (*user_id*, *word*), if any."""
        ...  # pragma: no cover

    def upsert(self, user_id: str, record: WordRecord) -> None:
        """Insert or replace the record for (*user_id*, ``record.word``)."""
        ...  # pragma: no cover

    def list(
        self, user_id: str, since: datetime | None = None
    ) -> list[WordRecord]:
        """Return the user's records, only those with ``updated_at > since``
        when *since* is given."""
        ...  # pragma: no cover


class InMemoryWordRepository:
    """Thread-safe in-process repository."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[tuple[str, str], WordRecord] = {}

    def get(self, user_id: str, word: str) -> WordRecord | None:
        with self._lock:
            return self._rows.get((user_id, normalize_word(word)))

    def upsert(self, user_id: str, record: WordRecord) -> None:
        with self._lock:
            self._rows[(user_id, record.word)] = record

    def list(
        self, user_id: str, since: datetime | None = None
    ) -> list[WordRecord]:
        with self._lock:
            rows = [r for (uid, _), r in self._rows.items() if uid == user_id]
        if since is None:
            return rows
        return [r for r in rows if r.updated_at > since]


class SyncService:
    """Process sync requests against a ``WordRepository``.

    Args:
        repository: Storage for all users' words.
    """

    def __init__(self, repository: WordRepository) -> None:
        self.repository = repository

    def handle_sync(
        self,
        user_id: str,
        request: SyncRequest,
        now: datetime | None = None,
    ) -> SyncResponse:
        """Merge the client's words and return the server's changes.

        Args:
            user_id: Authenticated identity.
            request: Cursor and changed client words.
            now: Request time (defaults to current UTC time).

        Returns:
            ``SyncResponse`` with the user's records updated after the
            cursor and the new cursor value.
        """
        stamp = now if now is not None else utc_now()
        created = merged = unchanged = 0

        for client_word in request.client_words:
            existing = self.repository.get(user_id, client_word.word)
            if existing is None:
                stored = client_word.model_copy(update={"updated_at": stamp})
                self.repository.upsert(user_id, stored)
                created += 1
            else:
                result = merge_words(
                    client_word,
                    existing,
                    id_from="other",
                    stamp=stamp,
                    today=stamp.date(),
                    reschedule=True,
                )
                if _adds_nothing(result, existing):
                    unchanged += 1
                    continue
                self.repository.upsert(user_id, result)
                merged += 1

        server_words = self.repository.list(user_id, request.last_synced_at)
        logger.info(
            "Sync for %s: %d created, %d merged, %d unchanged, %d returned",
            user_id,
            created,
            merged,
            unchanged,
            len(server_words),
        )
        return SyncResponse(server_words=server_words, synced_at=stamp)

    def list_words(self, user_id: str) -> WordsResponse:
        """Return the user's full collection (``GET /words``)."""
        return WordsResponse(words=self.repository.list(user_id))
