"""Word-level operations on top of the ``WordStore``.

Adding a looked-up word, recording a review outcome, archiving, and the
read-only history/statistics helpers.  Every mutation goes through
``WordStore.upsert`` so subscribers (the sync engine) see it.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from .models import LookupResult, WordRecord, normalize_word, utc_now
from .scheduler import apply_review_outcome, due_words, next_review_date
from .scheduler import today as utc_today
from .store.word_store import WordStore

logger = logging.getLogger(__name__)

# Stage from which a word counts as mastered in the statistics.
MASTERED_STAGE = 4


def create_word(
    lookup: LookupResult,
    today: date | None = None,
    now: datetime | None = None,
) -> WordRecord:
    """Build a new stage-0 record from dictionary data."""
    day = today if today is not None else utc_today()
    return WordRecord(
        id=uuid.uuid4().hex,
        word=lookup.word,
        phonetic=lookup.phonetic,
        audio_url=lookup.audio_url,
        audio_accent=lookup.audio_accent,
        part_of_speech=lookup.part_of_speech,
        definitions=list(lookup.definitions),
        examples=list(lookup.examples),
        date_added=day,
        next_review_date=next_review_date(0, day),
        review_count=0,
        memory_stage=0,
        updated_at=now if now is not None else utc_now(),
    )


def add_word(
    store: WordStore, lookup: LookupResult
) -> tuple[WordRecord, bool]:
    """Add *lookup* to the collection unless the word is already there.

    Returns:
        ``(record, created)``; *record* is the existing entry when
        *created* is ``False``.
    """
    existing = store.find_by_word(lookup.word)
    if existing is not None:
        logger.debug("Word '%s' already in collection", existing.word)
        return existing, False
    record = create_word(lookup)
    store.upsert(record)
    logger.info("Added word '%s'", record.word)
    return record, True


def _require(store: WordStore, word: str) -> WordRecord:
    record = store.find_by_word(word)
    if record is None:
        raise KeyError(
            f"Word '{normalize_word(word)}' is not in the collection"
        )
    return record


def record_review(
    store: WordStore, word: str, remembered: bool
) -> WordRecord:
    """Apply a review outcome to *word* and store the result.

    Raises:
        KeyError: If *word* is not in the collection.
    """
    updated = apply_review_outcome(_require(store, word), remembered)
    store.upsert(updated)
    logger.info(
        "Reviewed '%s': %s, stage %d, next %s",
        updated.word,
        "remembered" if remembered else "forgot",
        updated.memory_stage,
        updated.next_review_date.isoformat(),
    )
    return updated


def set_archived(
    store: WordStore, word: str, archived: bool = True
) -> WordRecord:
    """Archive or restore *word*.

    Raises:
        KeyError: If *word* is not in the collection.
    """
    updated = _require(store, word).model_copy(
        update={"archived": archived, "updated_at": utc_now()}
    )
    store.upsert(updated)
    return updated


def words_in_date_range(
    words: Iterable[WordRecord], start: date, end: date
) -> list[WordRecord]:
    return [w for w in words if start <= w.date_added <= end]


def week_range(
    offset_weeks: int = 0, today: date | None = None
) -> tuple[date, date]:
    """Return Monday and Sunday of the week *offset_weeks* from today.

    ``0`` is the current week, ``-1`` the previous one.
    """
    day = today if today is not None else utc_today()
    monday = day - timedelta(days=day.weekday()) + timedelta(
        weeks=offset_weeks
    )
    return monday, monday + timedelta(days=6)


def review_stats(
    words: Iterable[WordRecord], today: date | None = None
) -> dict[str, int]:
    """Summarise the collection.

    Returns:
        Dict with ``total``, ``active``, ``archived``, ``mastered`` and
        ``due`` counts.  Archived words are excluded from the last two.
    """
    words = list(words)
    active = [w for w in words if not w.archived]
    return {
        "total": len(words),
        "active": len(active),
        "archived": len(words) - len(active),
        "mastered": sum(
            1 for w in active if w.memory_stage >= MASTERED_STAGE
        ),
        "due": len(due_words(active, today)),
    }
