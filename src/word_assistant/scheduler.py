"""Spaced-repetition review scheduling.

Pure functions over ``WordRecord`` collections.  Nothing here touches the
``WordStore``: callers write the result of ``apply_review_outcome`` back
themselves.

The interval table is Ebbinghaus-inspired and must be identical on the
client and the server, because both sides recompute
``next_review_date`` when merging.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from .models import MAX_MEMORY_STAGE, WordRecord, utc_now

# Days until the next review, indexed by memory stage.
MEMORY_INTERVALS: tuple[int, ...] = (1, 2, 4, 7, 15, 30)

DAILY_REVIEW_LIMIT = 5


def today() -> date:
    """Return the current UTC calendar date."""
    return utc_now().date()


def next_review_date(stage: int, from_date: date | None = None) -> date:
    """Return the review date for a word at *stage*.

    Stages above 5 use the stage-5 interval; negative stages use stage 0.

    Args:
        stage: Memory stage.
        from_date: Base date (defaults to today, UTC).

    Returns:
        ``from_date`` plus the stage interval, as a calendar date.
    """
    base = from_date if from_date is not None else today()
    if isinstance(base, datetime):
        base = base.date()
    index = max(0, min(stage, len(MEMORY_INTERVALS) - 1))
    return base + timedelta(days=MEMORY_INTERVALS[index])


def due_words(
    words: Iterable[WordRecord], on: date | None = None
) -> list[WordRecord]:
    """Return all non-archived words whose review date is on or before *on*."""
    cutoff = on if on is not None else today()
    return [
        w
        for w in words
        if not w.archived and w.next_review_date <= cutoff
    ]


def daily_batch(
    due: list[WordRecord], limit: int = DAILY_REVIEW_LIMIT
) -> list[WordRecord]:
    """Pick today's review batch from *due*.

    Weakest words first (lowest stage), then the most overdue.  When
    *due* already fits in *limit* it is returned unchanged.
    """
    if len(due) <= limit:
        return list(due)
    ordered = sorted(
        due, key=lambda w: (w.memory_stage, w.next_review_date)
    )
    return ordered[:limit]


def apply_review_outcome(
    record: WordRecord,
    remembered: bool,
    now: datetime | None = None,
) -> WordRecord:
    """Return *record* advanced (remembered) or reset (forgot).

    Args:
        record: The reviewed word.
        remembered: Whether the user recalled the word.
        now: Review time (defaults to current UTC time).

    Returns:
        A new ``WordRecord``; *record* is left unchanged.
    """
    stamp = now if now is not None else utc_now()
    if remembered:
        stage = min(record.memory_stage + 1, MAX_MEMORY_STAGE)
    else:
        stage = 0
    return record.model_copy(
        update={
            "memory_stage": stage,
            "next_review_date": next_review_date(stage, stamp.date()),
            "review_count": record.review_count + 1,
            "updated_at": stamp,
        }
    )
