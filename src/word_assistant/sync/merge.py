"""Field-level merge rules for word records.

Two versions of the same word are merged field by field rather than by
picking a whole-record winner, so progress earned on any device is never
lost:

* ``memory_stage`` / ``review_count`` -- maximum.
* ``definitions`` / ``examples`` -- the longer list wins whole (no
  union); equal lengths keep the preferred side's list.
* ``phonetic`` / ``part_of_speech`` -- first non-empty value.
* ``audio_url`` / ``audio_accent`` -- taken together from the first side
  with a non-empty URL, so the accent tag always describes the URL.
* ``date_added`` -- earliest.
* ``next_review_date`` -- recomputed from the merged stage when the sides
  disagree on the stage or when *reschedule* is set (server side);
  otherwise the schedule of the most recently touched side is kept.
* ``archived`` -- from the most recently touched side.
* ``updated_at`` -- *stamp* when given (server side), otherwise the later
  of the two (client side).
* ``id`` / ``word`` -- from the side named by *id_from*.

Every rule is a max/min/first-non-empty selection, so re-applying a merge
or replaying a sync round yields the same record.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Literal

from ..models import WordRecord
from ..scheduler import next_review_date


def _richer(preferred: list[str], other: list[str]) -> list[str]:
    return list(preferred if len(preferred) >= len(other) else other)


def merge_words(
    preferred: WordRecord,
    other: WordRecord,
    *,
    id_from: Literal["preferred", "other"] = "preferred",
    stamp: datetime | None = None,
    today: date | None = None,
    reschedule: bool = False,
) -> WordRecord:
    """Merge two versions of the same word.

    Args:
        preferred: Version whose values win ties on the text and list
            fields.
        other: The other version.
        id_from: Which side supplies ``id`` and ``word``.
        stamp: Fixed ``updated_at`` for the result.  When ``None`` the
            later of the two timestamps is kept.
        today: Base date for a recomputed review date (defaults to today).
        reschedule: Always recompute ``next_review_date`` from the merged
            stage, even when both sides share it.

    Returns:
        The merged ``WordRecord``.
    """
    identity = preferred if id_from == "preferred" else other
    stage = max(preferred.memory_stage, other.memory_stage)

    recent = max(
        (preferred, other),
        key=lambda w: (w.updated_at, w.next_review_date),
    )
    if reschedule or preferred.memory_stage != other.memory_stage:
        review_date = next_review_date(stage, today)
    else:
        review_date = recent.next_review_date

    audio_source = preferred if preferred.audio_url else other

    return WordRecord(
        id=identity.id,
        word=identity.word,
        phonetic=preferred.phonetic or other.phonetic,
        audio_url=audio_source.audio_url,
        audio_accent=audio_source.audio_accent,
        part_of_speech=preferred.part_of_speech or other.part_of_speech,
        definitions=_richer(preferred.definitions, other.definitions),
        examples=_richer(preferred.examples, other.examples),
        date_added=min(preferred.date_added, other.date_added),
        next_review_date=review_date,
        review_count=max(preferred.review_count, other.review_count),
        memory_stage=stage,
        updated_at=stamp
        if stamp is not None
        else max(preferred.updated_at, other.updated_at),
        archived=recent.archived,
    )


def merge_into_local(
    local_words: Iterable[WordRecord],
    server_words: Iterable[WordRecord],
    today: date | None = None,
) -> list[WordRecord]:
    """Merge *server_words* into the local collection.

    Local records keep their ``id`` and win ties; server words with no
    local counterpart are appended as-is.

    Returns:
        The merged collection, local order first.
    """
    merged: dict[str, WordRecord] = {w.word: w for w in local_words}
    for server_word in server_words:
        local = merged.get(server_word.word)
        if local is None:
            merged[server_word.word] = server_word
        else:
            merged[server_word.word] = merge_words(
                local, server_word, id_from="preferred", today=today
            )
    return list(merged.values())
