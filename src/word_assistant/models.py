"""Pydantic models for word records and the sync wire contract.

Defines the data contracts shared by the store, the sync engine and the
server-side sync service:

- ``WordRecord``: one vocabulary entry per (user, normalised word).
- ``SyncStatus``: observable state of the sync engine.
- ``SyncRequest`` / ``SyncResponse``: ``POST /sync`` bodies.
- ``WordsResponse``: ``GET /words`` body.
- ``UserProfile``: ``GET /auth/me`` body.
- ``LookupResult``: dictionary data used to create a new word.

Python attributes are snake_case; the wire (and the persisted JSON) uses
camelCase aliases.  All models are frozen, so a change is always a new
instance built with ``model_copy(update=...)``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

AudioAccent = Literal["US", "UK", "AU", ""]

MAX_MEMORY_STAGE = 5

_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
)


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_word(text: str) -> str:
    """Return the canonical (stripped, lowercase) form of *text*."""
    return text.strip().lower()


def as_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SyncStatus(str, Enum):
    """Observable sync engine state."""

    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    OFFLINE = "offline"
    ERROR = "error"


class WordRecord(BaseModel):
    """A single vocabulary entry.

    Attributes:
        id: Opaque identifier, never reassigned once set.
        word: Canonical lowercase text; uniqueness key per user.
        phonetic: IPA transcription from the lookup provider.
        audio_url: Pronunciation audio URL.
        audio_accent: Accent tag of ``audio_url``.
        part_of_speech: Primary part of speech.
        definitions: Ordered definitions.
        examples: Ordered example sentences.
        date_added: Calendar date of first creation.
        next_review_date: Calendar date of the next scheduled review.
        review_count: Number of completed reviews.
        memory_stage: Spaced-repetition stage, 0 (new) to 5 (mastered).
        updated_at: Last-touched timestamp (UTC).
        archived: Excluded from review scheduling when ``True``.
    """

    id: str
    word: str
    phonetic: str = ""
    audio_url: str = ""
    audio_accent: AudioAccent = ""
    part_of_speech: str = ""
    definitions: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)
    date_added: date
    next_review_date: date
    review_count: int = Field(default=0, ge=0)
    memory_stage: int = 0
    updated_at: datetime = Field(default_factory=utc_now)
    archived: bool = False

    model_config = _WIRE_CONFIG

    @field_validator("word")
    @classmethod
    def _normalize_word(cls, value: str) -> str:
        value = normalize_word(value)
        if not value:
            raise ValueError("word cannot be empty")
        return value

    @field_validator("memory_stage")
    @classmethod
    def _clamp_stage(cls, value: int) -> int:
        return max(0, min(value, MAX_MEMORY_STAGE))

    @field_validator("updated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def to_wire(self) -> dict:
        """Serialise to the camelCase JSON-compatible dict used on the wire."""
        return self.model_dump(mode="json", by_alias=True)


class SyncRequest(BaseModel):
    """Body of ``POST /sync``."""

    last_synced_at: datetime | None = None
    client_words: list[WordRecord] = Field(default_factory=list)

    model_config = _WIRE_CONFIG

    @field_validator("last_synced_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class SyncResponse(BaseModel):
    """Body returned by ``POST /sync``."""

    server_words: list[WordRecord] = Field(default_factory=list)
    synced_at: datetime

    model_config = _WIRE_CONFIG

    @field_validator("synced_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class WordsResponse(BaseModel):
    """Body returned by ``GET /words``."""

    words: list[WordRecord] = Field(default_factory=list)

    model_config = _WIRE_CONFIG


class UserProfile(BaseModel):
    """Authenticated identity returned by ``GET /auth/me``."""

    id: str
    email: str | None = None
    name: str | None = None
    avatar_url: str | None = None
    provider: str = ""

    model_config = _WIRE_CONFIG


class LookupResult(BaseModel):
    """Dictionary data for a term, as consumed by the word-addition flow."""

    word: str
    phonetic: str = ""
    audio_url: str = ""
    audio_accent: AudioAccent = ""
    part_of_speech: str = ""
    definitions: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)

    model_config = _WIRE_CONFIG
