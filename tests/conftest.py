"""Shared pytest fixtures for word-assistant tests."""

import threading
from datetime import date, datetime, timezone

import pytest

from word_assistant.config import Config
from word_assistant.exceptions import AuthenticationError, SyncApiError
from word_assistant.models import (
    SyncRequest,
    SyncResponse,
    UserProfile,
    WordRecord,
)
from word_assistant.store import MemoryKeyValueStore, WordStore
from word_assistant.sync.service import InMemoryWordRepository, SyncService

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_word(word: str = "apple", **overrides) -> WordRecord:
    """Build a WordRecord with fixed, test-friendly defaults."""
    fields = {
        "id": f"id-{word}",
        "word": word,
        "definitions": [f"definition of {word}"],
        "date_added": date(2026, 3, 1),
        "next_review_date": date(2026, 3, 2),
        "updated_at": T0,
    }
    fields.update(overrides)
    return WordRecord(**fields)


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        api_url="https://words.example.com/api",
        token="test-token",
        data_dir="/tmp/word-assistant-test",
    )


@pytest.fixture
def memory_store():
    """A WordStore on an in-memory backend."""
    return WordStore(MemoryKeyValueStore())


class FakeSyncClient:
    """Stand-in for SyncApiClient backed by a real SyncService.

    Requests and responses go through their JSON wire form, like the
    HTTP client.  ``fail_with`` makes the next calls raise; ``gate``
    holds ``sync`` in the worker thread until the test releases it.
    """

    def __init__(self, user_id: str = "user-1"):
        self.user_id = user_id
        self.service = SyncService(InMemoryWordRepository())
        self.calls: list[SyncRequest] = []
        self.fail_with: Exception | None = None
        self.now: datetime | None = None
        self.entered = threading.Event()
        self.gate: threading.Event | None = None

    def sync(self, token, last_synced_at, client_words) -> SyncResponse:
        request = SyncRequest.model_validate(
            SyncRequest(
                last_synced_at=last_synced_at, client_words=client_words
            ).model_dump(mode="json", by_alias=True)
        )
        self.calls.append(request)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.fail_with is not None:
            raise self.fail_with
        response = self.service.handle_sync(
            self.user_id, request, now=self.now
        )
        return SyncResponse.model_validate(
            response.model_dump(mode="json", by_alias=True)
        )

    def get_words(self, token) -> list[WordRecord]:
        if self.fail_with is not None:
            raise self.fail_with
        return self.service.list_words(self.user_id).words

    def get_current_user(self, token) -> UserProfile:
        if token == "bad-token":
            raise AuthenticationError("Invalid token", 401)
        if self.fail_with is not None:
            raise self.fail_with
        return UserProfile(id=self.user_id, email="learner@example.com")

    def seed(self, *records: WordRecord) -> None:
        for record in records:
            self.service.repository.upsert(self.user_id, record)


@pytest.fixture
def fake_client():
    return FakeSyncClient()


@pytest.fixture
def service_error():
    return SyncApiError("Service unavailable", 503)
