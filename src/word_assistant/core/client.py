"""HTTP client for the remote word service (``/sync``, ``/words``, ``/auth/me``)."""

import logging
import threading
from datetime import datetime
from typing import Any

import requests
from pydantic import BaseModel, ValidationError

from ..config import Config
from ..exceptions import (
    AuthenticationError,
    ServiceUnreachableError,
    SyncApiError,
)
from ..models import (
    SyncRequest,
    SyncResponse,
    UserProfile,
    WordRecord,
    WordsResponse,
)

logger = logging.getLogger(__name__)


class SyncApiClient:
    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.base_url = config.api_url.rstrip("/")

    @property
    def session(self) -> requests.Session:
        """Return the current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session.

        Calls arrive from ``asyncio.to_thread`` workers, so each worker
        thread keeps its own connection pool.
        """
        if not hasattr(self._thread_local, "session"):
            session = requests.Session()
            session.headers["Content-Type"] = "application/json"
            self._thread_local.session = session
        return self._thread_local.session

    def _request(
        self,
        method: str,
        path: str,
        token: str | None,
        payload: dict | None = None,
    ) -> Any:
        """
        Send a request to the word service and return the decoded JSON body.

        Raises:
            AuthenticationError: On HTTP 401/403.
            ServiceUnreachableError: When no connection could be made.
            SyncApiError: On any other non-success status or network failure.
        """
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self._get_session().request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers=headers,
                timeout=(
                    self.config.connect_timeout,
                    self.config.read_timeout,
                ),
            )
        except requests.ConnectionError as exc:
            raise ServiceUnreachableError(
                f"Cannot reach word service at {self.base_url}: {exc}"
            ) from exc
        except requests.RequestException as exc:
            raise SyncApiError(f"Request to {path} failed: {exc}") from exc

        if not response.ok:
            message = _error_message(response)
            if response.status_code in (401, 403):
                raise AuthenticationError(message, response.status_code)
            raise SyncApiError(message, response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise SyncApiError(
                f"Invalid JSON from {path}", response.status_code
            ) from exc

    def sync(
        self,
        token: str,
        last_synced_at: datetime | None,
        client_words: list[WordRecord],
    ) -> SyncResponse:
        """
        Push changed words and receive the server's changes since the cursor.
        """
        body = SyncRequest(
            last_synced_at=last_synced_at, client_words=client_words
        ).model_dump(mode="json", by_alias=True)
        logger.debug(
            "POST /sync with %d words (cursor=%s)",
            len(client_words),
            last_synced_at,
        )
        data = self._request("POST", "/sync", token, body)
        return _parse(SyncResponse, data, "/sync")

    def get_words(self, token: str) -> list[WordRecord]:
        """
        Fetch the full word collection for the authenticated identity.
        """
        data = self._request("GET", "/words", token)
        return _parse(WordsResponse, data, "/words").words

    def get_current_user(self, token: str) -> UserProfile:
        """
        Validate the credential by fetching the authenticated identity.
        """
        data = self._request("GET", "/auth/me", token)
        return _parse(UserProfile, data, "/auth/me")


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"API error: {response.status_code}"


def _parse(model: type[BaseModel], data: Any, path: str):
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise SyncApiError(f"Unexpected response from {path}: {exc}") from exc
