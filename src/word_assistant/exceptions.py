"""Exception hierarchy shared by the sync transport and dictionary lookup."""


class WordAssistantError(Exception):
    """Base class for all word_assistant errors."""


class SyncApiError(WordAssistantError):
    """The remote word service failed or returned a non-success status.

    Attributes:
        status_code: HTTP status code, or ``None`` for network failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(SyncApiError):
    """The bearer credential was rejected (HTTP 401/403)."""


class ServiceUnreachableError(SyncApiError):
    """No connection to the word service could be made."""


class DictionaryError(WordAssistantError):
    """The dictionary lookup provider could not be reached."""


class WordNotFoundError(DictionaryError):
    """The dictionary provider has no entry for the requested term."""

    def __init__(self, term: str):
        super().__init__(
            f"Word '{term}' not found. Please check the spelling and try again."
        )
        self.term = term
