from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest
import requests
from conftest import T0, make_word

from word_assistant.config import Config
from word_assistant.core.client import SyncApiClient
from word_assistant.exceptions import (
    AuthenticationError,
    ServiceUnreachableError,
    SyncApiError,
)


def _response(status_code=200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


def test_base_url_strips_trailing_slash():
    """Test that the base URL has no trailing slash."""
    config = Config(api_url="https://words.example.com/api/")
    client = SyncApiClient(config)
    assert client.base_url == "https://words.example.com/api"


def test_session_is_json(mock_config):
    """Test that the session sends JSON bodies."""
    client = SyncApiClient(mock_config)
    assert client.session.headers["Content-Type"] == "application/json"


def test_session_reused_within_thread(mock_config):
    """Test that the same thread gets the same session back."""
    client = SyncApiClient(mock_config)
    assert client.session is client.session


@patch("word_assistant.core.client.requests.Session.request")
def test_sync_success(mock_request, mock_config):
    """Test sync posts camelCase words and parses the response."""
    mock_request.return_value = _response(
        payload={
            "serverWords": [make_word("pear").to_wire()],
            "syncedAt": "2026-03-01T12:00:00.000Z",
        }
    )

    client = SyncApiClient(mock_config)
    result = client.sync("test-token", T0, [make_word("apple")])

    assert result.synced_at == T0
    assert [w.word for w in result.server_words] == ["pear"]

    args, kwargs = mock_request.call_args
    assert args == ("POST", "https://words.example.com/api/sync")
    assert kwargs["headers"] == {"Authorization": "Bearer test-token"}
    assert kwargs["json"]["lastSyncedAt"].startswith("2026-03-01T12:00:00")
    assert kwargs["json"]["clientWords"][0]["word"] == "apple"
    assert "memoryStage" in kwargs["json"]["clientWords"][0]
    assert kwargs["timeout"] == (10.0, 30.0)


@patch("word_assistant.core.client.requests.Session.request")
def test_sync_without_cursor(mock_request, mock_config):
    """Test that a first sync sends a null cursor."""
    mock_request.return_value = _response(
        payload={"serverWords": [], "syncedAt": "2026-03-01T12:00:00Z"}
    )

    SyncApiClient(mock_config).sync("test-token", None, [])

    assert mock_request.call_args.kwargs["json"]["lastSyncedAt"] is None


@patch("word_assistant.core.client.requests.Session.request")
def test_get_words(mock_request, mock_config):
    """Test get_words parses the full collection."""
    mock_request.return_value = _response(
        payload={"words": [make_word("apple").to_wire()]}
    )

    words = SyncApiClient(mock_config).get_words("test-token")

    assert [w.word for w in words] == ["apple"]
    args, _ = mock_request.call_args
    assert args == ("GET", "https://words.example.com/api/words")


@patch("word_assistant.core.client.requests.Session.request")
def test_get_current_user(mock_request, mock_config):
    """Test get_current_user parses the identity."""
    mock_request.return_value = _response(
        payload={"id": "user-1", "email": "a@example.com", "avatarUrl": None}
    )

    user = SyncApiClient(mock_config).get_current_user("test-token")

    assert user.id == "user-1"
    assert user.email == "a@example.com"
    assert mock_request.call_args[0][1].endswith("/auth/me")


@pytest.mark.parametrize("status_code", [401, 403])
@patch("word_assistant.core.client.requests.Session.request")
def test_rejected_credential_raises_authentication_error(
    mock_request, status_code, mock_config
):
    """Test that 401/403 become AuthenticationError."""
    mock_request.return_value = _response(status_code, {"error": "Unauthorized"})

    with pytest.raises(AuthenticationError, match="Unauthorized") as exc_info:
        SyncApiClient(mock_config).get_words("bad-token")
    assert exc_info.value.status_code == status_code


@patch("word_assistant.core.client.requests.Session.request")
def test_server_error_uses_error_body(mock_request, mock_config):
    """Test that the server's error message is surfaced."""
    mock_request.return_value = _response(500, {"error": "Failed to sync"})

    with pytest.raises(SyncApiError, match="Failed to sync") as exc_info:
        SyncApiClient(mock_config).sync("test-token", None, [])
    assert exc_info.value.status_code == 500
    assert not isinstance(exc_info.value, AuthenticationError)


@patch("word_assistant.core.client.requests.Session.request")
def test_server_error_without_body(mock_request, mock_config):
    """Test the fallback message when the error body is not JSON."""
    mock_request.return_value = _response(502, ValueError("no json"))

    with pytest.raises(SyncApiError, match="API error: 502"):
        SyncApiClient(mock_config).get_words("test-token")


@patch("word_assistant.core.client.requests.Session.request")
def test_network_failure(mock_request, mock_config):
    """Test that connection errors become ServiceUnreachableError."""
    mock_request.side_effect = requests.ConnectionError("unreachable")

    with pytest.raises(ServiceUnreachableError) as exc_info:
        SyncApiClient(mock_config).get_words("test-token")
    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value, SyncApiError)


@patch("word_assistant.core.client.requests.Session.request")
def test_read_timeout_is_not_unreachable(mock_request, mock_config):
    """Test that a slow service is reported as a plain SyncApiError."""
    mock_request.side_effect = requests.ReadTimeout("too slow")

    with pytest.raises(SyncApiError) as exc_info:
        SyncApiClient(mock_config).get_words("test-token")
    assert not isinstance(exc_info.value, ServiceUnreachableError)


@patch("word_assistant.core.client.requests.Session.request")
def test_malformed_response(mock_request, mock_config):
    """Test that a response missing syncedAt is rejected."""
    mock_request.return_value = _response(payload={"serverWords": []})

    with pytest.raises(SyncApiError, match="Unexpected response from /sync"):
        SyncApiClient(mock_config).sync("test-token", None, [])


@patch("word_assistant.core.client.requests.Session.request")
def test_synced_at_normalised_to_utc(mock_request, mock_config):
    """Test that an offset syncedAt is converted to UTC."""
    mock_request.return_value = _response(
        payload={"serverWords": [], "syncedAt": "2026-03-01T14:00:00+02:00"}
    )

    result = SyncApiClient(mock_config).sync("test-token", None, [])

    assert result.synced_at == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert result.synced_at.tzinfo == timezone.utc
