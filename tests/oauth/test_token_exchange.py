"""Tests for the authorization code exchange."""

import base64
from unittest import mock

import pytest
import requests

from tdi.oauth.exceptions import (
    TokenExchangeNetworkError,
    TokenExchangeResponseError,
    TokenExchangeStatusError,
)
from tdi.oauth.session import OAuthSession
from tdi.oauth.token_exchange import TokenExchangeClient


def make_response(status_code=200, json_data=None, text=None):
    """Build a mock requests.Response."""
    response = mock.Mock(spec=requests.Response)
    response.status_code = status_code
    if json_data is not None:
        response.json.return_value = json_data
    else:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    response.text = text or ""
    return response


class TestTokenExchangeClient:
    """Tests for TokenExchangeClient class."""

    @pytest.fixture
    def session(self, oauth_config):
        return OAuthSession.from_config(
            oauth_config, redirect_uri="http://localhost:54321/redirect"
        )

    @pytest.fixture
    def http(self):
        return mock.Mock(spec=requests.Session)

    @pytest.fixture
    def client(self, oauth_config, http):
        return TokenExchangeClient(oauth_config, session=http)

    def test_exchange_success(self, client, http, session):
        """A 200 with an access_token yields an AccessToken with the session scopes."""
        http.post.return_value = make_response(
            json_data={
                "access_token": "T1",
                "token_type": "Bearer",
                "expires_in": 3600,
                "refresh_token": "R1",
                "scope": "tasks.read",
            }
        )

        token = client.exchange("XYZ", session)

        assert token.access_token == "T1"
        assert token.token_type == "Bearer"
        assert token.expires_in == 3600
        assert token.scopes == list(session.scopes)
        assert token.extras == {"refresh_token": "R1", "scope": "tasks.read"}

    def test_exchange_posts_form(self, client, http, session, oauth_config):
        """The request is a form POST with the grant parameters."""
        http.post.return_value = make_response(json_data={"access_token": "T1"})

        client.exchange("XYZ", session)

        http.post.assert_called_once()
        args, kwargs = http.post.call_args
        assert args[0] == "https://login.example.com/token"
        assert kwargs["data"] == {
            "grant_type": "authorization_code",
            "code": "XYZ",
            "redirect_uri": "http://localhost:54321/redirect",
            "client_id": "test_client_id",
            "scope": session.scope,
        }
        assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
        assert "Authorization" not in kwargs["headers"]
        assert kwargs["timeout"] == oauth_config.request_timeout

    def test_exchange_uses_basic_auth_with_secret(self, oauth_config, http, session):
        """A configured client secret is sent as HTTP Basic credentials."""
        oauth_config.client_secret = "shh"
        client = TokenExchangeClient(oauth_config, session=http)
        http.post.return_value = make_response(json_data={"access_token": "T1"})

        client.exchange("XYZ", session)

        header = http.post.call_args[1]["headers"]["Authorization"]
        expected = base64.b64encode(b"test_client_id:shh").decode()
        assert header == f"Basic {expected}"

    def test_token_type_defaults_to_bearer(self, client, http, session):
        http.post.return_value = make_response(json_data={"access_token": "T1"})

        token = client.exchange("XYZ", session)

        assert token.token_type == "Bearer"
        assert token.expires_in is None

    def test_error_status_with_provider_error(self, client, http, session):
        """A non-200 reply raises a status error naming the provider's error."""
        http.post.return_value = make_response(
            status_code=400,
            json_data={
                "error": "invalid_grant",
                "error_description": "The code has expired",
            },
        )

        with pytest.raises(TokenExchangeStatusError) as exc_info:
            client.exchange("XYZ", session)

        assert exc_info.value.status_code == 400
        assert "invalid_grant" in str(exc_info.value)
        assert "The code has expired" in str(exc_info.value)

    def test_error_status_without_json(self, client, http, session):
        http.post.return_value = make_response(status_code=500, text="Server Error")

        with pytest.raises(TokenExchangeStatusError, match="status 500"):
            client.exchange("XYZ", session)

    def test_non_json_body(self, client, http, session):
        http.post.return_value = make_response(text="<html>oops</html>")

        with pytest.raises(TokenExchangeResponseError, match="non-JSON"):
            client.exchange("XYZ", session)

    @pytest.mark.parametrize(
        "payload",
        [
            {"token_type": "Bearer"},
            {"access_token": ""},
            {"access_token": 42},
        ],
    )
    def test_missing_access_token(self, client, http, session, payload):
        http.post.return_value = make_response(json_data=payload)

        with pytest.raises(TokenExchangeResponseError, match="access_token"):
            client.exchange("XYZ", session)

    def test_json_array_body(self, client, http, session):
        http.post.return_value = make_response(json_data=["access_token"])

        with pytest.raises(TokenExchangeResponseError, match="not an object"):
            client.exchange("XYZ", session)

    def test_invalid_expires_in(self, client, http, session):
        http.post.return_value = make_response(
            json_data={"access_token": "T1", "expires_in": "soon"}
        )

        with pytest.raises(TokenExchangeResponseError, match="expires_in"):
            client.exchange("XYZ", session)

    @mock.patch("tdi.oauth.token_exchange.time.sleep")
    def test_network_error_retried(self, mock_sleep, client, http, session):
        """A transient network error is retried and the exchange succeeds."""
        http.post.side_effect = [
            requests.ConnectionError("connection reset"),
            make_response(json_data={"access_token": "T1"}),
        ]

        token = client.exchange("XYZ", session)

        assert token.access_token == "T1"
        assert http.post.call_count == 2
        mock_sleep.assert_called_once()

    @mock.patch("tdi.oauth.token_exchange.time.sleep")
    def test_network_error_exhausts_retries(self, mock_sleep, client, http, session):
        """After max retries a network error is raised, not a protocol error."""
        http.post.side_effect = requests.Timeout("timed out")

        with pytest.raises(TokenExchangeNetworkError, match="3 attempts"):
            client.exchange("XYZ", session)

        assert http.post.call_count == 3
        assert mock_sleep.call_count == 2

    @mock.patch("tdi.oauth.token_exchange.time.sleep")
    def test_status_errors_are_not_retried(self, mock_sleep, client, http, session):
        http.post.return_value = make_response(status_code=401, json_data={})

        with pytest.raises(TokenExchangeStatusError):
            client.exchange("XYZ", session)

        assert http.post.call_count == 1
        mock_sleep.assert_not_called()
