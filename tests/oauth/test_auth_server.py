"""Tests for OAuth callback server module."""

import dataclasses
import socket
import webbrowser
from unittest import mock

import pytest
import requests

from tdi.oauth.auth_server import (
    AuthorizationResult,
    OAuthCallbackServer,
    launch_browser,
)
from tdi.oauth.exceptions import BrowserLaunchError, CallbackServerError


def local_get(url: str, timeout: float = 5) -> requests.Response:
    """GET a loopback URL, ignoring any proxy settings in the environment."""
    with requests.Session() as session:
        session.trust_env = False
        return session.get(url, timeout=timeout)


def can_bind(port: int) -> bool:
    """True if the loopback port can be bound the way the server binds it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(("127.0.0.1", port))
        except OSError:
            return False
    return True


class TestAuthorizationResult:
    """Tests for AuthorizationResult dataclass."""

    def test_from_code(self):
        """AuthorizationResult can represent success."""
        result = AuthorizationResult.from_code("code_123")

        assert result.success is True
        assert result.authorization_code == "code_123"
        assert result.error is None
        assert result.error_description is None

    def test_from_error(self):
        """AuthorizationResult can represent failure."""
        result = AuthorizationResult.from_error("access_denied", "User denied access")

        assert result.success is False
        assert result.authorization_code is None
        assert result.error == "access_denied"
        assert result.error_description == "User denied access"


class TestCallbackHandler:
    """Tests for the redirect handler, without a listening socket."""

    @pytest.fixture
    def server(self, oauth_config):
        return OAuthCallbackServer(oauth_config)

    def test_server_initialization(self, server, oauth_config):
        """OAuthCallbackServer can be initialized."""
        assert server.config == oauth_config
        assert server.app is not None
        assert server.server is None
        assert server.is_running is False

    def test_handle_callback_success(self, server):
        """A code yields a 201 page and a Code result once the response is closed."""
        with server.app.test_request_context("/redirect?code=auth_code_123"):
            response = server._handle_callback()

        assert response.status_code == 201
        assert "text/html" in response.content_type
        assert "Authorization Successful" in response.get_data(as_text=True)

        response.close()
        result = server.wait_for_callback(timeout=1)
        assert result.success is True
        assert result.authorization_code == "auth_code_123"

    def test_result_published_only_after_response_closed(self, server):
        """The waiting side is not woken before the response is finished."""
        with server.app.test_request_context("/redirect?code=abc"):
            response = server._handle_callback()

        assert server.wait_for_callback(timeout=0.1).error == "timeout"

        response.close()
        assert server.wait_for_callback(timeout=1).authorization_code == "abc"

    def test_handle_callback_with_error(self, server):
        """A provider error yields a 404 page and an Error result."""
        with server.app.test_request_context(
            "/redirect?error=access_denied&error_description=User%20denied"
        ):
            response = server._handle_callback()

        assert response.status_code == 404
        assert "Authorization Failed" in response.get_data(as_text=True)

        response.close()
        result = server.wait_for_callback(timeout=1)
        assert result.success is False
        assert result.error == "access_denied"
        assert result.error_description == "User denied"

    def test_handle_callback_escapes_provider_text(self, server):
        with server.app.test_request_context("/redirect?error=%3Cscript%3E"):
            response = server._handle_callback()

        body = response.get_data(as_text=True)
        assert "<script>" not in body
        assert "&lt;script&gt;" in body

    def test_handle_callback_missing_code(self, server):
        """A redirect without code or error is a failure."""
        with server.app.test_request_context("/redirect"):
            response = server._handle_callback()

        assert response.status_code == 404
        response.close()
        result = server.wait_for_callback(timeout=1)
        assert result.success is False
        assert result.error == "missing_code"

    def test_second_callback_is_ignored(self, server):
        """Only the first redirect is processed."""
        with server.app.test_request_context("/redirect?code=first"):
            first = server._handle_callback()
        with server.app.test_request_context("/redirect?code=second"):
            second = server._handle_callback()

        assert second.status_code == 409
        second.close()
        first.close()

        assert server.wait_for_callback(timeout=1).authorization_code == "first"

    def test_wait_for_callback_times_out(self, server):
        """wait_for_callback returns timeout result if no callback."""
        result = server.wait_for_callback(timeout=0.1)

        assert result.success is False
        assert result.error == "timeout"
        assert "No callback received" in result.error_description

    def test_stop_before_start_is_noop(self, server):
        server.stop()
        assert server.server is None


class TestCallbackServerLifecycle:
    """Tests against a real loopback listener."""

    @pytest.fixture
    def server(self, oauth_config):
        server = OAuthCallbackServer(oauth_config)
        server.start()
        yield server
        server.stop()

    def url(self, server, query=""):
        return f"http://127.0.0.1:{server.port}/redirect{query}"

    def test_start_binds_ephemeral_port(self, server):
        assert server.is_running is True
        assert server.port != 0
        assert server.redirect_uri == f"http://localhost:{server.port}/redirect"

    def test_code_delivered_once_and_listener_closed(self, server):
        """One Code result, and the port refuses connections after stop()."""
        response = local_get(self.url(server, "?code=ABC"), timeout=5)

        assert response.status_code == 201
        result = server.wait_for_callback(timeout=5)
        assert result == AuthorizationResult.from_code("ABC")

        server.stop()

        assert server.is_running is False
        with pytest.raises(requests.ConnectionError):
            local_get(self.url(server, "?code=DEF"), timeout=2)

    def test_missing_code_delivers_error(self, server):
        response = local_get(self.url(server), timeout=5)

        assert response.status_code == 404
        result = server.wait_for_callback(timeout=5)
        assert result.success is False
        assert result.error == "missing_code"

    def test_second_request_does_not_replace_result(self, server):
        first = local_get(self.url(server, "?code=ABC"), timeout=5)
        second = local_get(self.url(server, "?code=XYZ"), timeout=5)

        assert first.status_code == 201
        assert second.status_code == 409
        assert server.wait_for_callback(timeout=5).authorization_code == "ABC"

    def test_other_paths_do_not_touch_result(self, server):
        """Requests to unknown paths get a 404 and leave the slot empty."""
        response = local_get(
            f"http://127.0.0.1:{server.port}/favicon.ico", timeout=5
        )

        assert response.status_code == 404
        assert server.wait_for_callback(timeout=0.2).error == "timeout"

    def test_port_released_after_timeout(self, server):
        """After a timed out wait and stop(), the port can be bound again."""
        port = server.port
        assert server.wait_for_callback(timeout=0.2).error == "timeout"

        server.stop()

        assert can_bind(port)

    def test_stop_is_idempotent(self, server):
        server.stop()
        server.stop()
        assert server.is_running is False


class TestCallbackServerBindFailure:
    """Tests for start() when the port is taken."""

    def test_start_raises_when_port_in_use(self, oauth_config):
        """A busy port raises CallbackServerError instead of exiting."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            config = dataclasses.replace(oauth_config, callback_port=port)
            server = OAuthCallbackServer(config)

            with pytest.raises(CallbackServerError, match=str(port)):
                server.start()

            assert server.is_running is False


class TestLaunchBrowser:
    """Tests for launch_browser."""

    @mock.patch("tdi.oauth.auth_server.webbrowser.open", return_value=True)
    def test_opens_url(self, mock_open):
        launch_browser("https://login.example.com/authorize?x=1")

        mock_open.assert_called_once_with("https://login.example.com/authorize?x=1")

    @mock.patch("tdi.oauth.auth_server.webbrowser.open", return_value=False)
    def test_no_browser_raises(self, mock_open):
        with pytest.raises(BrowserLaunchError, match="No runnable browser"):
            launch_browser("https://login.example.com/authorize")

    @mock.patch(
        "tdi.oauth.auth_server.webbrowser.open",
        side_effect=webbrowser.Error("could not locate runnable browser"),
    )
    def test_browser_error_raises(self, mock_open):
        with pytest.raises(BrowserLaunchError, match="could not locate"):
            launch_browser("https://login.example.com/authorize")
