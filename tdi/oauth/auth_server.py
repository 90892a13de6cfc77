"""
Loopback OAuth callback server for tdi.

This module provides a temporary HTTP server that catches the provider's
redirect during the authorization flow. It binds to the loopback interface
only, accepts exactly one meaningful redirect, hands the result to the
waiting coordinator and is then shut down.

The result is published from the response's close hook, so the waiting
side is only woken after the browser's page has been written to the socket.
The server is single-threaded: ``stop()`` returns only once the request in
flight is finished and the listening socket is closed.
"""

import logging
import threading
import webbrowser
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from html import escape
from typing import Optional

from flask import Flask, Response, request
from werkzeug.serving import BaseWSGIServer, make_server

from .config import OAuthConfig
from .exceptions import BrowserLaunchError, CallbackServerError

logger = logging.getLogger(__name__)

_PAGE = """<html>
<head><title>{title}</title></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px;">
    <h1 style="color: {color};">{title}</h1>
    {body}
    <p style="margin-top: 30px; color: #666;">You can close this window and return to the terminal.</p>
</body>
</html>"""


@dataclass
class AuthorizationResult:
    """
    Result of OAuth authorization flow.

    Exactly one of ``authorization_code`` (success) or ``error`` (failure)
    is set.

    Attributes:
        success: Whether authorization succeeded
        authorization_code: Authorization code from callback (if successful)
        error: Error code from OAuth provider or "timeout"/"missing_code" (if failed)
        error_description: Human-readable error description (if failed)
    """

    success: bool
    authorization_code: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None

    @classmethod
    def from_code(cls, code: str) -> "AuthorizationResult":
        return cls(success=True, authorization_code=code)

    @classmethod
    def from_error(
        cls, error: str, error_description: Optional[str] = None
    ) -> "AuthorizationResult":
        return cls(success=False, error=error, error_description=error_description)


class OAuthCallbackServer:
    """
    One-shot loopback HTTP server for the OAuth redirect.

    Lifecycle:
    1. ``start()`` binds the port and serves in a background thread
    2. The browser is redirected to ``redirect_uri`` with a code or an error
    3. ``wait_for_callback()`` returns the single AuthorizationResult
    4. ``stop()`` shuts the server down and releases the port

    Only the first redirect is processed; later ones get a 409 and leave the
    result untouched. Requests to other paths get a plain 404.
    """

    def __init__(self, config: OAuthConfig):
        """
        Initialize callback server.

        Args:
            config: OAuth configuration with bind host, port and callback path
        """
        self.config = config
        self.app = Flask(__name__)
        self.app.logger.setLevel(logging.WARNING)  # Suppress Flask logs
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
        self.server: Optional[BaseWSGIServer] = None
        self._thread: Optional[threading.Thread] = None
        self._result: "Future[AuthorizationResult]" = Future()
        self._claimed = False

        self.app.add_url_rule(
            self.config.callback_path,
            "oauth_callback",
            self._handle_callback,
            methods=["GET"],
        )

    @property
    def port(self) -> int:
        """Port the server is bound to (the configured one until started)."""
        if self.server is not None:
            return self.server.server_address[1]
        return self.config.callback_port

    @property
    def redirect_uri(self) -> str:
        """Redirect URI pointing at this server's bound port."""
        return (
            f"http://{self.config.callback_host}:{self.port}{self.config.callback_path}"
        )

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _handle_callback(self) -> Response:
        """Handle the provider redirect."""
        if self._claimed:
            logger.warning("Ignoring repeated OAuth callback")
            return self._page(
                "Already Handled",
                "#666",
                "<p>This login attempt has already received its callback.</p>",
                status=409,
            )

        logger.info("Received OAuth callback")
        error = request.args.get("error")
        code = request.args.get("code")

        if error:
            error_desc = request.args.get("error_description", "Unknown error")
            logger.error(f"OAuth error: {error} - {error_desc}")
            result = AuthorizationResult.from_error(error, error_desc)
            response = self._page(
                "Authorization Failed",
                "#d32f2f",
                f"<p><strong>Error:</strong> {escape(error)}</p>"
                f"<p><strong>Description:</strong> {escape(error_desc)}</p>",
                status=404,
            )
        elif not code:
            logger.error("No authorization code in callback")
            result = AuthorizationResult.from_error(
                "missing_code", "No authorization code received"
            )
            response = self._page(
                "Authorization Failed",
                "#d32f2f",
                "<p>No authorization code was received from the provider.</p>",
                status=404,
            )
        else:
            logger.info("Authorization code received successfully")
            result = AuthorizationResult.from_code(code)
            response = self._page(
                "Authorization Successful",
                "#4caf50",
                "<p>Hello from <b>tdi</b> - the access code was received and "
                "will be stored locally.</p>",
                status=201,
            )

        self._claimed = True
        response.call_on_close(lambda: self._publish(result))
        return response

    def _page(self, title: str, color: str, body: str, status: int) -> Response:
        return Response(
            _PAGE.format(title=title, color=color, body=body),
            status=status,
            content_type="text/html",
        )

    def _publish(self, result: AuthorizationResult) -> None:
        if not self._result.done():
            self._result.set_result(result)

    def start(self) -> None:
        """
        Bind the callback port and serve in a background thread.

        Raises:
            CallbackServerError: If the port cannot be bound
        """
        host = self.config.bind_host
        port = self.config.callback_port
        logger.info(f"Starting OAuth callback server on {host}:{port}")

        try:
            self.server = make_server(host, port, self.app, threaded=False)
        # werkzeug reports bind failures by exiting the process
        except (OSError, SystemExit) as e:
            logger.error(f"Could not bind callback server to {host}:{port}: {e}")
            raise CallbackServerError(
                f"Could not listen on {host}:{port} for the OAuth redirect. "
                f"Is another login still running?"
            ) from e

        self._thread = threading.Thread(
            target=self.server.serve_forever,
            name="tdi-oauth-callback",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"OAuth callback server listening on {self.redirect_uri}")

    def wait_for_callback(self, timeout: float = 300) -> AuthorizationResult:
        """
        Wait for OAuth callback.

        Args:
            timeout: Maximum seconds to wait (default: 300 = 5 minutes)

        Returns:
            AuthorizationResult with code or error ("timeout" when nothing arrived)
        """
        logger.info(f"Waiting for OAuth callback (timeout: {timeout}s)")

        try:
            return self._result.result(timeout=timeout)
        except FutureTimeoutError:
            logger.warning(f"Timeout waiting for callback after {timeout}s")
            return AuthorizationResult.from_error(
                "timeout",
                f"No callback received within {timeout} seconds. "
                f"Please ensure you completed the authorization in your browser.",
            )

    def stop(self) -> None:
        """
        Stop the callback server and release the port.

        Safe to call more than once, and before ``start()``.
        """
        if self.server is None:
            return

        logger.info("OAuth callback server shutting down")
        if self.is_running:
            self.server.shutdown()
            self._thread.join()
        self.server.server_close()
        self._thread = None


def launch_browser(url: str) -> None:
    """
    Open the authorization URL in the user's default browser.

    Args:
        url: Authorization URL

    Raises:
        BrowserLaunchError: If no browser could be opened
    """
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        raise BrowserLaunchError(f"Could not open browser: {e}") from e

    if not opened:
        raise BrowserLaunchError("No runnable browser found")
