"""
OAuth coordinator for tdi.

This module drives a login attempt end to end: start the loopback callback
server, send the user's browser to the provider, wait for the redirect,
release the port, exchange the code and persist the token. It also gives
other commands a handle on the credential storage.

``login()`` is a plain method so it can be called from the one-shot CLI as
well as from the interactive shell.
"""

import logging
from enum import Enum
from typing import Optional

from .auth_server import AuthorizationResult, OAuthCallbackServer, launch_browser
from .config import OAuthConfig
from .exceptions import (
    BrowserLaunchError,
    CallbackTimeoutError,
    ProviderRedirectError,
)
from .session import OAuthSession
from .token_exchange import TokenExchangeClient
from .token_storage import AccessToken, TokenStorage

logger = logging.getLogger(__name__)


class LoginState(Enum):
    """States of a single login attempt."""

    IDLE = "idle"
    AWAITING_REDIRECT = "awaiting_redirect"
    EXCHANGING_TOKEN = "exchanging_token"
    PERSISTING = "persisting"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class OAuthCoordinator:
    """
    High-level coordinator for OAuth operations.

    This is the main interface the CLI uses for authentication.

    Example:
        coordinator = OAuthCoordinator(OAuthConfig.from_env())
        coordinator.login()
        token = coordinator.storage.load_bearer_token()
    """

    def __init__(
        self,
        config: OAuthConfig,
        storage: Optional[TokenStorage] = None,
        exchange_client: Optional[TokenExchangeClient] = None,
    ):
        """
        Initialize OAuth coordinator.

        Args:
            config: OAuth configuration
            storage: Credential storage (default: under config.config_dir)
            exchange_client: Token exchange client (default: built from config)
        """
        self.config = config
        self.storage = storage or TokenStorage(config.config_dir)
        self.exchange_client = exchange_client or TokenExchangeClient(config)
        self.state = LoginState.IDLE

    def login(
        self, open_browser: bool = True, timeout: Optional[float] = None
    ) -> AccessToken:
        """
        Run the complete OAuth authorization flow.

        This orchestrates the full authorization process:
        1. Starts the loopback callback server
        2. Opens the browser (the URL is always printed as a fallback)
        3. Receives the authorization code from the callback
        4. Shuts the server down
        5. Exchanges the code for an access token
        6. Saves the token to storage

        Args:
            open_browser: Whether to automatically open browser
            timeout: Seconds to wait for the redirect (default: config.callback_timeout)

        Returns:
            The persisted AccessToken

        Raises:
            CallbackServerError: If the callback port cannot be bound
            CallbackTimeoutError: If no redirect arrived in time
            ProviderRedirectError: If the provider reported an error
            TokenExchangeError: If the code could not be exchanged
            CredentialStoreError: If the token could not be saved
        """
        timeout = timeout if timeout is not None else self.config.callback_timeout
        self.state = LoginState.AWAITING_REDIRECT

        try:
            result, session = self._await_authorization(open_browser, timeout)

            if not result.success:
                logger.error(
                    f"Authorization failed: {result.error} - {result.error_description}"
                )
                if result.error == "timeout":
                    raise CallbackTimeoutError(
                        f"{result.error_description} Run 'tdi login' to try again."
                    )
                raise ProviderRedirectError(result.error, result.error_description)

            self.state = LoginState.EXCHANGING_TOKEN
            token = self.exchange_client.exchange(result.authorization_code, session)

            self.state = LoginState.PERSISTING
            self.storage.save(token, session)
        except Exception:
            self.state = LoginState.FAILED
            raise

        self.state = LoginState.AUTHENTICATED
        logger.info("Authorization complete! Token saved successfully.")
        return token

    def _await_authorization(
        self, open_browser: bool, timeout: float
    ) -> "tuple[AuthorizationResult, OAuthSession]":
        """Serve the callback until a result or timeout; the port is released on return."""
        server = OAuthCallbackServer(self.config)

        try:
            server.start()

            session = OAuthSession.from_config(self.config, redirect_uri=server.redirect_uri)
            auth_url = session.authorization_url()

            print("tdi: authenticating, please authorize the application by visiting:")
            print(f"\n  {auth_url}\n")

            if open_browser:
                try:
                    launch_browser(auth_url)
                    print("tdi: a browser window has been opened.")
                except BrowserLaunchError as e:
                    logger.warning(f"Could not open browser automatically: {e}")
                    print("tdi: could not open a browser, copy the URL above into one.")

            print("tdi: waiting for authorization...")
            result = server.wait_for_callback(timeout)
        finally:
            server.stop()

        return result, session
