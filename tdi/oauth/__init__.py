"""
OAuth 2.0 module for tdi.

This module implements the OAuth 2.0 Authorization Code flow for a local
CLI: a one-shot loopback server catches the provider redirect, the code is
exchanged for an access token and the token is stored in the user's config
directory for later commands.

Public API:
    OAuthConfig: OAuth configuration management
    OAuthSession: Parameters of one login attempt, builds the authorization URL
    OAuthCallbackServer: One-shot loopback redirect listener
    AuthorizationResult: Code-or-error result of the redirect
    launch_browser: Open the authorization URL in the default browser
    TokenExchangeClient: Authorization code to access token exchange
    AccessToken: Token data structure
    TokenStorage: File-based credential persistence
    OAuthCoordinator: Login orchestration

Exceptions:
    TdiOAuthError: Base exception
    ConfigurationError: Configuration error
    BrowserLaunchError: Browser could not be opened (soft failure)
    AuthorizationError: Authorization flow error
    CallbackServerError: Callback port could not be bound
    CallbackTimeoutError: Redirect did not arrive in time
    ProviderRedirectError: Provider reported an error
    TokenExchangeError: Token exchange failed
    TokenExchangeNetworkError: Token endpoint unreachable
    TokenExchangeProtocolError: Token endpoint answered with something unusable
    TokenExchangeStatusError: Non-200 response
    TokenExchangeResponseError: Malformed token response
    CredentialStoreError: Credential file operation failed
    NotAuthenticatedError: No stored credential
"""

from .auth_server import AuthorizationResult, OAuthCallbackServer, launch_browser
from .config import OAuthConfig
from .coordinator import LoginState, OAuthCoordinator
from .exceptions import (
    AuthorizationError,
    BrowserLaunchError,
    CallbackServerError,
    CallbackTimeoutError,
    ConfigurationError,
    CredentialStoreError,
    NotAuthenticatedError,
    ProviderRedirectError,
    TdiOAuthError,
    TokenExchangeError,
    TokenExchangeNetworkError,
    TokenExchangeProtocolError,
    TokenExchangeResponseError,
    TokenExchangeStatusError,
)
from .session import OAuthSession
from .token_exchange import TokenExchangeClient
from .token_storage import AccessToken, TokenStorage

__all__ = [
    # Configuration
    "OAuthConfig",
    "OAuthSession",
    # Token Storage
    "AccessToken",
    "TokenStorage",
    # Token Exchange
    "TokenExchangeClient",
    # Authorization Server
    "OAuthCallbackServer",
    "AuthorizationResult",
    "launch_browser",
    # Coordinator
    "OAuthCoordinator",
    "LoginState",
    # Exceptions
    "TdiOAuthError",
    "ConfigurationError",
    "BrowserLaunchError",
    "AuthorizationError",
    "CallbackServerError",
    "CallbackTimeoutError",
    "ProviderRedirectError",
    "TokenExchangeError",
    "TokenExchangeNetworkError",
    "TokenExchangeProtocolError",
    "TokenExchangeStatusError",
    "TokenExchangeResponseError",
    "CredentialStoreError",
    "NotAuthenticatedError",
]
