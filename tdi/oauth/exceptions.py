"""
OAuth exception classes for tdi.

This module defines the exception hierarchy for everything that can go wrong
between starting a login and reading a stored credential. The CLI turns each
of these into a human-readable message and a non-zero exit code, except
BrowserLaunchError, which only degrades to printing the URL.
"""

from typing import Optional


class TdiOAuthError(Exception):
    """Base exception for all tdi OAuth errors."""

    pass


class ConfigurationError(TdiOAuthError):
    """OAuth configuration error (missing or invalid configuration)."""

    pass


class BrowserLaunchError(TdiOAuthError):
    """The authorization URL could not be opened in a browser."""

    pass


class AuthorizationError(TdiOAuthError):
    """OAuth authorization flow error."""

    pass


class CallbackServerError(AuthorizationError):
    """The loopback callback server could not be started."""

    pass


class CallbackTimeoutError(AuthorizationError):
    """The provider redirect never arrived within the allotted window."""

    pass


class ProviderRedirectError(AuthorizationError):
    """
    The provider redirected back with an error instead of a code.

    Attributes:
        error: OAuth error code from the redirect (e.g. "access_denied")
        error_description: Human-readable description, if the provider sent one
    """

    def __init__(self, error: str, error_description: Optional[str] = None):
        self.error = error
        self.error_description = error_description
        message = f"Authorization failed: {error}"
        if error_description:
            message = f"{message} - {error_description}"
        super().__init__(message)


class TokenExchangeError(TdiOAuthError):
    """Failed to exchange authorization code for tokens."""

    pass


class TokenExchangeNetworkError(TokenExchangeError):
    """Transport failure talking to the token endpoint (retryable)."""

    pass


class TokenExchangeProtocolError(TokenExchangeError):
    """The token endpoint answered, but not with a usable token."""

    pass


class TokenExchangeStatusError(TokenExchangeProtocolError):
    """Token endpoint returned a non-success HTTP status."""

    def __init__(self, message: str, status_code: int):
        self.status_code = status_code
        super().__init__(message)


class TokenExchangeResponseError(TokenExchangeProtocolError):
    """Token endpoint returned a body that is not a valid token response."""

    pass


class CredentialStoreError(TdiOAuthError):
    """Credential file could not be written, read or parsed."""

    pass


class NotAuthenticatedError(TdiOAuthError):
    """No usable stored credential (need to run login first)."""

    pass
