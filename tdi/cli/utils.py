"""
CLI utility functions for tdi.

This module provides helpers for output formatting, error reporting and
access to the CLI context.
"""

from typing import Optional

import click

from tdi.oauth.config import OAuthConfig
from tdi.oauth.exceptions import (
    CallbackServerError,
    CallbackTimeoutError,
    ConfigurationError,
    CredentialStoreError,
    NotAuthenticatedError,
    ProviderRedirectError,
    TdiOAuthError,
    TokenExchangeError,
)
from tdi.oauth.token_storage import TokenStorage

# Most specific first
_ERROR_PREFIXES = (
    (ConfigurationError, "Configuration error"),
    (CallbackServerError, "Could not start login listener"),
    (CallbackTimeoutError, "Login timed out"),
    (ProviderRedirectError, "Login was refused by the provider"),
    (TokenExchangeError, "Token exchange failed"),
    (NotAuthenticatedError, "Not authenticated"),
    (CredentialStoreError, "Credential store error"),
)


def get_cli_context(ctx: click.Context):
    """Get the CLIContext from the click context."""
    return ctx.find_object(dict)["cli_context"]


def get_storage(ctx: click.Context) -> TokenStorage:
    """Credential storage for the configured directory."""
    return TokenStorage(get_cli_context(ctx).config_dir)


def load_oauth_config(ctx: click.Context) -> OAuthConfig:
    """
    Build the OAuth configuration for commands that talk to the provider.

    Raises:
        ConfigurationError: If the client id is missing or a value is invalid
    """
    cli_ctx = get_cli_context(ctx)
    return OAuthConfig.load_from_file(
        cli_ctx.config_file, config_dir=cli_ctx.config_dir
    )


def print_error(message: str) -> None:
    """Print error message to stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)


def print_success(message: str) -> None:
    """Print success message."""
    click.secho(message, fg="green")


def print_warning(message: str) -> None:
    """Print warning message."""
    click.secho(f"Warning: {message}", fg="yellow")


def oauth_failure(error: TdiOAuthError, hint: Optional[str] = None) -> click.ClickException:
    """
    Turn an OAuth error into a ClickException (exit code 1).

    Args:
        error: The error raised by the OAuth layer
        hint: Extra guidance printed after the message

    Returns:
        ClickException to raise
    """
    prefix = "Authentication error"
    for error_type, label in _ERROR_PREFIXES:
        if isinstance(error, error_type):
            prefix = label
            break

    message = f"{prefix}: {error}"
    if hint:
        message = f"{message}\n{hint}"
    return click.ClickException(message)
