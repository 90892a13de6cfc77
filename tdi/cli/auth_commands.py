"""
Authentication commands for the tdi CLI.

This module provides login/logout, a status check of the stored credential
and ``me``, the one command that calls the API with the bearer token.
"""

import json
from typing import Optional

import click

from tdi.graph import GraphAPIError, GraphClient
from tdi.oauth.coordinator import OAuthCoordinator
from tdi.oauth.exceptions import ConfigurationError, TdiOAuthError

from .utils import (
    get_storage,
    load_oauth_config,
    oauth_failure,
    print_success,
    print_warning,
)

CONFIG_HINT = (
    "Set the application id with:\n"
    "  export TDI_CLIENT_ID='your_application_id'"
)


@click.command()
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds to wait for the browser redirect (default: 300)",
)
@click.option(
    "--no-browser",
    is_flag=True,
    help="Don't open a browser, only print the authorization URL",
)
@click.pass_context
def login(ctx: click.Context, timeout: Optional[float], no_browser: bool) -> None:
    """
    Sign in through the browser and store the access token.

    Example: tdi login --timeout 120
    """
    try:
        config = load_oauth_config(ctx)
    except ConfigurationError as e:
        raise oauth_failure(e, CONFIG_HINT) from e

    coordinator = OAuthCoordinator(config)

    try:
        coordinator.login(open_browser=not no_browser, timeout=timeout)
    except TdiOAuthError as e:
        raise oauth_failure(e) from e

    print_success("tdi: logged in, and stored token for future use.")
    click.echo(f"   Credentials saved to: {coordinator.storage.token_file}")


@click.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Delete the stored access token."""
    storage = get_storage(ctx)
    try:
        deleted = storage.delete()
    except TdiOAuthError as e:
        raise oauth_failure(e) from e

    if deleted:
        print_success("tdi: logged out, stored token deleted.")
    else:
        print_warning("not logged in, nothing to delete.")


@click.command()
@click.option("--json", "output_json", is_flag=True, help="JSON output")
@click.pass_context
def status(ctx: click.Context, output_json: bool) -> None:
    """Show whether a token is stored and when it expires."""
    storage = get_storage(ctx)
    try:
        token = storage.load()
    except TdiOAuthError as e:
        raise oauth_failure(e, "Run 'tdi login' to sign in.") from e

    expires_at = token.expires_at
    info = {
        "authorized": True,
        "token_type": token.token_type,
        "scopes": token.scopes,
        "issued_at": token.issued_at,
        "expires_at": expires_at.isoformat() if expires_at else None,
        "expired": token.is_expired,
        "credentials_file": str(storage.token_file),
    }

    if output_json:
        click.echo(json.dumps(info, indent=2))
        return

    click.secho("Logged in", fg="green", bold=True)
    click.echo(f"Token type:  {info['token_type']}")
    click.echo(f"Scopes:      {' '.join(info['scopes']) or 'N/A'}")
    click.echo(f"Issued at:   {info['issued_at']}")
    if expires_at:
        state = "expired" if info["expired"] else "active"
        click.echo(f"Expires at:  {info['expires_at']} ({state})")
    click.echo(f"Token file:  {info['credentials_file']}")


@click.command()
@click.option("--json", "output_json", is_flag=True, help="JSON output")
@click.option(
    "--graph-url",
    envvar="TDI_GRAPH_URL",
    default=GraphClient.BASE_URL,
    show_default=True,
    help="Graph API base URL",
)
@click.pass_context
def me(ctx: click.Context, output_json: bool, graph_url: str) -> None:
    """Show the signed-in user's profile."""
    storage = get_storage(ctx)
    client = GraphClient(storage.load_bearer_token, base_url=graph_url)

    try:
        profile = client.get_me()
    except TdiOAuthError as e:
        raise oauth_failure(e) from e
    except GraphAPIError as e:
        raise click.ClickException(str(e)) from e

    if output_json:
        click.echo(json.dumps(profile, indent=2))
        return

    rows = {k: v for k, v in profile.items() if not k.startswith("@") and v not in (None, [])}
    width = max((len(k) for k in rows), default=0)
    for key, value in rows.items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        click.echo(f"{key.ljust(width)}  {value}")
