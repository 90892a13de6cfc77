"""
OAuth configuration for tdi.

This module provides configuration management for the OAuth 2.0
authorization code flow. Configuration is built once at startup and passed
explicitly to the callback server, the token exchange client and the
coordinator.

Precedence order (highest to lowest):
1. Environment variables (TDI_*)
2. YAML config file (<config_dir>/config.yaml)
3. Default values
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Tuple

import click
import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

APP_NAME = "tdi"

DEFAULT_SCOPES: Tuple[str, ...] = ("tasks.readwrite", "tasks.read", "user.read")

DEFAULT_AUTHORIZATION_URL = (
    "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
)
DEFAULT_TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"

CREDENTIALS_FILENAME = "credentials.json"
CONFIG_FILENAME = "config.yaml"


def default_config_dir() -> str:
    """
    Per-user configuration directory for tdi.

    Honors TDI_CONFIG_DIR, otherwise the platform's application config
    directory (e.g. ~/.config/tdi on Linux).
    """
    return os.environ.get("TDI_CONFIG_DIR") or click.get_app_dir(APP_NAME)


@dataclass
class OAuthConfig:
    """
    Configuration for the tdi OAuth 2.0 login.

    Attributes:
        client_id: Application (client) ID registered with the provider
        client_secret: Client secret, only needed for confidential clients
        scopes: Requested scopes, in request order
        callback_host: Host name used in the redirect URI (default: localhost)
        bind_host: Interface the callback server binds to (default: 127.0.0.1)
        callback_port: Port for the callback server (default: 8000, 0 = any free port)
        callback_path: URL path for the redirect (default: /redirect)
        authorization_url: Provider authorization endpoint
        token_url: Provider token endpoint
        config_dir: Directory holding credentials.json
        callback_timeout: Seconds to wait for the browser redirect
        request_timeout: Seconds before a token endpoint request times out
        exchange_max_retries: Retries for network errors during token exchange
        retry_delay: Base delay in seconds for exponential backoff
    """

    client_id: str
    client_secret: Optional[str] = None
    scopes: Tuple[str, ...] = DEFAULT_SCOPES

    # Callback configuration
    callback_host: str = "localhost"
    bind_host: str = "127.0.0.1"
    callback_port: int = 8000
    callback_path: str = "/redirect"

    # Provider endpoints
    authorization_url: str = DEFAULT_AUTHORIZATION_URL
    token_url: str = DEFAULT_TOKEN_URL

    # Credential storage
    config_dir: str = field(default_factory=default_config_dir)

    # Timing and retries
    callback_timeout: float = 300
    request_timeout: float = 30
    exchange_max_retries: int = 2
    retry_delay: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.client_id:
            raise ConfigurationError("client_id cannot be empty")

        if isinstance(self.scopes, str):
            self.scopes = tuple(self.scopes.split())
        else:
            self.scopes = tuple(self.scopes)

        if not self.scopes:
            raise ConfigurationError("at least one scope must be requested")

        for scope in self.scopes:
            if not isinstance(scope, str) or not scope or any(c.isspace() for c in scope):
                raise ConfigurationError(f"invalid scope: {scope!r}")

        if not isinstance(self.callback_port, int) or not (
            0 <= self.callback_port <= 65535
        ):
            raise ConfigurationError(
                f"callback_port must be between 0 and 65535, got {self.callback_port}"
            )

        if not self.callback_path.startswith("/"):
            raise ConfigurationError("callback_path must start with '/'")

        for name in ("authorization_url", "token_url"):
            value = getattr(self, name)
            if not value.startswith(("http://", "https://")):
                raise ConfigurationError(f"{name} must start with http:// or https://")

        if self.callback_timeout <= 0:
            raise ConfigurationError("callback_timeout must be positive")

        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")

        if self.exchange_max_retries < 0:
            raise ConfigurationError("exchange_max_retries cannot be negative")

        if self.retry_delay < 0:
            raise ConfigurationError("retry_delay cannot be negative")

    @property
    def redirect_uri(self) -> str:
        """
        Redirect URI registered with the provider.

        Returns:
            Loopback redirect URL (e.g., http://localhost:8000/redirect)
        """
        return f"http://{self.callback_host}:{self.callback_port}{self.callback_path}"

    @property
    def credentials_file(self) -> Path:
        """Path of the persisted credential document."""
        return Path(self.config_dir) / CREDENTIALS_FILENAME

    @classmethod
    def from_env(cls) -> "OAuthConfig":
        """
        Load configuration from environment variables only.

        Required environment variables:
            TDI_CLIENT_ID: Application (client) ID

        Returns:
            OAuthConfig instance

        Raises:
            ConfigurationError: If required environment variables are missing
        """
        return cls.merge_with_defaults({})

    @classmethod
    def get_default_config_path(cls, config_dir: Optional[str] = None) -> Path:
        """Default YAML configuration file path (<config_dir>/config.yaml)."""
        return Path(config_dir or default_config_dir()) / CONFIG_FILENAME

    @classmethod
    def load_from_file(
        cls, path: Optional[Path] = None, config_dir: Optional[str] = None
    ) -> "OAuthConfig":
        """
        Load configuration from a YAML file merged with the environment.

        A missing file is not an error; defaults and environment variables
        are used instead.

        Args:
            path: Config file path (default: <config_dir>/config.yaml)
            config_dir: Overrides the credential directory

        Returns:
            OAuthConfig instance

        Raises:
            ConfigurationError: If the file is invalid or client_id is missing
        """
        config_path = Path(path) if path else cls.get_default_config_path(config_dir)

        config_dict: dict[str, Any] = {}
        if config_path.exists():
            try:
                with open(config_path) as f:
                    file_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Invalid YAML in configuration file: {e}"
                ) from e
            except OSError as e:
                raise ConfigurationError(
                    f"Failed to load configuration file: {e}"
                ) from e
            if file_config and not isinstance(file_config, dict):
                raise ConfigurationError(
                    f"Configuration file {config_path} must contain a mapping"
                )
            config_dict = file_config or {}
            logger.debug(f"Loaded configuration from {config_path}")
        else:
            logger.debug(f"Configuration file not found at {config_path}, using defaults")

        return cls.merge_with_defaults(config_dict, config_dir=config_dir)

    @classmethod
    def merge_with_defaults(
        cls, config_dict: dict[str, Any], config_dir: Optional[str] = None
    ) -> "OAuthConfig":
        """
        Merge a configuration dictionary with defaults and environment variables.

        The dictionary may be flat or carry its values under an ``oauth`` key.

        Args:
            config_dict: Configuration dictionary (usually from the YAML file)
            config_dir: Explicit credential directory, wins over everything

        Returns:
            OAuthConfig instance

        Raises:
            ConfigurationError: If configuration is invalid
        """
        oauth_config = config_dict.get("oauth", config_dict) or {}
        if not isinstance(oauth_config, dict):
            raise ConfigurationError("'oauth' section must be a mapping")

        client_id = os.getenv("TDI_CLIENT_ID", oauth_config.get("client_id"))
        if not client_id:
            raise ConfigurationError(
                "Missing OAuth client id. Set the environment variable:\n"
                "  TDI_CLIENT_ID=your_application_id\n"
                "or add 'oauth: {client_id: ...}' to "
                f"{cls.get_default_config_path(config_dir)}"
            )

        scopes = os.getenv("TDI_SCOPES") or oauth_config.get("scopes", DEFAULT_SCOPES)

        try:
            return cls(
                client_id=client_id,
                client_secret=os.getenv(
                    "TDI_CLIENT_SECRET", oauth_config.get("client_secret")
                ),
                scopes=scopes,
                callback_port=int(
                    os.getenv("TDI_CALLBACK_PORT", oauth_config.get("callback_port", 8000))
                ),
                authorization_url=os.getenv(
                    "TDI_AUTHORIZATION_URL",
                    oauth_config.get("authorization_url", DEFAULT_AUTHORIZATION_URL),
                ),
                token_url=os.getenv(
                    "TDI_TOKEN_URL", oauth_config.get("token_url", DEFAULT_TOKEN_URL)
                ),
                config_dir=config_dir or default_config_dir(),
                callback_timeout=float(
                    os.getenv(
                        "TDI_CALLBACK_TIMEOUT", oauth_config.get("callback_timeout", 300)
                    )
                ),
                exchange_max_retries=int(
                    os.getenv(
                        "TDI_EXCHANGE_MAX_RETRIES",
                        oauth_config.get("exchange_max_retries", 2),
                    )
                ),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
