"""Shared fixtures for tdi tests."""

import pytest

from tdi.oauth.config import OAuthConfig

TDI_ENV_VARS = (
    "TDI_CLIENT_ID",
    "TDI_CLIENT_SECRET",
    "TDI_SCOPES",
    "TDI_CALLBACK_PORT",
    "TDI_CALLBACK_TIMEOUT",
    "TDI_EXCHANGE_MAX_RETRIES",
    "TDI_CONFIG_DIR",
    "TDI_AUTHORIZATION_URL",
    "TDI_TOKEN_URL",
    "TDI_GRAPH_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's TDI_* settings out of the tests."""
    for name in TDI_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_dir(tmp_path):
    """Empty per-test config directory (not created yet)."""
    return str(tmp_path / "tdi")


@pytest.fixture
def oauth_config(config_dir):
    """OAuth config bound to a free loopback port with fast retries."""
    return OAuthConfig(
        client_id="test_client_id",
        callback_port=0,
        config_dir=config_dir,
        callback_timeout=5,
        retry_delay=0,
        token_url="https://login.example.com/token",
        authorization_url="https://login.example.com/authorize",
    )
