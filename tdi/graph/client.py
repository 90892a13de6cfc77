"""
Microsoft Graph API client with bearer-token authentication.

This module provides the small authenticated HTTP client used by ``tdi me``.
The token comes from a provider callable, normally
``TokenStorage.load_bearer_token``, so a missing or corrupt credential
surfaces as NotAuthenticatedError / CredentialStoreError before any request
is made.
"""

import logging
from typing import Any, Callable, Dict, Optional

import requests

from tdi.oauth.exceptions import NotAuthenticatedError

from .exceptions import GraphAPIError

logger = logging.getLogger(__name__)


class GraphClient:
    """
    Authenticated HTTP client for the Graph API.

    Example:
        from tdi.oauth import TokenStorage
        from tdi.graph import GraphClient

        storage = TokenStorage(config_dir)
        client = GraphClient(storage.load_bearer_token)
        me = client.get_me()
    """

    BASE_URL = "https://graph.microsoft.com/v1.0"

    def __init__(
        self,
        token_provider: Callable[[], str],
        base_url: Optional[str] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Graph client.

        Args:
            token_provider: Returns the bearer token for each request
            base_url: API base URL (default: Graph v1.0)
            timeout: Request timeout in seconds
            session: HTTP session to use (a new one if not provided)
        """
        self.token_provider = token_provider
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, endpoint: str) -> Dict[str, Any]:
        """
        Make authenticated HTTP request to the Graph API.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path (e.g., "/me")

        Returns:
            Decoded JSON body

        Raises:
            NotAuthenticatedError: If no token is stored or the token is rejected
            CredentialStoreError: If the stored credential is unreadable
            GraphAPIError: For other API or network errors
        """
        headers = {
            "Authorization": f"Bearer {self.token_provider()}",
            "Accept": "application/json",
        }
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Network error calling Graph API: {e}")
            raise GraphAPIError(f"Network error: {e}") from e

        if response.status_code in (401, 403):
            logger.error(f"Authentication failed ({response.status_code})")
            raise NotAuthenticatedError(
                "The stored access token was rejected. Run 'tdi login' again."
            )

        if not response.ok:
            logger.error(f"API error ({response.status_code}): {response.text}")
            raise GraphAPIError(
                f"Graph API error ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise GraphAPIError(
                f"Graph API returned invalid JSON: {e}",
                status_code=response.status_code,
            ) from e

    def get_me(self) -> Dict[str, Any]:
        """Profile of the signed-in user (GET /me)."""
        return self._request("GET", "/me")
