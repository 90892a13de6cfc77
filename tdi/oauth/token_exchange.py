"""
Authorization code exchange for tdi.

This module performs the server-to-server half of the authorization code
grant (RFC 6749 section 4.1.3): the code captured by the callback server is
posted to the provider's token endpoint and an AccessToken comes back.

Failures are split three ways so callers can decide what to retry:
- network errors (retried here with exponential backoff)
- non-200 responses from the token endpoint
- responses that are not a usable token document
"""

import logging
import time
from base64 import b64encode
from datetime import datetime, timezone
from typing import Optional

import requests

from .config import OAuthConfig
from .exceptions import (
    TokenExchangeNetworkError,
    TokenExchangeResponseError,
    TokenExchangeStatusError,
)
from .session import OAuthSession
from .token_storage import AccessToken

logger = logging.getLogger(__name__)


class TokenExchangeClient:
    """
    Exchanges authorization codes for access tokens.
    """

    def __init__(self, config: OAuthConfig, session: Optional[requests.Session] = None):
        """
        Initialize exchange client.

        Args:
            config: OAuth configuration (client secret, timeouts, retry policy)
            session: HTTP session to use (a new one if not provided)
        """
        self.config = config
        self.http = session or requests.Session()

    def _headers(self) -> dict:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        if self.config.client_secret:
            credentials = f"{self.config.client_id}:{self.config.client_secret}"
            headers["Authorization"] = f"Basic {b64encode(credentials.encode()).decode()}"
        return headers

    def exchange(self, authorization_code: str, session: OAuthSession) -> AccessToken:
        """
        Exchange authorization code for an access token.

        Args:
            authorization_code: Code received from OAuth callback
            session: Login attempt the code belongs to

        Returns:
            AccessToken carrying the session's scopes

        Raises:
            TokenExchangeNetworkError: If the endpoint is unreachable after all retries
            TokenExchangeStatusError: If the endpoint answers with a non-200 status
            TokenExchangeResponseError: If the response is not a valid token document
        """
        logger.info("Exchanging authorization code for tokens")

        data = {
            "grant_type": "authorization_code",
            "code": authorization_code,
            "redirect_uri": session.redirect_uri,
            "client_id": session.client_id,
            "scope": session.scope,
        }

        response = self._post_with_retry(session.token_endpoint, data)

        if response.status_code != 200:
            raise self._status_error(response)

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Invalid response from token endpoint: {e}")
            raise TokenExchangeResponseError(
                f"Token endpoint returned a non-JSON response: {e}"
            ) from e

        if not isinstance(payload, dict):
            raise TokenExchangeResponseError(
                "Token endpoint returned JSON that is not an object"
            )

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            logger.error("Token endpoint response has no access_token")
            raise TokenExchangeResponseError(
                "Token endpoint response does not contain an access_token"
            )

        expires_in = payload.get("expires_in")
        try:
            expires_in = int(expires_in) if expires_in is not None else None
        except (TypeError, ValueError) as e:
            raise TokenExchangeResponseError(
                f"Invalid expires_in in token response: {expires_in!r}"
            ) from e

        known = ("access_token", "token_type", "expires_in")
        token = AccessToken(
            access_token=access_token,
            token_type=payload.get("token_type") or "Bearer",
            expires_in=expires_in,
            scopes=list(session.scopes),
            issued_at=datetime.now(timezone.utc).isoformat(),
            extras={k: v for k, v in payload.items() if k not in known},
        )

        logger.info("Successfully obtained access token")
        return token

    def _post_with_retry(self, url: str, data: dict) -> requests.Response:
        """POST to the token endpoint, retrying network errors with backoff."""
        max_retries = self.config.exchange_max_retries
        retry_count = 0

        while True:
            try:
                return self.http.post(
                    url,
                    headers=self._headers(),
                    data=data,
                    timeout=self.config.request_timeout,
                )
            except requests.RequestException as e:
                if retry_count >= max_retries:
                    logger.error(
                        f"Token exchange failed after {max_retries + 1} attempts: {e}"
                    )
                    raise TokenExchangeNetworkError(
                        f"Network error during token exchange after "
                        f"{max_retries + 1} attempts: {e}"
                    ) from e

                delay = self.config.retry_delay * (2 ** retry_count)  # 1s, 2s, 4s
                logger.warning(
                    f"Network error during token exchange: {e}; retrying after {delay}s"
                )
                time.sleep(delay)
                retry_count += 1

    def _status_error(self, response: requests.Response) -> TokenExchangeStatusError:
        detail = ""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            detail = f": {body['error']}"
            if body.get("error_description"):
                detail = f"{detail} - {body['error_description']}"

        logger.error(f"Token exchange failed: {response.status_code}{detail}")
        return TokenExchangeStatusError(
            f"Token exchange failed with status {response.status_code}{detail}. "
            f"Check that your client id and redirect URI are registered correctly.",
            status_code=response.status_code,
        )
