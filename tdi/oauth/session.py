"""
Per-attempt OAuth session state and authorization URL construction.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Iterable, Optional, Tuple
from urllib.parse import urlencode

from .config import OAuthConfig

logger = logging.getLogger(__name__)


def _unique(scopes: Iterable[str]) -> Tuple[str, ...]:
    """Drop repeated scopes, keeping first-occurrence order."""
    seen = set()
    ordered = []
    for scope in scopes:
        if scope not in seen:
            seen.add(scope)
            ordered.append(scope)
    return tuple(ordered)


@dataclass(frozen=True)
class OAuthSession:
    """
    Parameters of a single login attempt.

    Created once the callback server is bound, so that ``redirect_uri``
    carries the port actually in use. Discarded when the attempt ends; its
    metadata is stored next to the token on success.

    Attributes:
        client_id: Application (client) ID
        scopes: Requested scopes (no duplicates, request order preserved)
        redirect_uri: Loopback URI the provider redirects the browser to
        authorize_endpoint: Provider authorization endpoint
        token_endpoint: Provider token endpoint
    """

    client_id: str
    scopes: Tuple[str, ...]
    redirect_uri: str
    authorize_endpoint: str
    token_endpoint: str

    @classmethod
    def from_config(
        cls, config: OAuthConfig, redirect_uri: Optional[str] = None
    ) -> "OAuthSession":
        """
        Build a session from static configuration.

        Args:
            config: OAuth configuration
            redirect_uri: Redirect URI override (default: config.redirect_uri)

        Returns:
            OAuthSession instance
        """
        return cls(
            client_id=config.client_id,
            scopes=_unique(config.scopes),
            redirect_uri=redirect_uri or config.redirect_uri,
            authorize_endpoint=config.authorization_url,
            token_endpoint=config.token_url,
        )

    @property
    def scope(self) -> str:
        """Scopes in the space-delimited form used on the wire."""
        return " ".join(self.scopes)

    def authorization_url(self) -> str:
        """
        Generate the provider authorization URL the browser must visit.

        Returns:
            Complete authorization URL with query parameters
        """
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "response_mode": "query",
            "scope": self.scope,
        }
        endpoint = self.authorize_endpoint
        if endpoint.endswith(("?", "&")):
            separator = ""
        else:
            separator = "&" if "?" in endpoint else "?"
        url = f"{endpoint}{separator}{urlencode(params)}"
        logger.debug(f"Generated authorization URL: {url}")
        return url

    def to_dict(self) -> dict:
        """Session metadata for the credential file."""
        data = asdict(self)
        data["scopes"] = list(self.scopes)
        return data
