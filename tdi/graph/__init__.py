"""Microsoft Graph API client for tdi."""

from .client import GraphClient
from .exceptions import GraphAPIError

__all__ = ["GraphClient", "GraphAPIError"]
