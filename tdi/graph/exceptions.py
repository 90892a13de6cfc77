"""Exceptions for the Microsoft Graph client."""

from typing import Optional


class GraphAPIError(Exception):
    """Base exception for Graph API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
