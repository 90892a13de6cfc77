"""
Token storage for tdi.

This module provides file-based persistence of the access token obtained at
login. The credential document lives at ``<config_dir>/credentials.json``
and is read by every authenticated command.

Document shape::

    {
      "access_token": {"access_token": "...", "token_type": "Bearer", ...},
      "session": {"client_id": "...", "scopes": [...], ...},
      "saved_at": "2026-01-25T10:00:00+00:00"
    }

Readers only require ``access_token.access_token`` and ignore anything else.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import CREDENTIALS_FILENAME
from .exceptions import CredentialStoreError, NotAuthenticatedError
from .session import OAuthSession

logger = logging.getLogger(__name__)

_KNOWN_FIELDS = ("access_token", "token_type", "expires_in", "scopes", "issued_at")


@dataclass
class AccessToken:
    """
    OAuth access token obtained from the token endpoint.

    Attributes:
        access_token: Bearer token for API calls
        token_type: Token type (typically "Bearer")
        expires_in: Token lifetime in seconds from issue time, if the provider sent one
        scopes: Scopes requested by the session that obtained the token
        issued_at: ISO timestamp of when the token was issued
        extras: Any other fields the provider returned (refresh_token, id_token, ...)
    """

    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    scopes: List[str] = field(default_factory=list)
    issued_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def expires_at(self) -> Optional[datetime]:
        """
        Calculate expiration datetime.

        Returns:
            Datetime when the token expires (timezone-aware UTC), or None if unknown
        """
        if self.expires_in is None:
            return None
        issued = datetime.fromisoformat(self.issued_at)
        if issued.tzinfo is None:
            issued = issued.replace(tzinfo=timezone.utc)
        return issued + timedelta(seconds=self.expires_in)

    @property
    def is_expired(self) -> bool:
        """True once a known expiry has passed; tokens without expiry never expire."""
        expires_at = self.expires_at
        return expires_at is not None and datetime.now(timezone.utc) >= expires_at

    def to_dict(self) -> dict:
        """
        Flatten to the persisted ``access_token`` object.

        Provider extras sit next to the known fields.
        """
        data = dict(self.extras)
        data.update(
            access_token=self.access_token,
            token_type=self.token_type,
            expires_in=self.expires_in,
            scopes=list(self.scopes),
            issued_at=self.issued_at,
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "AccessToken":
        """
        Create AccessToken from the persisted ``access_token`` object.

        Unknown keys are kept in ``extras``.

        Raises:
            KeyError: If access_token is missing
            ValueError: If access_token is empty, issued_at is not ISO-8601
                or expires_in is not a usable number of seconds
        """
        token = data["access_token"]
        if not isinstance(token, str) or not token:
            raise ValueError("access_token must be a non-empty string")

        expires_in = data.get("expires_in")
        scopes = data.get("scopes") or []
        if isinstance(scopes, str):
            scopes = scopes.split()

        kwargs: Dict[str, Any] = {
            "access_token": token,
            "token_type": data.get("token_type") or "Bearer",
            "expires_in": int(expires_in) if expires_in is not None else None,
            "scopes": list(scopes),
            "extras": {k: v for k, v in data.items() if k not in _KNOWN_FIELDS},
        }
        if kwargs["expires_in"] is not None and kwargs["expires_in"] < 0:
            raise ValueError(f"expires_in cannot be negative: {expires_in}")
        if data.get("issued_at"):
            datetime.fromisoformat(data["issued_at"])
            kwargs["issued_at"] = data["issued_at"]

        access_token = cls(**kwargs)
        try:
            access_token.expires_at
        except OverflowError as e:
            raise ValueError(f"expires_in out of range: {expires_in}") from e
        return access_token


class TokenStorage:
    """
    File-based credential storage (plaintext JSON, mode 600).

    Writes go to a temporary file in the same directory which is then
    renamed over ``credentials.json``, so a failed login never leaves a
    truncated credential behind.
    """

    def __init__(self, config_dir: str):
        """
        Initialize token storage.

        Args:
            config_dir: Directory holding credentials.json (created on first save)
        """
        self.config_dir = Path(config_dir)
        self.token_file = self.config_dir / CREDENTIALS_FILENAME

    def _set_secure_permissions(self, path: Path) -> None:
        """Set file permissions to user-only read/write (600)."""
        try:
            path.chmod(0o600)
        except OSError as e:
            logger.warning(f"Could not set secure permissions: {e}")

    def save(self, token: AccessToken, session: Optional[OAuthSession] = None) -> None:
        """
        Save the token (and the session it came from) to the credential file.

        Args:
            token: Token to persist
            session: Session metadata stored alongside the token

        Raises:
            CredentialStoreError: If the directory or file cannot be written
        """
        document = {
            "access_token": token.to_dict(),
            "session": session.to_dict() if session else None,
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create config directory {self.config_dir}: {e}")
            raise CredentialStoreError(
                f"Could not create config directory {self.config_dir}: {e}"
            ) from e

        tmp_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.config_dir,
                prefix=".credentials-",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_path = Path(f.name)
                json.dump(document, f, indent=2)
            self._set_secure_permissions(tmp_path)
            os.replace(tmp_path, self.token_file)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save credentials: {e}")
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise CredentialStoreError(f"Failed to save credentials: {e}") from e

        logger.info(f"Credentials saved to {self.token_file}")

    def load(self) -> AccessToken:
        """
        Load the stored token.

        Returns:
            AccessToken from the credential file

        Raises:
            NotAuthenticatedError: If no credential file exists
            CredentialStoreError: If the file cannot be read or parsed
        """
        if not self.token_file.exists():
            logger.debug(f"No credential file found at {self.token_file}")
            raise NotAuthenticatedError(
                "Not logged in. Run 'tdi login' first."
            )

        try:
            with open(self.token_file, "r", encoding="utf-8") as f:
                document = json.load(f)
        # JSONDecodeError and UnicodeDecodeError
        except ValueError as e:
            logger.warning(f"Invalid credential file at {self.token_file}: {e}")
            raise CredentialStoreError(
                f"Credential store {self.token_file} is corrupt. "
                f"Run 'tdi login' again."
            ) from e
        except OSError as e:
            logger.warning(f"Could not read credential file: {e}")
            raise CredentialStoreError(f"Could not read credentials: {e}") from e

        try:
            token = AccessToken.from_dict(document["access_token"])
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Credential file at {self.token_file} has no usable token: {e}")
            raise CredentialStoreError(
                f"Credential store {self.token_file} is corrupt. "
                f"Run 'tdi login' again."
            ) from e

        logger.debug(f"Credentials loaded from {self.token_file}")
        return token

    def load_bearer_token(self) -> str:
        """Token string for the ``Authorization: Bearer`` header."""
        return self.load().access_token

    def delete(self) -> bool:
        """
        Delete the credential file.

        Returns:
            True if file was deleted, False if file didn't exist

        Raises:
            CredentialStoreError: If the file exists but cannot be removed
        """
        if not self.token_file.exists():
            logger.debug(f"Credential file does not exist: {self.token_file}")
            return False

        try:
            self.token_file.unlink()
        except OSError as e:
            logger.error(f"Failed to delete credential file: {e}")
            raise CredentialStoreError(f"Failed to delete credential file: {e}") from e

        logger.info(f"Credential file deleted: {self.token_file}")
        return True

    def exists(self) -> bool:
        return self.token_file.exists()
