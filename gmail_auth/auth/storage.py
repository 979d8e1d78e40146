"""File-based persistence of the refresh-token record.

Only the long-lived part of the credential is written to disk: the client
identity and the refresh token. Access tokens and their expiry live in
memory and are re-minted from the refresh token on demand.

Storage location: ./.credentials/token.json (override with GMAIL_TOKEN_PATH)

File format::

    {
      "type": "authorized_user",
      "clientId": "...",
      "clientSecret": "...",
      "refreshToken": "..."
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from gmail_auth.config import get_token_path
from gmail_auth.utils.errors import StorageError

logger = logging.getLogger(__name__)


class TokenRecord(BaseModel):
    """The persisted refresh-token record.

    Attributes:
        type: Always "authorized_user".
        client_id: OAuth client ID the token was issued to.
        client_secret: OAuth client secret the token was issued to.
        refresh_token: Long-lived refresh token; never empty.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    type: Literal["authorized_user"] = "authorized_user"
    client_id: str = Field(..., min_length=1)
    client_secret: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)

    def to_json(self) -> str:
        """Serialize with the camelCase keys used on disk."""
        return json.dumps(self.model_dump(by_alias=True), indent=2)


class TokenStore:
    """Reads, writes and deletes the token record at a single path.

    A missing file is not an error; it means no token has been stored yet.
    The store assumes a single writer: nothing guards the file against
    concurrent authentication from several processes.

    Example:
        >>> store = TokenStore(Path("/tmp/token.json"))
        >>> store.save(TokenRecord(client_id="id", client_secret="s", refresh_token="rt"))
        >>> store.load().refresh_token
        'rt'
    """

    def __init__(self, path: Path | None = None) -> None:
        """Initialize the store.

        Args:
            path: Token file location. Defaults to ``get_token_path()``.
        """
        self._path = path or get_token_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> TokenRecord | None:
        """Load the stored record.

        Returns:
            The TokenRecord, or None if no token file exists.

        Raises:
            StorageError: If the file cannot be read or does not hold a
                valid record.
        """
        try:
            content = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No token file at %s", self._path)
            return None
        except OSError as e:
            logger.error("Failed to read token file %s: %s", self._path, e)
            raise StorageError(
                f"Failed to read token file: {e}",
                details=self._details("load", e),
            ) from e

        try:
            record = TokenRecord.model_validate(json.loads(content))
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in token file %s: %s", self._path, e)
            raise StorageError(
                "Token file contains invalid JSON",
                details=self._details("load", e),
            ) from e
        except ValidationError as e:
            logger.error("Token file %s has an invalid shape: %s", self._path, e)
            raise StorageError(
                "Token file does not contain a valid token record",
                details=self._details("load", e),
            ) from e

        logger.debug("Loaded token record from %s", self._path)
        return record

    def save(self, record: TokenRecord) -> None:
        """Write the full record, replacing any previous one.

        Creates the parent directory if needed and restricts the file to
        owner read/write (0600).

        Raises:
            StorageError: If the directory or file cannot be written.
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(record.to_json(), encoding="utf-8")
            self._path.chmod(0o600)
        except OSError as e:
            logger.error("Failed to save token file %s: %s", self._path, e)
            raise StorageError(
                f"Failed to save token: {e}",
                details=self._details("save", e),
            ) from e

        logger.info("Saved token record to %s", self._path)

    def delete(self) -> bool:
        """Delete the stored record.

        Returns:
            True if a file was removed, False if none existed.

        Raises:
            StorageError: If the file exists but cannot be removed.
        """
        try:
            self._path.unlink()
        except FileNotFoundError:
            logger.debug("No token file to delete at %s", self._path)
            return False
        except OSError as e:
            logger.error("Failed to delete token file %s: %s", self._path, e)
            raise StorageError(
                f"Failed to delete token: {e}",
                details=self._details("delete", e),
            ) from e

        logger.info("Deleted token record at %s", self._path)
        return True

    def exists(self) -> bool:
        return self._path.exists()

    def _details(self, operation: str, error: Exception) -> dict[str, object]:
        return {
            "operation": operation,
            "path": str(self._path),
            "error_type": type(error).__name__,
        }


__all__ = [
    "TokenRecord",
    "TokenStore",
]
