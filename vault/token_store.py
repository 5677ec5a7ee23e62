"""
Short-lived download tokens.

A token grants read access to exactly one relative path until it expires.
Tokens are multi-use within their lifetime so range re-requests and media
scrubbing keep working. The full table is written to a JSON file after every
mutation and loaded back at startup so a restart does not invalidate live
tokens.
"""

import json
import os
import secrets
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol

from common.constants import TOKEN_ENTROPY_BYTES, TOKEN_EXPIRY_SECONDS
from common.logging_config import get_logger, short_token

logger = get_logger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class TokenEntry:
    """
    Persisted token record.

    Attributes:
        file_path: Path relative to the storage root
        expires: Expiry as milliseconds since the epoch
    """
    file_path: str
    expires: int

    def to_dict(self) -> dict:
        return {"filePath": self.file_path, "expires": self.expires}

    @classmethod
    def from_dict(cls, data: dict) -> "TokenEntry":
        return cls(file_path=str(data["filePath"]), expires=int(data["expires"]))


class TokenPersistence(Protocol):
    """Storage port for the token table."""

    def load(self) -> Dict[str, TokenEntry]:
        ...

    def save(self, tokens: Dict[str, TokenEntry]) -> None:
        ...


class JsonTokenFile:
    """
    Token table persisted as a single JSON object.

    Format: {"<token>": {"filePath": "<relative path>", "expires": <ms epoch>}}
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._file_lock = threading.Lock()

    def load(self) -> Dict[str, TokenEntry]:
        """
        Read the token table.

        Returns:
            Token table, empty if the file is missing

        Raises:
            OSError, ValueError: If the file cannot be read or parsed
        """
        if not self.path.exists():
            return {}

        with self._file_lock:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)

        if not isinstance(raw, dict):
            raise ValueError(f"Token file must hold a JSON object, found {type(raw).__name__}")

        tokens = {}
        for token, data in raw.items():
            try:
                tokens[token] = TokenEntry.from_dict(data)
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Skipping malformed token entry {short_token(token)}")
        return tokens

    def save(self, tokens: Dict[str, TokenEntry]) -> None:
        """
        Write the token table atomically (temp file + rename).

        Raises:
            OSError: If the file cannot be written
        """
        payload = {token: entry.to_dict() for token, entry in tokens.items()}
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with self._file_lock:
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise


class TokenStore:
    """
    In-memory token table backed by a persistence port.

    The in-memory table is authoritative for the life of the process;
    persistence failures are logged and otherwise ignored.
    """

    def __init__(
        self,
        persistence: TokenPersistence,
        clock: Clock = time.time,
        expiry_seconds: int = TOKEN_EXPIRY_SECONDS,
    ):
        """
        Initialize the store and load persisted tokens.

        Args:
            persistence: Backing storage for the token table
            clock: Returns the current time in seconds since the epoch
            expiry_seconds: Token lifetime
        """
        self.persistence = persistence
        self.clock = clock
        self.expiry_seconds = expiry_seconds
        self._tokens: Dict[str, TokenEntry] = {}
        self._load()

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, token: str) -> bool:
        return token in self._tokens

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _load(self) -> None:
        try:
            self._tokens = dict(self.persistence.load())
            logger.info(f"Loaded {len(self._tokens)} download token(s)")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading download tokens: {e}")
            self._tokens = {}

    def _persist(self) -> None:
        try:
            self.persistence.save(dict(self._tokens))
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Error saving download tokens: {e}, continuing with in-memory tokens only")

    def issue(self, file_path: str) -> str:
        """
        Create a token for a relative path.

        Args:
            file_path: Path relative to the storage root

        Returns:
            Hex token string (160 bits of entropy)
        """
        token = secrets.token_hex(TOKEN_ENTROPY_BYTES)
        expires = self._now_ms() + self.expiry_seconds * 1000
        self._tokens[token] = TokenEntry(file_path=file_path, expires=expires)

        logger.info(
            f"Token created: {short_token(token)} path={file_path} "
            f"expires_in={self.expiry_seconds}s total={len(self._tokens)}"
        )

        self._persist()
        return token

    def _lookup(self, token: str) -> Optional[TokenEntry]:
        """Return the live entry for token, evicting it if expired."""
        entry = self._tokens.get(token)
        if entry is None:
            return None

        if entry.expires <= self._now_ms():
            self._tokens.pop(token, None)
            logger.info(f"Token expired and removed: {short_token(token)}")
            self._persist()
            return None

        return entry

    def peek(self, token: str) -> Optional[str]:
        """
        Resolve a token without consuming it.

        Returns:
            The token's relative path, or None if unknown or expired
        """
        entry = self._lookup(token)
        if entry is None:
            logger.debug(f"Token peek miss: {short_token(token)}")
            return None
        return entry.file_path

    def consume(self, token: str) -> Optional[str]:
        """
        Resolve a token and delete it (single-use access).

        Returns:
            The token's relative path, or None if unknown or expired
        """
        entry = self._lookup(token)
        if entry is None:
            return None

        self._tokens.pop(token, None)
        self._persist()
        return entry.file_path

    def sweep(self) -> int:
        """
        Evict every expired token.

        Returns:
            Number of tokens removed
        """
        now = self._now_ms()
        expired = [token for token, entry in list(self._tokens.items()) if entry.expires <= now]

        for token in expired:
            self._tokens.pop(token, None)

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired token(s)")
            self._persist()

        return len(expired)
