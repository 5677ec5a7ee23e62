"""Password gate for sensitive downloads and the static login check."""

from dataclasses import dataclass
from typing import Optional

import bcrypt

from common.constants import SENSITIVE_EXTENSIONS
from common.logging_config import get_logger
from vault.config import Settings

logger = get_logger(__name__)


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Bcrypt hash of the password
    """
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against a bcrypt hash.

    Args:
        password: Plain text password to verify
        password_hash: Bcrypt hash to verify against

    Returns:
        True if password matches hash, False otherwise
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        logger.error("Configured password hash is not a valid bcrypt hash")
        return False


def is_sensitive_file(filename: str) -> bool:
    """
    Coarse extension allow-list of file types that need the vault password.
    """
    return filename.lower().endswith(SENSITIVE_EXTENSIONS)


@dataclass(frozen=True)
class PasswordGate:
    """
    Static credential check.

    When no password is configured the gate is open: every download is
    prepared without a prompt and login accepts any credentials.
    """
    username: str = ""
    password_hash: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordGate":
        password_hash = settings.password_hash
        if not password_hash and settings.password:
            password_hash = hash_password(settings.password)
        return cls(username=settings.username, password_hash=password_hash)

    @property
    def enabled(self) -> bool:
        return bool(self.password_hash)

    def check_password(self, attempt: Optional[str]) -> bool:
        if not self.enabled:
            return True
        if not attempt:
            return False
        return verify_password(attempt, self.password_hash)

    def check_login(self, username: str, password: str) -> bool:
        if not self.enabled:
            return True
        if self.username and username != self.username:
            return False
        return verify_password(password, self.password_hash)

    def requires_password(self, filename: str) -> bool:
        return self.enabled and is_sensitive_file(filename)
