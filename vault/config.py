"""Configuration settings for the vault server."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from common.constants import DEFAULT_SERVER_PORT, TOKEN_EXPIRY_SECONDS, TOKEN_SWEEP_INTERVAL_SECONDS


STORAGE_ROOT = os.environ.get("VAULT_STORAGE_ROOT", os.path.join(os.getcwd(), "uploads"))

TEMP_DIR = os.environ.get("VAULT_TEMP_DIR", "")

TOKEN_FILE = os.environ.get("VAULT_TOKEN_FILE", os.path.join(os.getcwd(), "download-tokens.json"))

VAULT_HOST = os.environ.get("VAULT_HOST", "0.0.0.0")

VAULT_PORT = int(os.environ.get("VAULT_PORT", str(DEFAULT_SERVER_PORT)))

VAULT_USERNAME = os.environ.get("VAULT_USERNAME", "")

VAULT_PASSWORD = os.environ.get("VAULT_PASSWORD", "")

VAULT_PASSWORD_HASH = os.environ.get("VAULT_PASSWORD_HASH", "")

SESSION_MAX_AGE_SECONDS = int(os.environ.get("VAULT_SESSION_MAX_AGE", str(24 * 3600)))

SESSION_REAP_INTERVAL_SECONDS = int(os.environ.get("VAULT_SESSION_REAP_INTERVAL", "3600"))


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings handed to create_app().

    Defaults come from the module-level environment values so tests can build
    an isolated instance without touching the process environment.
    """
    storage_root: Path = field(default_factory=lambda: Path(STORAGE_ROOT))
    temp_dir: Optional[Path] = field(default_factory=lambda: Path(TEMP_DIR) if TEMP_DIR else None)
    token_file: Path = field(default_factory=lambda: Path(TOKEN_FILE))
    username: str = VAULT_USERNAME
    password: str = VAULT_PASSWORD
    password_hash: str = VAULT_PASSWORD_HASH
    token_expiry_seconds: int = TOKEN_EXPIRY_SECONDS
    token_sweep_interval_seconds: int = TOKEN_SWEEP_INTERVAL_SECONDS
    session_max_age_seconds: int = SESSION_MAX_AGE_SECONDS
    session_reap_interval_seconds: int = SESSION_REAP_INTERVAL_SECONDS

    @property
    def upload_temp_dir(self) -> Path:
        """Directory holding in-progress upload sessions."""
        return self.temp_dir if self.temp_dir is not None else self.storage_root / ".tmp"
