"""Configuration management for the vault CLI."""

import json
import os
import shutil
import tempfile
from pathlib import Path

from common.constants import DEFAULT_SERVER_PORT, DOWNLOAD_CONCURRENCY, UPLOAD_CHUNK_SIZE_BYTES
from common.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.filevault' / 'config.json'


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "server_host": os.environ.get("VAULT_HOST", "localhost"),
        "server_port": int(os.environ.get("VAULT_PORT", str(DEFAULT_SERVER_PORT))),
        "timeout": 30,
        "max_retries": 3,
        "retry_backoff_multiplier": 2,
        "download_dir": os.path.join(os.getcwd(), "downloads"),
        "upload_chunk_size": UPLOAD_CHUNK_SIZE_BYTES,
        "download_concurrency": DOWNLOAD_CONCURRENCY,
    }

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.filevault/config.json)
        """
        self.config_path = Path(config_path)
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        A config file that cannot be parsed is backed up to config.json.bak
        and replaced by the defaults for this session.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.filevault' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            logger.warning(f"Home directory not writable, using {self.config_path}")

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Unreadable config {self.config_path}: {e}, using defaults")
                backup_path = self.config_path.with_suffix('.json.bak')
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError as copy_error:
                    logger.warning(f"Could not back up config: {copy_error}")
                return self.DEFAULT_CONFIG.copy()

        config = self.DEFAULT_CONFIG.copy()
        self.data = config
        self.save()
        return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except OSError as e:
            logger.warning(f"Could not save config to {self.config_path}: {e}")

    def get_base_url(self) -> str:
        """
        Get server base URL.

        Returns:
            Base URL string (e.g., "http://localhost:8000")
        """
        host = self.data.get('server_host', 'localhost')
        port = self.data.get('server_port', DEFAULT_SERVER_PORT)
        return f"http://{host}:{port}"

    def get_timeout(self) -> int:
        return self.data.get('timeout', 30)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', 3),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
        }

    def get_download_dir(self) -> Path:
        return Path(self.data.get('download_dir') or os.path.join(os.getcwd(), "downloads"))

    def get_upload_chunk_size(self) -> int:
        return int(self.data.get('upload_chunk_size', UPLOAD_CHUNK_SIZE_BYTES))

    def get_download_concurrency(self) -> int:
        return int(self.data.get('download_concurrency', DOWNLOAD_CONCURRENCY))

    def get_username(self) -> str:
        return self.data.get('username', '')

    def set_username(self, username: str) -> None:
        """
        Remember the last successfully logged-in username.

        Args:
            username: Vault username
        """
        self.data['username'] = username
        self.save()
