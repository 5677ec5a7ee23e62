"""Shared pytest fixtures for all tests."""

import pytest
from fastapi.testclient import TestClient

from vault.config import Settings
from vault.main import create_app
from vaultcli.config import Config

VAULT_PASSWORD = 's3cret-pass'


@pytest.fixture
def vault_password():
    return VAULT_PASSWORD


class FakeClock:
    """Manually advanced time source (seconds since the epoch)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage_root(tmp_path):
    """
    Create an empty storage root.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to the storage root
    """
    root = tmp_path / 'storage'
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path, storage_root):
    """Settings for an open vault (no password configured)."""
    return Settings(
        storage_root=storage_root,
        temp_dir=None,
        token_file=tmp_path / 'download-tokens.json',
        username='',
        password='',
        password_hash='',
    )


@pytest.fixture
def protected_settings(tmp_path, storage_root):
    """Settings for a vault with username 'admin' and a password."""
    return Settings(
        storage_root=storage_root,
        temp_dir=None,
        token_file=tmp_path / 'download-tokens.json',
        username='admin',
        password=VAULT_PASSWORD,
        password_hash='',
    )


@pytest.fixture
def app(settings, clock):
    return create_app(settings, clock=clock)


@pytest.fixture
def client(app):
    """Create FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def protected_client(protected_settings, clock):
    return TestClient(create_app(protected_settings, clock=clock))


@pytest.fixture
def sample_bytes():
    """1000 bytes where every offset is distinguishable."""
    return bytes(i % 251 for i in range(1000))


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Returns:
        Path to temporary .filevault directory
    """
    config_dir = tmp_path / '.filevault'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir, tmp_path):
    """
    Create temporary config instance whose downloads land under tmp_path.

    Returns:
        Config instance with temp config file
    """
    config = Config(temp_config_dir / 'config.json')
    config.data['download_dir'] = str(tmp_path / 'downloads')
    config.data['retry_backoff_multiplier'] = 0
    return config
