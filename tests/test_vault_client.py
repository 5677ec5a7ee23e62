"""Unit tests for VaultClient."""

import httpx
import pytest
from fastapi.testclient import TestClient

from vault.main import create_app
from vaultcli.vault_client import VaultClient


@pytest.fixture
def mock_transport_success():
    """Mock transport that returns successful responses."""
    def handler(request):
        if request.url.path == '/auth/login':
            return httpx.Response(200, json={'success': True, 'authenticated': True})
        elif request.url.path == '/api/files' and request.method == 'GET':
            return httpx.Response(200, json={
                'items': [
                    {'name': 'docs', 'path': 'docs', 'kind': 'folder', 'size': 0, 'lastModified': 1},
                    {'name': 'a.txt', 'path': 'a.txt', 'kind': 'file', 'size': 2048, 'lastModified': 1},
                ]
            })
        elif request.url.path == '/api/files' and request.method == 'DELETE':
            return httpx.Response(200, json={'success': True})
        elif request.url.path == '/api/folders':
            return httpx.Response(201, json={'success': True, 'path': 'docs/new'})
        elif request.url.path == '/api/files/rename':
            return httpx.Response(200, json={'success': True, 'path': 'b.txt'})
        elif request.url.path == '/api/download/zip':
            return httpx.Response(
                200,
                content=b'PK\x05\x06' + b'\x00' * 18,
                headers={'Content-Disposition': 'attachment; filename="selected_files_1.zip"'},
            )

        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client_with_mock(temp_config, mock_transport_success, sleeps):
    """Create VaultClient with mocked HTTP transport."""
    return VaultClient(temp_config, transport=mock_transport_success, sleep=sleeps.append)


def test_login_success_remembers_username(client_with_mock, temp_config):
    result = client_with_mock.login('admin', 'pw')

    assert result == 'Login successful!'
    assert temp_config.get_username() == 'admin'


def test_login_failure(temp_config):
    def error_handler(request):
        return httpx.Response(401, json={'detail': 'bad', 'code': 'INVALID_CREDENTIALS'})

    client = VaultClient(temp_config, transport=httpx.MockTransport(error_handler))
    result = client.login('admin', 'wrong')

    assert result == 'Login failed: Invalid username or password.'
    assert temp_config.get_username() == ''


def test_list_items_formats_folders_first(client_with_mock):
    result = client_with_mock.list_items()

    lines = result.splitlines()
    assert lines[0] == "1 folder(s), 1 file(s) in '/':"
    assert lines[1] == '  [dir]  docs/'
    assert lines[2].startswith('  [file] a.txt')
    assert '2.00 KiB' in lines[2]


def test_list_empty_folder(temp_config):
    client = VaultClient(temp_config, transport=httpx.MockTransport(lambda r: httpx.Response(200, json={'items': []})))
    assert client.list_items('docs') == "Folder 'docs' is empty."


def test_create_rename_delete(client_with_mock):
    assert client_with_mock.create_folder('new', 'docs') == 'Created folder: docs/new'
    assert client_with_mock.rename_item('a.txt', 'b.txt') == 'Renamed: a.txt -> b.txt'
    assert client_with_mock.delete_item('a.txt') == 'Deleted: a.txt'


def test_error_code_mapping(temp_config):
    def handler(request):
        return httpx.Response(409, json={'detail': "'docs' already exists", 'code': 'ITEM_EXISTS'})

    client = VaultClient(temp_config, transport=httpx.MockTransport(handler))
    assert client.create_folder('docs') == 'Error: An item with that name already exists.'


def test_unknown_error_includes_detail(temp_config):
    def handler(request):
        return httpx.Response(400, json={'detail': 'teapot'})

    client = VaultClient(temp_config, transport=httpx.MockTransport(handler))
    assert client.delete_item('x') == 'Error: Bad request: teapot'


def test_retries_server_errors_with_backoff(temp_config, sleeps):
    attempts = []

    def handler(request):
        attempts.append(request.headers['X-Request-ID'])
        if len(attempts) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={'items': []})

    temp_config.data['retry_backoff_multiplier'] = 2
    client = VaultClient(temp_config, transport=httpx.MockTransport(handler), sleep=sleeps.append)

    assert client.fetch_items() == []
    assert len(attempts) == 3
    assert len(set(attempts)) == 1
    assert sleeps == [1, 2]


def test_client_errors_are_not_retried(temp_config, sleeps):
    attempts = []

    def handler(request):
        attempts.append(1)
        return httpx.Response(404, json={'detail': 'gone', 'code': 'FILE_NOT_FOUND'})

    client = VaultClient(temp_config, transport=httpx.MockTransport(handler), sleep=sleeps.append)

    assert client.delete_item('gone.txt') == 'Error: File not found on server.'
    assert attempts == [1]
    assert sleeps == []


def test_connection_error_after_max_retries(temp_config, sleeps):
    def handler(request):
        raise httpx.ConnectError('refused', request=request)

    client = VaultClient(temp_config, transport=httpx.MockTransport(handler), sleep=sleeps.append)

    assert client.list_items() == 'Error: Cannot connect to vault server. Is it running?'
    assert len(sleeps) == 3


def test_download_zip_saves_archive(client_with_mock, temp_config):
    result = client_with_mock.download_zip(['a.txt'])

    saved = temp_config.get_download_dir() / 'selected_files_1.zip'
    assert 'Downloaded: selected_files_1.zip' in result
    assert saved.read_bytes().startswith(b'PK')


def test_download_reports_plain_text_unauthorized(temp_config, mock_transport_success):
    def handler(request):
        return httpx.Response(401, text='Unauthorized')

    client = VaultClient(
        temp_config,
        transport=mock_transport_success,
        async_transport=httpx.MockTransport(handler),
    )

    result = client.download('a.txt')

    assert result == 'Error: Not authenticated'


class TestAgainstServer:
    """Chunked transfers through VaultClient against the real app."""

    @pytest.fixture
    def vault_client(self, app, temp_config):
        client = VaultClient(temp_config, async_transport=httpx.ASGITransport(app=app))
        client.session = TestClient(app)
        return client

    def test_upload_then_download(self, vault_client, storage_root, temp_config, tmp_path):
        payload = bytes(i % 199 for i in range(10_000))
        local = tmp_path / 'local.bin'
        local.write_bytes(payload)
        (storage_root / 'inbox').mkdir()
        temp_config.data['upload_chunk_size'] = 3000

        upload_result = vault_client.upload([str(local)], 'inbox')
        assert 'Uploaded: inbox/local.bin' in upload_result
        assert (storage_root / 'inbox' / 'local.bin').read_bytes() == payload

        download_result = vault_client.download('inbox/local.bin')
        assert 'Downloaded: local.bin' in download_result
        assert (temp_config.get_download_dir() / 'local.bin').read_bytes() == payload

    def test_upload_skips_missing_local_files(self, vault_client, tmp_path):
        result = vault_client.upload([str(tmp_path / 'nope.txt')])
        assert result == f"Error: Not a file: {tmp_path / 'nope.txt'}"

    def test_download_missing_file(self, vault_client):
        assert vault_client.download('missing.txt') == 'Error: File not found on server.'

    def test_download_sensitive_file_needs_password(self, protected_settings, clock, temp_config, vault_password):
        app = create_app(protected_settings, clock=clock)
        (protected_settings.storage_root / 'id.pem').write_bytes(b'-----BEGIN-----')
        client = VaultClient(temp_config, async_transport=httpx.ASGITransport(app=app))
        client.session = TestClient(app)

        result = client.download('id.pem')
        assert result.startswith('Password required:')
        assert 'download id.pem --password <password>' in result

        result = client.download('id.pem', vault_password)
        assert 'Downloaded: id.pem' in result
        assert (temp_config.get_download_dir() / 'id.pem').read_bytes() == b'-----BEGIN-----'
