"""Tests for the upload, download and media API endpoints."""

import io
import zipfile
from urllib.parse import parse_qs, urlparse

import pytest


def send_chunk(client, upload_id, index, data):
    return client.post(
        '/api/upload/chunk',
        files={'chunk': ('blob', data, 'application/octet-stream')},
        data={'uploadId': upload_id, 'chunkIndex': str(index)},
    )


def prepare(client, file_path, password=None):
    payload = {'filePath': file_path}
    if password is not None:
        payload['password'] = password
    return client.post('/api/download/prepare', json=payload)


@pytest.fixture
def stored_file(storage_root, sample_bytes):
    (storage_root / 'data.bin').write_bytes(sample_bytes)
    return 'data.bin'


@pytest.fixture
def download_url(client, stored_file):
    response = prepare(client, stored_file)
    assert response.status_code == 200
    return response.json()['downloadUrl']


def test_root_and_health(client):
    assert client.get('/').json()['status'] == 'running'
    response = client.get('/health')
    assert response.status_code == 200
    assert response.json()['status'] == 'healthy'


def test_responses_carry_request_id(client):
    response = client.get('/health')
    assert response.headers['X-Request-ID']


def test_chunked_upload_round_trip(client, storage_root):
    """Test chunks sent out of order over HTTP are finalized in order."""
    chunks = [f'part-{i:02d};'.encode() for i in range(12)]
    for index in [3, 11, 0, 10, 1, 2, 9, 4, 8, 5, 7, 6]:
        response = send_chunk(client, 'http-upload', index, chunks[index])
        assert response.status_code == 200
        assert response.json() == {'success': True}

    response = client.post('/api/upload/finalize', json={
        'uploadId': 'http-upload',
        'fileName': 'parts.txt',
        'currentPath': '',
        'totalChunks': 12,
    })

    assert response.status_code == 200
    assert response.json() == {'success': True, 'path': 'parts.txt'}
    assert (storage_root / 'parts.txt').read_bytes() == b''.join(chunks)


def test_finalize_with_gap_returns_409(client, storage_root):
    send_chunk(client, 'gap', 0, b'a')
    send_chunk(client, 'gap', 2, b'c')

    response = client.post('/api/upload/finalize', json={'uploadId': 'gap', 'fileName': 'gap.txt'})

    assert response.status_code == 409
    assert response.json()['code'] == 'INCOMPLETE_UPLOAD'
    assert not (storage_root / 'gap.txt').exists()


def test_finalize_unknown_session_returns_404(client):
    response = client.post('/api/upload/finalize', json={'uploadId': 'ghost', 'fileName': 'x.txt'})
    assert response.status_code == 404
    assert response.json()['code'] == 'UPLOAD_SESSION_NOT_FOUND'


def test_finalize_traversal_returns_400(client, tmp_path):
    send_chunk(client, 'evil', 0, b'a')

    response = client.post('/api/upload/finalize', json={
        'uploadId': 'evil',
        'fileName': 'pwned.txt',
        'currentPath': '../..',
    })

    assert response.status_code == 400
    assert response.json()['code'] == 'PATH_TRAVERSAL'


def test_chunk_with_bad_upload_id_returns_400(client):
    response = send_chunk(client, '../../etc', 0, b'a')
    assert response.status_code == 400
    assert response.json()['code'] == 'VALIDATION_ERROR'


def test_chunk_missing_fields_returns_422(client):
    response = client.post('/api/upload/chunk', data={'uploadId': 'x'})
    assert response.status_code == 422


def test_abandon_upload(client, storage_root):
    send_chunk(client, 'bye', 0, b'a')

    assert client.delete('/api/upload/bye').status_code == 200
    assert not (storage_root / '.tmp' / 'bye').exists()
    assert client.delete('/api/upload/bye').status_code == 404


def test_prepare_returns_token_url(client, stored_file):
    response = prepare(client, stored_file)

    url = response.json()['downloadUrl']
    assert url.startswith('/api/download?token=')
    token = parse_qs(urlparse(url).query)['token'][0]
    assert client.app.state.token_store.peek(token) == 'data.bin'


def test_prepare_missing_file_returns_404(client):
    response = prepare(client, 'nope.bin')
    assert response.status_code == 404
    assert response.json()['code'] == 'FILE_NOT_FOUND'


def test_prepare_refuses_pending_upload_chunks(client, storage_root):
    send_chunk(client, 'pending', 0, b'secret')

    download = prepare(client, '.tmp/pending/0')
    media = client.post('/api/media/token', json={'filePath': '.tmp/pending/0'})
    bundle = client.post('/api/download/zip', json={'files': ['.tmp/pending/0']})

    assert [r.status_code for r in (download, media, bundle)] == [400] * 3
    assert download.json()['code'] == 'PATH_TRAVERSAL'
    assert len(client.app.state.token_store) == 0


def test_full_download(client, download_url, sample_bytes):
    response = client.get(download_url)

    assert response.status_code == 200
    assert response.content == sample_bytes
    assert response.headers['accept-ranges'] == 'bytes'
    assert response.headers['content-length'] == '1000'
    assert response.headers['content-type'] == 'application/octet-stream'
    assert response.headers['cache-control'] == 'no-cache'
    assert response.headers['content-disposition'] == 'attachment; filename="data.bin"'


def test_partial_download(client, download_url, sample_bytes):
    """Test bytes=100-199 of a 1000-byte file."""
    response = client.get(download_url, headers={'Range': 'bytes=100-199'})

    assert response.status_code == 206
    assert response.headers['content-range'] == 'bytes 100-199/1000'
    assert response.headers['content-length'] == '100'
    assert response.content == sample_bytes[100:200]


def test_open_ended_range(client, download_url, sample_bytes):
    response = client.get(download_url, headers={'Range': 'bytes=990-'})

    assert response.status_code == 206
    assert response.headers['content-range'] == 'bytes 990-999/1000'
    assert response.content == sample_bytes[990:]


def test_token_is_reusable_for_ranges(client, download_url, sample_bytes):
    parts = [
        client.get(download_url, headers={'Range': f'bytes={start}-{start + 249}'}).content
        for start in (0, 250, 500, 750)
    ]
    assert b''.join(parts) == sample_bytes


@pytest.mark.parametrize('header', ['bytes=1000-', 'bytes=500-1000', 'bytes=-100', 'bytes=0-1,5-6', 'bytes=9-3'])
def test_unsatisfiable_range_returns_416(client, download_url, header):
    response = client.get(download_url, headers={'Range': header})

    assert response.status_code == 416
    assert response.headers['content-range'] == 'bytes */1000'
    assert response.json()['code'] == 'RANGE_NOT_SATISFIABLE'


def test_missing_token_returns_400(client):
    response = client.get('/api/download')
    assert response.status_code == 400
    assert response.json()['code'] == 'MISSING_TOKEN'


def test_unknown_token_returns_403(client):
    response = client.get('/api/download', params={'token': 'ab' * 20})
    assert response.status_code == 403
    assert response.json()['code'] == 'INVALID_TOKEN'


def test_expired_token_returns_403(client, download_url, clock):
    clock.advance(30 * 60)

    response = client.get(download_url)

    assert response.status_code == 403
    assert response.json()['code'] == 'INVALID_TOKEN'


def test_deleted_file_returns_404(client, download_url, storage_root):
    (storage_root / 'data.bin').unlink()

    response = client.get(download_url)

    assert response.status_code == 404
    assert response.json()['code'] == 'FILE_NOT_FOUND'


def test_non_ascii_name_is_url_encoded(client, storage_root):
    (storage_root / 'résumé 2024.pdf').write_bytes(b'%PDF')
    url = prepare(client, 'résumé 2024.pdf').json()['downloadUrl']

    response = client.get(url)

    assert response.headers['content-disposition'] == 'attachment; filename="r%C3%A9sum%C3%A9%202024.pdf"'


def test_media_streams_inline(client, storage_root):
    (storage_root / 'notes.txt').write_bytes(b'hello media')

    token_response = client.post('/api/media/token', json={'filePath': 'notes.txt'})
    assert token_response.status_code == 200
    token = token_response.json()['token']

    response = client.get('/api/media', params={'token': token})

    assert response.status_code == 200
    assert response.content == b'hello media'
    assert response.headers['content-type'].startswith('text/plain')
    assert response.headers['content-disposition'].startswith('inline;')
    assert response.headers['cache-control'] == 'public, max-age=31536000'


def test_media_supports_seeking(client, storage_root):
    (storage_root / 'clip.mp4').write_bytes(bytes(range(200)))
    token = client.post('/api/media/token', json={'filePath': 'clip.mp4'}).json()['token']

    response = client.get('/api/media', params={'token': token}, headers={'Range': 'bytes=100-'})

    assert response.status_code == 206
    assert response.headers['content-type'] == 'video/mp4'
    assert response.content == bytes(range(100, 200))


def test_zip_bundles_files_and_skips_folders(client, storage_root):
    (storage_root / 'a.txt').write_bytes(b'A')
    (storage_root / 'docs').mkdir()
    (storage_root / 'docs' / 'b.txt').write_bytes(b'B')

    response = client.post('/api/download/zip', json={'files': ['a.txt', 'docs/b.txt', 'docs', 'missing.txt']})

    assert response.status_code == 200
    assert response.headers['content-type'] == 'application/zip'
    assert 'selected_files_' in response.headers['content-disposition']
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert sorted(archive.namelist()) == ['a.txt', 'b.txt']
        assert archive.read('b.txt') == b'B'


@pytest.mark.parametrize('files', [[], [f'f{i}.txt' for i in range(51)]])
def test_zip_rejects_empty_or_oversized_selection(client, files):
    response = client.post('/api/download/zip', json={'files': files})
    assert response.status_code == 400


def test_zip_rejects_traversal(client):
    response = client.post('/api/download/zip', json={'files': ['../secret.txt']})
    assert response.status_code == 400
    assert response.json()['code'] == 'PATH_TRAVERSAL'


class TestPasswordGate:
    """Download preparation when a vault password is configured."""

    @pytest.fixture(autouse=True)
    def files(self, storage_root):
        (storage_root / 'server.pem').write_bytes(b'-----BEGIN KEY-----')
        (storage_root / 'notes.txt').write_bytes(b'plain')

    def test_sensitive_file_requires_password(self, protected_client):
        response = prepare(protected_client, 'server.pem')

        assert response.status_code == 401
        body = response.json()
        assert body['requiresAuth'] is True
        assert body['reason']

    def test_sensitive_file_with_password(self, protected_client, vault_password):
        response = prepare(protected_client, 'server.pem', password=vault_password)

        assert response.status_code == 200
        assert protected_client.get(response.json()['downloadUrl']).content == b'-----BEGIN KEY-----'

    def test_wrong_password_rejected(self, protected_client):
        response = prepare(protected_client, 'server.pem', password='guess')

        assert response.status_code == 401
        assert response.json()['code'] == 'INVALID_CREDENTIALS'

    def test_ordinary_file_needs_no_password(self, protected_client):
        assert prepare(protected_client, 'notes.txt').status_code == 200

    def test_media_token_is_gated_too(self, protected_client):
        response = protected_client.post('/api/media/token', json={'filePath': 'server.pem'})
        assert response.status_code == 401
        assert response.json()['requiresAuth'] is True

    def test_open_vault_serves_sensitive_files(self, client):
        assert prepare(client, 'server.pem').status_code == 200
