"""Tests for the chunked upload orchestrator."""

import json
import os

import httpx
import pytest

from vaultcli.uploader import UploadOrchestrator


@pytest.fixture
def local_file(tmp_path):
    path = tmp_path / 'local' / 'report.bin'
    path.parent.mkdir()
    path.write_bytes(os.urandom(12_345))
    return path


@pytest.mark.asyncio
async def test_upload_round_trip_against_app(app, storage_root, local_file):
    """Test a 13-chunk upload reassembles byte-identically on the server."""
    updates = []
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url='http://test') as client:
        orchestrator = UploadOrchestrator(client, chunk_size=1000, on_update=lambda item: updates.append(item.progress))
        items = await orchestrator.upload_files([local_file])

    item = items[0]
    assert item.status == 'completed'
    assert item.progress == 100
    assert item.remote_path == 'report.bin'
    assert (storage_root / 'report.bin').read_bytes() == local_file.read_bytes()
    assert updates == sorted(updates)
    assert 8 in updates  # round(1 / 13 * 100)


@pytest.mark.asyncio
async def test_empty_file_uploads_one_empty_chunk(app, storage_root, tmp_path):
    empty = tmp_path / 'empty.txt'
    empty.write_bytes(b'')

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url='http://test') as client:
        orchestrator = UploadOrchestrator(client, chunk_size=1000)
        items = await orchestrator.upload_files([empty])

    assert items[0].status == 'completed'
    assert (storage_root / 'empty.txt').read_bytes() == b''


@pytest.mark.asyncio
async def test_upload_into_folder(app, storage_root, local_file):
    (storage_root / 'reports').mkdir()

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url='http://test') as client:
        items = await UploadOrchestrator(client, chunk_size=5000).upload_files([local_file], 'reports')

    assert items[0].remote_path == 'reports/report.bin'


@pytest.mark.asyncio
async def test_one_failing_file_does_not_affect_others(tmp_path):
    """Test per-item isolation when finalize fails for one file."""
    good = tmp_path / 'good.txt'
    bad = tmp_path / 'bad.txt'
    good.write_bytes(b'good')
    bad.write_bytes(b'bad')

    def handler(request):
        if request.url.path == '/api/upload/chunk':
            return httpx.Response(200, json={'success': True})
        body = json.loads(request.content)
        if body['fileName'] == 'bad.txt':
            return httpx.Response(409, json={'detail': 'missing', 'code': 'INCOMPLETE_UPLOAD'})
        return httpx.Response(200, json={'success': True, 'path': body['fileName']})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url='http://test') as client:
        orchestrator = UploadOrchestrator(client)
        good_item, bad_item = await orchestrator.upload_files([good, bad])

    assert good_item.status == 'completed'
    assert bad_item.status == 'error'
    assert bad_item.error == 'Upload is missing chunks.'


@pytest.mark.asyncio
async def test_chunk_failure_stops_without_finalize(tmp_path):
    """Test the first failed chunk aborts the upload with no retry."""
    source = tmp_path / 'three.bin'
    source.write_bytes(b'x' * 30)
    calls = []

    def handler(request):
        calls.append(request.url.path)
        if len(calls) == 2:
            return httpx.Response(500, json={'detail': 'disk full', 'code': 'STORAGE_IO_ERROR'})
        return httpx.Response(200, json={'success': True})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url='http://test') as client:
        orchestrator = UploadOrchestrator(client, chunk_size=10)
        items = await orchestrator.upload_files([source])

    assert items[0].status == 'error'
    assert items[0].progress == 33
    assert calls == ['/api/upload/chunk', '/api/upload/chunk']


@pytest.mark.asyncio
async def test_network_error_marks_item(tmp_path):
    source = tmp_path / 'a.txt'
    source.write_bytes(b'a')

    def handler(request):
        raise httpx.ConnectError('refused', request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url='http://test') as client:
        items = await UploadOrchestrator(client).upload_files([source])

    assert items[0].status == 'error'
    assert 'refused' in items[0].error


@pytest.mark.asyncio
async def test_clear_completed_drops_finished_items(tmp_path):
    source = tmp_path / 'a.txt'
    source.write_bytes(b'a')

    def handler(request):
        if request.url.path == '/api/upload/chunk':
            return httpx.Response(200, json={'success': True})
        return httpx.Response(200, json={'success': True, 'path': 'a.txt'})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url='http://test') as client:
        orchestrator = UploadOrchestrator(client)
        await orchestrator.upload_files([source])
        pending = orchestrator.add_file(source)

    assert orchestrator.clear_completed() == 1
    assert list(orchestrator.items) == [pending.id]


def test_total_chunks():
    orchestrator = UploadOrchestrator(client=None, chunk_size=5 * 1024 * 1024)
    assert orchestrator.total_chunks(0) == 1
    assert orchestrator.total_chunks(5 * 1024 * 1024) == 1
    assert orchestrator.total_chunks(5 * 1024 * 1024 + 1) == 2
