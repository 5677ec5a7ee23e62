"""Tests for the token sweeper and upload session reaper."""

import asyncio

import pytest

from vault.cleanup_task import SessionReaper, TokenSweeper
from vault.services.upload_service import UploadService
from vault.token_store import JsonTokenFile, TokenStore
from vault.upload_sessions import UploadSessionRegistry


@pytest.fixture
def token_store(tmp_path, clock):
    return TokenStore(JsonTokenFile(tmp_path / 'tokens.json'), clock=clock, expiry_seconds=60)


def test_sweeper_evicts_expired_tokens(token_store, clock):
    token_store.issue('a.txt')
    clock.advance(30)
    fresh = token_store.issue('b.txt')
    clock.advance(30)

    TokenSweeper(token_store).run_once()

    assert len(token_store) == 1
    assert token_store.peek(fresh) is not None


def test_reaper_removes_idle_sessions(tmp_path, clock):
    sessions = UploadSessionRegistry(tmp_path / '.tmp', clock=clock)
    service = UploadService(tmp_path, sessions)
    service.receive_chunk('idle', 0, b'x')
    clock.advance(3600)
    service.receive_chunk('busy', 0, b'y')

    SessionReaper(service, interval_seconds=60, max_age_seconds=3600).run_once()

    assert not (tmp_path / '.tmp' / 'idle').exists()
    assert (tmp_path / '.tmp' / 'busy').exists()


@pytest.mark.asyncio
async def test_periodic_task_keeps_running_after_errors(token_store):
    calls = []

    class FlakySweeper(TokenSweeper):
        def run_once(self):
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError('boom')

    sweeper = FlakySweeper(token_store, interval_seconds=0.01)
    await sweeper.start()
    assert sweeper.running

    for _ in range(100):
        if len(calls) >= 2:
            break
        await asyncio.sleep(0.01)

    await sweeper.stop()
    assert not sweeper.running
    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(token_store):
    sweeper = TokenSweeper(token_store)
    await sweeper.stop()
    assert not sweeper.running
