"""Background tasks for expiring tokens and reaping stale upload sessions."""

import asyncio
from typing import Optional

from common.constants import TOKEN_SWEEP_INTERVAL_SECONDS
from common.logging_config import get_logger
from vault.services.upload_service import UploadService
from vault.token_store import TokenStore

logger = get_logger(__name__)


class PeriodicTask:
    """
    Runs run_once() every interval_seconds until stopped.

    Subclasses implement run_once() as a synchronous unit of work; a failing
    cycle is logged and the loop continues.
    """

    name = "periodic task"

    def __init__(self, interval_seconds: float):
        self.interval_seconds = interval_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background loop."""
        if self._running:
            logger.warning(f"{self.name} already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started {self.name} (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background loop and wait for it to exit."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info(f"Stopped {self.name}")

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                self.run_once()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in {self.name}: {e}", exc_info=True)

    def run_once(self) -> None:
        raise NotImplementedError


class TokenSweeper(PeriodicTask):
    """
    Evicts expired download tokens once a minute.
    """

    name = "token sweeper"

    def __init__(self, token_store: TokenStore, interval_seconds: float = TOKEN_SWEEP_INTERVAL_SECONDS):
        super().__init__(interval_seconds)
        self.token_store = token_store

    def run_once(self) -> None:
        removed = self.token_store.sweep()
        if removed:
            logger.debug(f"Token sweep removed {removed} token(s), {len(self.token_store)} remaining")


class SessionReaper(PeriodicTask):
    """
    Removes upload sessions that stopped receiving chunks.
    """

    name = "upload session reaper"

    def __init__(self, upload_service: UploadService, interval_seconds: float, max_age_seconds: float):
        super().__init__(interval_seconds)
        self.upload_service = upload_service
        self.max_age_seconds = max_age_seconds

    def run_once(self) -> None:
        reaped = self.upload_service.reap_abandoned(self.max_age_seconds)
        if reaped:
            logger.info(f"Reaped {len(reaped)} abandoned upload session(s)")
