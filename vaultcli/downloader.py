"""Client-side parallel range download orchestration."""

import asyncio
import math
import time
import uuid
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import httpx

from common.constants import DOWNLOAD_CONCURRENCY, PROGRESS_UPDATE_INTERVAL_SECONDS
from common.logging_config import get_logger
from vaultcli.errors import (
    DownloadCancelled,
    DownloadError,
    PasswordRequiredError,
    VaultClientError,
)
from vaultcli.models import ChunkInfo, DownloadItem

logger = get_logger(__name__)

SaveCallable = Callable[[DownloadItem, bytes], Optional[Path]]


def compute_ranges(size: int, max_chunks: int = DOWNLOAD_CONCURRENCY) -> List[Tuple[int, int]]:
    """
    Split size bytes into at most max_chunks inclusive ranges.

    Each range is ceil(size / max_chunks) bytes and the last one absorbs the
    remainder. Files smaller than max_chunks bytes get fewer ranges, and an
    empty file gets none.
    """
    if size <= 0:
        return []

    chunk_size = math.ceil(size / max_chunks)
    ranges = []
    for index in range(max_chunks):
        start = index * chunk_size
        if start >= size:
            break
        end = size - 1 if index == max_chunks - 1 else min(start + chunk_size, size) - 1
        ranges.append((start, end))
    return ranges


def save_to_directory(directory: Path) -> SaveCallable:
    """
    Build a save callable that writes finished downloads into directory.
    """
    directory = Path(directory)

    def save(item: DownloadItem, data: bytes) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / item.name
        target.write_bytes(data)
        return target

    return save


class DownloadManager:
    """
    Downloads files as concurrent byte-range requests and reassembles them.

    Every item owns a cancellation event; removing an item from the queue
    sets it and in-flight range requests stop at their next read.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        save: Optional[SaveCallable] = None,
        max_chunks: int = DOWNLOAD_CONCURRENCY,
        clock: Callable[[], float] = time.monotonic,
        update_interval: float = PROGRESS_UPDATE_INTERVAL_SECONDS,
        on_update: Optional[Callable[[DownloadItem], None]] = None,
    ):
        """
        Initialize manager.

        Args:
            client: Async HTTP client bound to the vault base URL
            save: Receives each finished item and its bytes (default: current directory)
            max_chunks: Concurrent range requests per file
            clock: Monotonic time source for throttling and speed
            update_interval: Minimum seconds between chunk progress updates
            on_update: Called with the item after progress or state changes
        """
        self.client = client
        self.save = save or save_to_directory(Path.cwd())
        self.max_chunks = max_chunks
        self.clock = clock
        self.update_interval = update_interval
        self.on_update = on_update
        self.items: Dict[str, DownloadItem] = {}
        self._cancel_events: Dict[str, asyncio.Event] = {}

    def _notify(self, item: DownloadItem) -> None:
        if self.on_update:
            self.on_update(item)

    async def prepare(self, file_path: str, password: Optional[str] = None) -> str:
        """
        Ask the server for a token-bearing download URL.

        Raises:
            PasswordRequiredError: If the file needs the vault password
            VaultClientError: On any other error response
        """
        payload = {"filePath": file_path}
        if password:
            payload["password"] = password

        response = await self.client.post("/api/download/prepare", json=payload)
        if response.status_code == 401:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("requiresAuth"):
                raise PasswordRequiredError(body.get("reason") or "Password required")
        if response.status_code != 200:
            raise VaultClientError.from_response(response)
        return response.json()["downloadUrl"]

    async def add_to_queue(
        self,
        file_path: str,
        file_name: str,
        file_size: int,
        password: Optional[str] = None,
    ) -> DownloadItem:
        """
        Prepare and run a parallel download.

        Returns once the item is completed, errored or removed from the queue.

        Raises:
            PasswordRequiredError: If the file needs the vault password
            VaultClientError: If the server refuses to prepare the download
        """
        url = await self.prepare(file_path, password)

        item = DownloadItem(
            id=str(uuid.uuid4()),
            file_path=file_path,
            name=file_name,
            size=file_size,
            chunks=[
                ChunkInfo(index=index, start=start, end=end)
                for index, (start, end) in enumerate(compute_ranges(file_size, self.max_chunks))
            ],
        )
        cancel = asyncio.Event()
        self.items[item.id] = item
        self._cancel_events[item.id] = cancel

        logger.info(f"Downloading {file_path} ({file_size} bytes, {len(item.chunks)} range(s)) [id={item.id}]")
        await self._run(item, url, cancel)
        return item

    async def _run(self, item: DownloadItem, url: str, cancel: asyncio.Event) -> None:
        item.status = "downloading"
        item.start_time = self.clock()
        self._notify(item)

        tasks = [asyncio.create_task(self._download_chunk(item, chunk, url, cancel)) for chunk in item.chunks]
        try:
            buffers = await asyncio.gather(*tasks)
            data = b"".join(buffers)
            if len(data) != item.size:
                raise DownloadError(f"Reassembled {len(data)} bytes, expected {item.size}")
            item.saved_path = self.save(item, data)
        except DownloadCancelled:
            await self._cancel_tasks(tasks)
            self._fail(item, "Download cancelled")
            logger.info(f"Download cancelled: {item.file_path} [id={item.id}]")
            return
        except (DownloadError, VaultClientError, httpx.HTTPError, OSError) as e:
            await self._cancel_tasks(tasks)
            self._fail(item, str(e) or type(e).__name__)
            logger.error(f"Download failed: {item.file_path} [id={item.id}] error={item.error}")
            return
        finally:
            self._cancel_events.pop(item.id, None)

        for chunk in item.chunks:
            chunk.status = "completed"
            chunk.progress = 100.0
        item.downloaded_bytes = item.size
        item.progress = 100.0
        item.status = "completed"
        item.end_time = self.clock()
        item.eta = 0.0
        self._notify(item)
        logger.info(f"Download completed: {item.file_path} -> {item.saved_path}")

    async def _cancel_tasks(self, tasks: List[asyncio.Task]) -> None:
        for task in tasks:
            if not task.done():
                task.cancel()
        # Outcomes are already recorded on the item.
        await asyncio.gather(*tasks, return_exceptions=True)

    def _fail(self, item: DownloadItem, message: str) -> None:
        item.status = "error"
        item.error = message
        item.end_time = self.clock()
        for chunk in item.chunks:
            chunk.status = "error"
        self._notify(item)

    def _accepts(self, item: DownloadItem, chunk: ChunkInfo, status_code: int) -> bool:
        if status_code == 206:
            return True
        return status_code == 200 and chunk.start == 0 and chunk.end == item.size - 1

    async def _download_chunk(
        self,
        item: DownloadItem,
        chunk: ChunkInfo,
        url: str,
        cancel: asyncio.Event,
    ) -> bytes:
        if cancel.is_set():
            raise DownloadCancelled(item.id)

        chunk.status = "downloading"
        buffer = bytearray()
        last_update = self.clock()

        headers = {"Range": f"bytes={chunk.start}-{chunk.end}"}
        async with self.client.stream("GET", url, headers=headers) as response:
            if not self._accepts(item, chunk, response.status_code):
                await response.aread()
                if response.status_code in (200, 206):
                    raise DownloadError(f"Unexpected status {response.status_code} for chunk {chunk.index}")
                raise VaultClientError.from_response(response)

            async for piece in response.aiter_bytes():
                if cancel.is_set():
                    raise DownloadCancelled(item.id)

                buffer.extend(piece)
                if len(buffer) > chunk.size:
                    raise DownloadError(f"Chunk {chunk.index} overran its range ({len(buffer)} > {chunk.size} bytes)")

                chunk.received = len(buffer)
                item.downloaded_bytes += len(piece)

                now = self.clock()
                if now - last_update >= self.update_interval:
                    last_update = now
                    chunk.progress = chunk.received / chunk.size * 100
                    self._update_progress(item, now)

        if len(buffer) != chunk.size:
            raise DownloadError(f"Chunk {chunk.index} received {len(buffer)} of {chunk.size} bytes")

        chunk.progress = 100.0
        chunk.status = "completed"
        self._update_progress(item, self.clock())
        return bytes(buffer)

    def _update_progress(self, item: DownloadItem, now: float) -> None:
        if item.size > 0:
            item.progress = max(item.progress, min(100.0, item.downloaded_bytes / item.size * 100))

        elapsed = now - (item.start_time if item.start_time is not None else now)
        if elapsed > 0:
            item.speed = item.downloaded_bytes / elapsed
        if item.speed > 0:
            item.eta = max(0, item.size - item.downloaded_bytes) / item.speed

        self._notify(item)

    def remove_from_queue(self, item_id: str) -> bool:
        """
        Stop tracking an item and abort its in-flight requests.

        Returns:
            True if the item was tracked
        """
        cancel = self._cancel_events.pop(item_id, None)
        if cancel is not None:
            cancel.set()
        return self.items.pop(item_id, None) is not None

    def clear_completed(self) -> int:
        """
        Drop completed items.

        Returns:
            Number of items removed
        """
        finished = [item_id for item_id, item in self.items.items() if item.status == "completed"]
        for item_id in finished:
            del self.items[item_id]
        return len(finished)
