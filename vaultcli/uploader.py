"""Client-side chunked upload orchestration."""

import asyncio
import math
import uuid
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

import httpx

from common.constants import UPLOAD_CHUNK_SIZE_BYTES
from common.logging_config import get_logger
from vaultcli.errors import VaultClientError
from vaultcli.models import UploadItem

logger = get_logger(__name__)


class UploadOrchestrator:
    """
    Splits local files into fixed-size chunks and uploads them.

    Chunks of one file are sent sequentially under a single upload session;
    separate files upload concurrently as independent sessions. A failing
    file is marked as errored without affecting the others.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        chunk_size: int = UPLOAD_CHUNK_SIZE_BYTES,
        on_update: Optional[Callable[[UploadItem], None]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            client: Async HTTP client bound to the vault base URL
            chunk_size: Bytes per chunk (default 5 MiB)
            on_update: Called with the item after every state or progress change
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.client = client
        self.chunk_size = chunk_size
        self.on_update = on_update
        self.items: Dict[str, UploadItem] = {}

    def _notify(self, item: UploadItem) -> None:
        if self.on_update:
            self.on_update(item)

    def add_file(self, path: Path) -> UploadItem:
        """
        Register a local file as a pending upload.

        Raises:
            OSError: If the file cannot be stat'ed
        """
        path = Path(path)
        item = UploadItem(
            id=str(uuid.uuid4()),
            path=path,
            name=path.name,
            size=path.stat().st_size,
        )
        self.items[item.id] = item
        self._notify(item)
        return item

    def total_chunks(self, size: int) -> int:
        return max(1, math.ceil(size / self.chunk_size))

    async def upload_files(self, paths: Iterable[Path], current_path: str = "") -> List[UploadItem]:
        """
        Upload several files concurrently into current_path.

        Returns:
            The upload items, in input order, each completed or errored
        """
        items = [self.add_file(path) for path in paths]
        await asyncio.gather(*(self.start_upload(item, current_path) for item in items))
        return items

    async def start_upload(self, item: UploadItem, current_path: str = "") -> None:
        """Run the chunk-then-finalize pipeline for one item."""
        upload_id = str(uuid.uuid4())
        total_chunks = self.total_chunks(item.size)

        item.status = "uploading"
        item.error = None
        self._notify(item)
        logger.info(f"Uploading {item.name} ({item.size} bytes, {total_chunks} chunk(s)) [upload_id={upload_id}]")

        try:
            with open(item.path, 'rb') as f:
                for index in range(total_chunks):
                    data = f.read(self.chunk_size)
                    await self._send_chunk(upload_id, index, data)
                    item.progress = round((index + 1) / total_chunks * 100)
                    self._notify(item)

            item.remote_path = await self._finalize(upload_id, item.name, current_path, total_chunks)
            item.status = "completed"
            logger.info(f"Upload completed: {item.name} -> {item.remote_path}")
        except (VaultClientError, httpx.HTTPError, OSError) as e:
            item.status = "error"
            item.error = str(e) or type(e).__name__
            logger.error(f"Upload failed: {item.name} [upload_id={upload_id}] error={item.error}")

        self._notify(item)

    async def _send_chunk(self, upload_id: str, index: int, data: bytes) -> None:
        response = await self.client.post(
            "/api/upload/chunk",
            files={"chunk": ("blob", data, "application/octet-stream")},
            data={"uploadId": upload_id, "chunkIndex": str(index)},
        )
        if response.status_code != 200:
            raise VaultClientError.from_response(response)
        logger.debug(f"Chunk {index} sent ({len(data)} bytes) [upload_id={upload_id}]")

    async def _finalize(self, upload_id: str, file_name: str, current_path: str, total_chunks: int) -> str:
        response = await self.client.post(
            "/api/upload/finalize",
            json={
                "uploadId": upload_id,
                "fileName": file_name,
                "currentPath": current_path,
                "totalChunks": total_chunks,
            },
        )
        if response.status_code != 200:
            raise VaultClientError.from_response(response)
        return response.json()["path"]

    def clear_completed(self) -> int:
        """
        Drop completed and errored items.

        Returns:
            Number of items removed
        """
        finished = [item_id for item_id, item in self.items.items() if item.status in ("completed", "error")]
        for item_id in finished:
            del self.items[item_id]
        return len(finished)
