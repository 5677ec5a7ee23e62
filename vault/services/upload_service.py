"""Chunked upload: chunk receiver, finalizer and abandoned-session reaper."""

import os
import shutil
from pathlib import Path
from typing import List, Optional

from common.constants import MAX_UPLOAD_CHUNKS
from common.logging_config import get_logger
from vault.exceptions import (
    FileNotFoundError,
    IncompleteUploadError,
    ItemExistsError,
    StorageIOError,
    UploadSessionNotFoundError,
    ValidationError,
)
from vault.storage import (
    ensure_directory,
    reject_reserved,
    resolve_path,
    stat_item,
    validate_single_component,
)
from vault.types import StoredFile
from vault.upload_sessions import SessionState, UploadSessionRegistry, validate_upload_id

logger = get_logger(__name__)

COPY_BUFFER_BYTES = 1024 * 1024
MISSING_PREVIEW_LIMIT = 10


class UploadService:
    def __init__(self, storage_root: Path, sessions: UploadSessionRegistry):
        self.storage_root = Path(storage_root)
        self.sessions = sessions

    def receive_chunk(self, upload_id: str, chunk_index: int, data: bytes) -> None:
        """
        Store one chunk of an upload session.

        Chunks may arrive in any order and with gaps; a repeated index
        overwrites the earlier chunk.

        Args:
            upload_id: Client-generated session id
            chunk_index: Zero-based chunk position
            data: Raw chunk bytes

        Raises:
            ValidationError: If upload_id or chunk_index is malformed
            StorageIOError: If the chunk cannot be written
        """
        validate_upload_id(upload_id)
        if not 0 <= chunk_index < MAX_UPLOAD_CHUNKS:
            raise ValidationError(f"chunkIndex must be between 0 and {MAX_UPLOAD_CHUNKS - 1}, got {chunk_index}")

        try:
            ensure_directory(self.sessions.temp_dir)
            session = self.sessions.open(upload_id)
            session.chunk_path(chunk_index).write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write chunk {chunk_index} for upload {upload_id}: {e}")
            raise StorageIOError(f"Failed to store chunk {chunk_index}: {e.strerror or e}")

        session.record_chunk(chunk_index, self.sessions.clock())
        logger.debug(f"Stored chunk {chunk_index} ({len(data)} bytes) for upload {upload_id}")

    def _resolve_destination(self, file_name: str, current_path: str) -> Path:
        validate_single_component(file_name)

        target_dir = resolve_path(self.storage_root, current_path)
        if not target_dir.is_dir():
            raise FileNotFoundError(f"Target folder not found: '{current_path or '/'}'")

        destination = resolve_path(self.storage_root, current_path, file_name)

        reject_reserved(destination, self.sessions.temp_dir)

        if destination.is_dir():
            raise ItemExistsError(f"A folder named '{file_name}' already exists")

        return destination

    def finalize(
        self,
        upload_id: str,
        file_name: str,
        current_path: str = "",
        total_chunks: Optional[int] = None,
    ) -> StoredFile:
        """
        Assemble a session's chunks into the destination file.

        Chunks are concatenated in numeric index order into a hidden part file
        beside the destination, which then replaces the destination in one
        rename. The session directory is removed afterwards.

        Args:
            upload_id: Session id used for the chunks
            file_name: Name of the final file (single path component)
            current_path: Folder relative to the storage root
            total_chunks: Expected chunk count; when omitted the highest
                received index defines it

        Returns:
            StoredFile describing the assembled file

        Raises:
            UploadSessionNotFoundError: If the session has no directory
            IncompleteUploadError: If any index in 0..N-1 is missing
            ValidationError: If names, paths or total_chunks are invalid
            StorageIOError: If assembling the file fails
        """
        validate_upload_id(upload_id)
        if total_chunks is not None and not 1 <= total_chunks <= MAX_UPLOAD_CHUNKS:
            raise ValidationError(f"totalChunks must be between 1 and {MAX_UPLOAD_CHUNKS}, got {total_chunks}")

        destination = self._resolve_destination(file_name, current_path)

        session = self.sessions.get(upload_id)
        if session is None:
            raise UploadSessionNotFoundError(f"Upload session not found: {upload_id}")

        indices = session.scan_chunks()
        if total_chunks is not None and indices and indices[-1] >= total_chunks:
            raise ValidationError(
                f"Received chunk index {indices[-1]} but totalChunks is {total_chunks}"
            )

        expected = session.expected_chunks(total_chunks)
        if expected > MAX_UPLOAD_CHUNKS:
            raise ValidationError(f"Upload {upload_id} has more than {MAX_UPLOAD_CHUNKS} chunks")

        missing_count = session.missing_count(expected)
        if missing_count:
            logger.warning(f"Refusing to finalize upload {upload_id}: missing {missing_count} chunk(s)")
            raise IncompleteUploadError(
                upload_id, session.missing_indices(expected, limit=MISSING_PREVIEW_LIMIT), missing_count
            )

        part_path = destination.parent / f".{destination.name}.{upload_id}.part"
        written = 0
        try:
            with open(part_path, "wb") as out:
                for index in indices:
                    with open(session.chunk_path(index), "rb") as src:
                        shutil.copyfileobj(src, out, COPY_BUFFER_BYTES)
                    written += session.chunk_path(index).stat().st_size
            os.replace(part_path, destination)
        except OSError as e:
            logger.error(f"Failed to assemble upload {upload_id} into {destination}: {e}")
            try:
                part_path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(f"Could not remove part file {part_path}: {cleanup_error}")
            raise StorageIOError(f"Failed to write '{file_name}': {e.strerror or e}")

        self._discard_chunks(session.directory, indices)
        self.sessions.close(upload_id, SessionState.FINALIZED)

        logger.info(
            f"Finalized upload {upload_id}: {len(indices)} chunk(s), {written} bytes -> {destination.name}"
        )
        return stat_item(self.storage_root, destination)

    def _discard_chunks(self, directory: Path, indices: List[int]) -> None:
        for index in indices:
            try:
                (directory / str(index)).unlink()
            except OSError as e:
                logger.warning(f"Failed to delete chunk file {directory / str(index)}: {e}")
        try:
            directory.rmdir()
        except OSError as e:
            logger.warning(f"Failed to remove upload session directory {directory}: {e}")

    def abandon(self, upload_id: str) -> None:
        """
        Drop an upload session and its chunks.

        Raises:
            UploadSessionNotFoundError: If the session has no directory
        """
        session = self.sessions.get(upload_id)
        if session is None:
            raise UploadSessionNotFoundError(f"Upload session not found: {upload_id}")

        self.sessions.remove_directory(session)
        self.sessions.close(upload_id, SessionState.ABANDONED)

    def reap_abandoned(self, max_age_seconds: int) -> List[str]:
        """
        Remove sessions with no chunk activity for max_age_seconds.

        Returns:
            Ids of the removed sessions
        """
        now = self.sessions.clock()
        reaped = []

        for session in self.sessions.discover():
            idle = now - session.last_activity
            if idle < max_age_seconds:
                continue

            self.sessions.remove_directory(session)
            self.sessions.close(session.upload_id, SessionState.ABANDONED)
            reaped.append(session.upload_id)
            logger.info(f"Reaped upload session {session.upload_id} (idle {int(idle)}s)")

        return reaped
