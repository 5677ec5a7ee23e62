"""
Upload session lifecycle.

A session groups the numbered chunk files of one in-progress upload under
<temp_dir>/<upload_id>/. States move open -> receiving -> finalized or
abandoned. The directory on disk is the source of truth; the registry keeps a
view of it that is rebuilt lazily for sessions that predate a restart.
"""

import re
import shutil
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from common.logging_config import get_logger
from vault.exceptions import ValidationError

logger = get_logger(__name__)

UPLOAD_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,128}")


class SessionState(str, Enum):
    OPEN = "open"
    RECEIVING = "receiving"
    FINALIZED = "finalized"
    ABANDONED = "abandoned"


def validate_upload_id(upload_id: str) -> str:
    """
    Reject session ids that could name anything but a plain directory.

    Raises:
        ValidationError: If upload_id is not 1-128 characters of [A-Za-z0-9_-]
    """
    if not upload_id or not UPLOAD_ID_PATTERN.fullmatch(upload_id):
        raise ValidationError("uploadId must be 1-128 characters of letters, digits, '-' or '_'")
    return upload_id


@dataclass
class UploadSession:
    """
    State of a single upload session.
    """
    upload_id: str
    directory: Path
    created_at: float
    last_activity: float
    state: SessionState = SessionState.OPEN
    received: Set[int] = field(default_factory=set)

    def chunk_path(self, chunk_index: int) -> Path:
        return self.directory / str(chunk_index)

    def record_chunk(self, chunk_index: int, now: float) -> None:
        self.received.add(chunk_index)
        self.last_activity = now
        if self.state == SessionState.OPEN:
            self.state = SessionState.RECEIVING

    def scan_chunks(self) -> List[int]:
        """
        List chunk indices present on disk, sorted numerically.

        Non-numeric entries are ignored.
        """
        indices = []
        if not self.directory.is_dir():
            return indices

        for entry in self.directory.iterdir():
            if entry.is_file() and entry.name.isdigit():
                indices.append(int(entry.name))
            else:
                logger.warning(f"Ignoring unexpected entry in upload session {self.upload_id}: {entry.name}")

        indices.sort()
        self.received = set(indices)
        return indices

    def expected_chunks(self, total_chunks: Optional[int] = None) -> int:
        """
        N for the 0..N-1 completeness check: total_chunks when given,
        otherwise one past the highest received index.
        """
        if total_chunks is not None:
            return total_chunks
        return max(self.received) + 1 if self.received else 1

    def missing_count(self, total_chunks: int) -> int:
        return total_chunks - sum(1 for i in self.received if i < total_chunks)

    def missing_indices(self, total_chunks: int, limit: Optional[int] = None) -> List[int]:
        """
        Indices absent from 0..total_chunks-1, at most limit of them.
        """
        if self.missing_count(total_chunks) == 0:
            return []

        missing = []
        for i in range(total_chunks):
            if i in self.received:
                continue
            missing.append(i)
            if limit is not None and len(missing) >= limit:
                break
        return missing


class UploadSessionRegistry:
    """
    Tracks upload sessions under a temp directory.
    """

    def __init__(self, temp_dir: Path, clock: Callable[[], float] = time.time):
        """
        Args:
            temp_dir: Directory that holds one subdirectory per session
            clock: Returns the current time in seconds since the epoch
        """
        self.temp_dir = Path(temp_dir)
        self.clock = clock
        self._sessions: Dict[str, UploadSession] = {}
        self.lock = threading.Lock()

    def _session_dir(self, upload_id: str) -> Path:
        return self.temp_dir / validate_upload_id(upload_id)

    def _rehydrate(self, upload_id: str, directory: Path) -> UploadSession:
        """Rebuild a session view from a directory found on disk."""
        mtimes = [directory.stat().st_mtime]
        mtimes.extend(entry.stat().st_mtime for entry in directory.iterdir() if entry.is_file())

        session = UploadSession(
            upload_id=upload_id,
            directory=directory,
            created_at=min(mtimes),
            last_activity=max(mtimes),
        )
        if session.scan_chunks():
            session.state = SessionState.RECEIVING

        logger.debug(f"Rehydrated upload session {upload_id} with {len(session.received)} chunk(s)")
        return session

    def open(self, upload_id: str) -> UploadSession:
        """
        Return the session for upload_id, creating its directory on first use.
        """
        directory = self._session_dir(upload_id)

        with self.lock:
            session = self._sessions.get(upload_id)
            if session is not None and session.directory.is_dir():
                return session

            if directory.is_dir():
                session = self._rehydrate(upload_id, directory)
            else:
                directory.mkdir(parents=True, exist_ok=True)
                now = self.clock()
                session = UploadSession(
                    upload_id=upload_id,
                    directory=directory,
                    created_at=now,
                    last_activity=now,
                )
                logger.info(f"Opened upload session {upload_id}")

            self._sessions[upload_id] = session
            return session

    def get(self, upload_id: str) -> Optional[UploadSession]:
        """
        Return an existing session, or None if it has no directory on disk.
        """
        directory = self._session_dir(upload_id)

        with self.lock:
            if not directory.is_dir():
                self._sessions.pop(upload_id, None)
                return None

            session = self._sessions.get(upload_id)
            if session is None:
                session = self._rehydrate(upload_id, directory)
                self._sessions[upload_id] = session
            return session

    def close(self, upload_id: str, state: SessionState) -> None:
        """
        Mark a session finalized or abandoned and drop it from the registry.

        The caller is responsible for the session directory.
        """
        with self.lock:
            session = self._sessions.pop(upload_id, None)
        if session is not None:
            session.state = state
        logger.info(f"Upload session {upload_id} {state.value}")

    def discover(self) -> List[UploadSession]:
        """
        All sessions with a directory under temp_dir.
        """
        if not self.temp_dir.is_dir():
            return []

        sessions = []
        for entry in sorted(self.temp_dir.iterdir()):
            if not entry.is_dir() or not UPLOAD_ID_PATTERN.fullmatch(entry.name):
                continue
            session = self.get(entry.name)
            if session is not None:
                sessions.append(session)
        return sessions

    def remove_directory(self, session: UploadSession) -> None:
        """Delete a session's directory and everything in it."""
        shutil.rmtree(session.directory, ignore_errors=True)
