"""Token-gated, range-addressable file serving."""

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional
from urllib.parse import quote

from common.constants import STREAM_PIECE_SIZE_BYTES
from common.logging_config import get_logger, short_token
from vault.auth import PasswordGate
from vault.exceptions import (
    FileNotFoundError,
    InvalidCredentialsError,
    InvalidTokenError,
    MissingTokenError,
)
from vault.range import content_range, parse_range
from vault.storage import reject_reserved, relative_path, resolve_path
from vault.token_store import TokenStore
from vault.types import ByteRange

logger = get_logger(__name__)

SENSITIVE_FILE_REASON = "This file type requires authentication for security."


def iter_file_range(path: Path, start: int, length: int, piece_size: int = STREAM_PIECE_SIZE_BYTES) -> Iterator[bytes]:
    """
    Stream length bytes of a file starting at offset start.

    Yields:
        File data pieces of at most piece_size bytes
    """
    remaining = length
    with open(path, 'rb') as f:
        f.seek(start)
        while remaining > 0:
            piece = f.read(min(piece_size, remaining))
            if not piece:
                break
            remaining -= len(piece)
            yield piece


def content_disposition(filename: str, inline: bool = False) -> str:
    disposition = "inline" if inline else "attachment"
    return f'{disposition}; filename="{quote(filename, safe="")}"'


@dataclass(frozen=True)
class FileStream:
    """
    A resolved download: whole file or a single byte range.
    """
    path: Path
    file_size: int
    byte_range: Optional[ByteRange]

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def partial(self) -> bool:
        return self.byte_range is not None

    @property
    def status_code(self) -> int:
        return 206 if self.partial else 200

    @property
    def content_length(self) -> int:
        return self.byte_range.length if self.byte_range else self.file_size

    def body(self) -> Iterator[bytes]:
        start = self.byte_range.start if self.byte_range else 0
        return iter_file_range(self.path, start, self.content_length)

    def headers(self, inline: bool = False) -> Dict[str, str]:
        headers = {
            "Accept-Ranges": "bytes",
            "Content-Length": str(self.content_length),
            "Content-Disposition": content_disposition(self.name, inline=inline),
            "Cache-Control": "public, max-age=31536000" if inline else "no-cache",
        }
        if self.byte_range:
            headers["Content-Range"] = content_range(self.byte_range, self.file_size)
        return headers

    def media_type(self, inline: bool = False) -> str:
        if inline:
            guessed, _ = mimetypes.guess_type(self.name)
            return guessed or "application/octet-stream"
        return "application/octet-stream"


@dataclass(frozen=True)
class PreparedDownload:
    """
    Outcome of a download preparation: a URL, or a password prompt.
    """
    download_url: Optional[str] = None
    token: Optional[str] = None
    requires_auth: bool = False
    reason: Optional[str] = None


class DownloadService:
    def __init__(
        self,
        storage_root: Path,
        token_store: TokenStore,
        gate: PasswordGate,
        temp_dir: Optional[Path] = None,
    ):
        self.storage_root = Path(storage_root)
        self.token_store = token_store
        self.gate = gate
        self.temp_dir = temp_dir

    def _resolve(self, file_path: str) -> Path:
        return reject_reserved(resolve_path(self.storage_root, file_path), self.temp_dir)

    def _existing_file(self, file_path: str) -> Path:
        full_path = self._resolve(file_path)
        if not full_path.is_file():
            raise FileNotFoundError(f"File not found: '{file_path}'")
        return full_path

    def _authorize(self, full_path: Path, password: Optional[str]) -> Optional[str]:
        """
        Apply the password gate.

        Returns:
            A reason string when a password prompt is required, else None

        Raises:
            InvalidCredentialsError: If a supplied password is wrong
        """
        if password:
            if not self.gate.check_password(password):
                logger.warning(f"Wrong download password for {full_path.name}")
                raise InvalidCredentialsError("Invalid password.")
            return None

        if self.gate.requires_password(full_path.name):
            return SENSITIVE_FILE_REASON

        return None

    def prepare_download(self, file_path: str, password: Optional[str] = None) -> PreparedDownload:
        """
        Issue a download URL for a file, or ask for the vault password.

        Raises:
            FileNotFoundError: If file_path is not an existing file
            InvalidCredentialsError: If a supplied password is wrong
        """
        full_path = self._existing_file(file_path)

        reason = self._authorize(full_path, password)
        if reason:
            return PreparedDownload(requires_auth=True, reason=reason)

        token = self.token_store.issue(relative_path(self.storage_root, full_path))
        return PreparedDownload(download_url=f"/api/download?token={token}", token=token)

    def issue_media_token(self, file_path: str, password: Optional[str] = None) -> PreparedDownload:
        """
        Issue a bare token for inline preview streaming.

        Returns:
            PreparedDownload whose download_url is the media URL
        """
        full_path = self._existing_file(file_path)

        reason = self._authorize(full_path, password)
        if reason:
            return PreparedDownload(requires_auth=True, reason=reason)

        token = self.token_store.issue(relative_path(self.storage_root, full_path))
        return PreparedDownload(download_url=f"/api/media?token={token}", token=token)

    def open_stream(self, token: Optional[str], range_header: Optional[str] = None) -> FileStream:
        """
        Resolve a token and range into a FileStream.

        The token is peeked, not consumed, so it stays valid for further
        range requests until it expires.

        Raises:
            MissingTokenError: If no token was given
            InvalidTokenError: If the token is unknown or expired
            FileNotFoundError: If the target file no longer exists
            RangeNotSatisfiableError: If the Range header cannot be served
        """
        if not token:
            raise MissingTokenError("Missing token")

        file_path = self.token_store.peek(token)
        if file_path is None:
            raise InvalidTokenError("Invalid or expired token")

        full_path = self._resolve(file_path)
        try:
            file_size = full_path.stat().st_size
        except OSError:
            raise FileNotFoundError(f"File not found: '{file_path}'")
        if not full_path.is_file():
            raise FileNotFoundError(f"File not found: '{file_path}'")

        byte_range = parse_range(range_header, file_size)

        logger.debug(
            f"Serving {file_path} token={short_token(token)} "
            f"range={content_range(byte_range, file_size) if byte_range else 'full'}"
        )
        return FileStream(path=full_path, file_size=file_size, byte_range=byte_range)
