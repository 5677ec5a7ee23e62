"""Command and transfer data types for the CLI."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Optional

UploadStatus = Literal["pending", "uploading", "completed", "error"]
DownloadStatus = Literal["pending", "downloading", "completed", "error"]


@dataclass(frozen=True)
class ListCommand:
    """List a remote folder."""

    path: str = ""
    command: Literal["ls"] = "ls"


@dataclass(frozen=True)
class MkdirCommand:
    """Create a remote folder."""

    name: str
    path: str = ""
    command: Literal["mkdir"] = "mkdir"


@dataclass(frozen=True)
class RemoveCommand:
    """Delete a remote file or folder."""

    path: str
    command: Literal["rm"] = "rm"


@dataclass(frozen=True)
class RenameCommand:
    """Rename a remote file or folder."""

    path: str
    new_name: str
    command: Literal["mv"] = "mv"


@dataclass(frozen=True)
class UploadCommand:
    """Upload local files into a remote folder."""

    file_list: tuple[str, ...]
    remote_path: str = ""
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class DownloadCommand:
    """Download a remote file with parallel range requests."""

    remote_path: str
    password: Optional[str] = None
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class ZipCommand:
    """Download several remote files as one ZIP archive."""

    paths: tuple[str, ...]
    command: Literal["zip"] = "zip"


@dataclass(frozen=True)
class LoginCommand:
    """Check vault credentials."""

    username: str
    password: str
    command: Literal["login"] = "login"


CommandRequest = (
    ListCommand
    | MkdirCommand
    | RemoveCommand
    | RenameCommand
    | UploadCommand
    | DownloadCommand
    | ZipCommand
    | LoginCommand
)


@dataclass
class UploadItem:
    """
    One file moving through the upload pipeline.

    status: pending -> uploading -> completed | error
    """

    id: str
    path: Path
    name: str
    size: int
    progress: int = 0
    status: UploadStatus = "pending"
    error: Optional[str] = None
    remote_path: Optional[str] = None


@dataclass
class ChunkInfo:
    """An inclusive byte range of a download and its transfer state."""

    index: int
    start: int
    end: int
    progress: float = 0.0
    status: DownloadStatus = "pending"
    received: int = 0

    @property
    def size(self) -> int:
        return self.end - self.start + 1


@dataclass
class DownloadItem:
    """
    One file moving through the parallel download pipeline.

    progress is byte-weighted across all chunks and never decreases.
    """

    id: str
    file_path: str
    name: str
    size: int
    progress: float = 0.0
    status: DownloadStatus = "pending"
    chunks: List[ChunkInfo] = field(default_factory=list)
    downloaded_bytes: int = 0
    speed: float = 0.0
    eta: Optional[float] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    error: Optional[str] = None
    saved_path: Optional[Path] = None
