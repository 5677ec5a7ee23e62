"""Service layer for vault operations."""

from vault.services.archive_service import ArchiveService
from vault.services.download_service import DownloadService
from vault.services.file_service import FileService
from vault.services.upload_service import UploadService

__all__ = [
    "ArchiveService",
    "DownloadService",
    "FileService",
    "UploadService",
]
