"""Request-scoped accessors for the services built by create_app()."""

from fastapi import Request

from vault.auth import PasswordGate
from vault.services.archive_service import ArchiveService
from vault.services.download_service import DownloadService
from vault.services.file_service import FileService
from vault.services.upload_service import UploadService
from vault.token_store import TokenStore


def get_token_store(request: Request) -> TokenStore:
    return request.app.state.token_store


def get_password_gate(request: Request) -> PasswordGate:
    return request.app.state.password_gate


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


def get_download_service(request: Request) -> DownloadService:
    return request.app.state.download_service


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def get_archive_service(request: Request) -> ArchiveService:
    return request.app.state.archive_service
