"""Pydantic schemas for API requests and responses."""

from vault.schemas.auth import LoginRequest, LoginResponse
from vault.schemas.common import ErrorResponse, SuccessResponse
from vault.schemas.files import (
    CreateFolderRequest,
    ListItemsResponse,
    PathResponse,
    RenameItemRequest,
    StoredFileResponse,
)
from vault.schemas.transfers import (
    FinalizeUploadRequest,
    MediaTokenRequest,
    MediaTokenResponse,
    PrepareDownloadRequest,
    PrepareDownloadResponse,
    RequiresAuthResponse,
    ZipRequest,
)

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "ErrorResponse",
    "SuccessResponse",
    "CreateFolderRequest",
    "ListItemsResponse",
    "PathResponse",
    "RenameItemRequest",
    "StoredFileResponse",
    "FinalizeUploadRequest",
    "MediaTokenRequest",
    "MediaTokenResponse",
    "PrepareDownloadRequest",
    "PrepareDownloadResponse",
    "RequiresAuthResponse",
    "ZipRequest",
]
