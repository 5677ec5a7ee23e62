"""Pydantic schemas for upload, download and media endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FinalizeUploadRequest(BaseModel):
    """Request model for assembling an uploaded file."""
    model_config = ConfigDict(populate_by_name=True)

    upload_id: str = Field(alias="uploadId")
    file_name: str = Field(alias="fileName")
    current_path: str = Field(default="", alias="currentPath")
    total_chunks: Optional[int] = Field(default=None, alias="totalChunks")


class PrepareDownloadRequest(BaseModel):
    """Request model for download preparation."""
    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(alias="filePath")
    password: Optional[str] = None


class PrepareDownloadResponse(BaseModel):
    """Response model carrying a token-bearing download URL."""
    model_config = ConfigDict(populate_by_name=True)

    download_url: str = Field(alias="downloadUrl")


class RequiresAuthResponse(BaseModel):
    """Response model when the vault password is needed."""
    model_config = ConfigDict(populate_by_name=True)

    requires_auth: bool = Field(default=True, alias="requiresAuth")
    reason: str


class MediaTokenRequest(BaseModel):
    """Request model for a media preview token."""
    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(alias="filePath")
    password: Optional[str] = None


class MediaTokenResponse(BaseModel):
    """Response model for a media preview token."""
    token: str


class ZipRequest(BaseModel):
    """Request model for bundling files into a ZIP archive."""
    files: List[str]
