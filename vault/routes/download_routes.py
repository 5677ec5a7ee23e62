"""Download, media preview and archive API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from fastapi.responses import JSONResponse, Response, StreamingResponse

from vault.dependencies import get_archive_service, get_download_service
from vault.schemas.transfers import (
    MediaTokenRequest,
    MediaTokenResponse,
    PrepareDownloadRequest,
    PrepareDownloadResponse,
    RequiresAuthResponse,
    ZipRequest,
)
from vault.services.archive_service import ArchiveService
from vault.services.download_service import DownloadService, PreparedDownload, content_disposition

router = APIRouter(prefix="/api", tags=["Download"])


def _requires_auth_response(prepared: PreparedDownload) -> JSONResponse:
    body = RequiresAuthResponse(reason=prepared.reason or "")
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=body.model_dump(by_alias=True),
    )


@router.post("/download/prepare", response_model=PrepareDownloadResponse)
async def prepare_download(
    request: PrepareDownloadRequest,
    download_service: DownloadService = Depends(get_download_service),
):
    """
    Issue a short-lived download URL for a file.

    Parameters:
        - filePath: File path relative to the storage root
        - password: Vault password (only needed for sensitive files)

    Returns:
        - downloadUrl: /api/download?token=<token>

    Raises:
        - 401: Password required ({"requiresAuth": true}) or wrong password
        - 404: File not found
    """
    prepared = download_service.prepare_download(request.file_path, request.password)
    if prepared.requires_auth:
        return _requires_auth_response(prepared)
    return PrepareDownloadResponse(download_url=prepared.download_url)


@router.get("/download")
async def download_file(
    token: Optional[str] = Query(default=None),
    range_header: Optional[str] = Header(default=None, alias="Range"),
    download_service: DownloadService = Depends(get_download_service),
):
    """
    Stream a file, or one byte range of it, for a download token.

    Parameters:
        - token: Token from /api/download/prepare
        - Range header: Optional "bytes=start-end"

    Returns:
        - 200 with the whole file, or 206 with the requested range

    Raises:
        - 400: Missing token
        - 403: Unknown or expired token
        - 404: File no longer exists
        - 416: Range cannot be served
    """
    stream = download_service.open_stream(token, range_header)
    return StreamingResponse(
        stream.body(),
        status_code=stream.status_code,
        media_type=stream.media_type(),
        headers=stream.headers(),
    )


@router.post("/media/token", response_model=MediaTokenResponse)
async def media_token(
    request: MediaTokenRequest,
    download_service: DownloadService = Depends(get_download_service),
):
    """
    Issue a token for inline preview streaming.

    Parameters:
        - filePath: File path relative to the storage root
        - password: Vault password (only needed for sensitive files)

    Returns:
        - token: Token usable with /api/media

    Raises:
        - 401: Password required or wrong password
        - 404: File not found
    """
    prepared = download_service.issue_media_token(request.file_path, request.password)
    if prepared.requires_auth:
        return _requires_auth_response(prepared)
    return MediaTokenResponse(token=prepared.token)


@router.get("/media")
async def stream_media(
    token: Optional[str] = Query(default=None),
    range_header: Optional[str] = Header(default=None, alias="Range"),
    download_service: DownloadService = Depends(get_download_service),
):
    """
    Stream a file inline for preview, honoring Range for seeking.

    Raises:
        - 400: Missing token
        - 403: Unknown or expired token
        - 404: File no longer exists
        - 416: Range cannot be served
    """
    stream = download_service.open_stream(token, range_header)
    return StreamingResponse(
        stream.body(),
        status_code=stream.status_code,
        media_type=stream.media_type(inline=True),
        headers=stream.headers(inline=True),
    )


@router.post("/download/zip")
async def download_zip(
    request: ZipRequest,
    archive_service: ArchiveService = Depends(get_archive_service),
):
    """
    Bundle up to 50 files into a ZIP archive.

    Parameters:
        - files: File paths relative to the storage root

    Returns:
        - ZIP archive as an attachment

    Raises:
        - 400: Empty or oversized selection, or a path outside the storage root
    """
    archive_name, data = archive_service.build_zip(request.files)
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": content_disposition(archive_name)},
    )
