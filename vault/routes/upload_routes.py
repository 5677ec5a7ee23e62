"""Chunked upload API routes."""

from fastapi import APIRouter, Depends, File, Form, UploadFile

from vault.dependencies import get_upload_service
from vault.schemas.common import SuccessResponse
from vault.schemas.files import PathResponse
from vault.schemas.transfers import FinalizeUploadRequest
from vault.services.upload_service import UploadService

router = APIRouter(prefix="/api/upload", tags=["Upload"])


@router.post("/chunk", response_model=SuccessResponse)
async def upload_chunk(
    chunk: UploadFile = File(...),
    upload_id: str = Form(..., alias="uploadId"),
    chunk_index: int = Form(..., alias="chunkIndex"),
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    Store one chunk of an upload session.

    Parameters:
        - chunk: Chunk bytes (multipart/form-data)
        - uploadId: Client-generated session id
        - chunkIndex: Zero-based chunk position

    Returns:
        - success: true

    Raises:
        - 400: Malformed uploadId or negative chunkIndex
        - 422: Missing form fields
        - 500: Chunk could not be written
    """
    data = await chunk.read()
    upload_service.receive_chunk(upload_id, chunk_index, data)
    return SuccessResponse()


@router.post("/finalize", response_model=PathResponse)
async def finalize_upload(
    request: FinalizeUploadRequest,
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    Assemble an upload session's chunks into the final file.

    Parameters:
        - uploadId: Session id used for the chunks
        - fileName: Name of the final file
        - currentPath: Destination folder relative to the storage root
        - totalChunks: Optional expected chunk count

    Returns:
        - success: true
        - path: Relative path of the stored file

    Raises:
        - 400: Invalid name or path outside the storage root
        - 404: Unknown upload session or destination folder
        - 409: Missing chunks
        - 500: File could not be written
    """
    stored = upload_service.finalize(
        upload_id=request.upload_id,
        file_name=request.file_name,
        current_path=request.current_path,
        total_chunks=request.total_chunks,
    )
    return PathResponse(path=stored.path)


@router.delete("/{upload_id}", response_model=SuccessResponse)
async def abandon_upload(
    upload_id: str,
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    Discard an upload session and its chunks.

    Raises:
        - 400: Malformed uploadId
        - 404: Unknown upload session
    """
    upload_service.abandon(upload_id)
    return SuccessResponse()
