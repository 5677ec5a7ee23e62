"""File and folder API routes."""

from fastapi import APIRouter, Depends, Query, status

from vault.dependencies import get_file_service
from vault.schemas.common import SuccessResponse
from vault.schemas.files import (
    CreateFolderRequest,
    ListItemsResponse,
    PathResponse,
    RenameItemRequest,
    StoredFileResponse,
)
from vault.services.file_service import FileService
from vault.types import StoredFile

router = APIRouter(prefix="/api", tags=["Files"])


def _to_response(item: StoredFile) -> StoredFileResponse:
    return StoredFileResponse(
        name=item.name,
        path=item.path,
        kind=item.kind,
        size=item.size,
        last_modified=item.last_modified,
    )


@router.get("/files", response_model=ListItemsResponse)
async def list_items(
    path: str = Query(default="", description="Folder path relative to the storage root"),
    file_service: FileService = Depends(get_file_service),
):
    """
    List the files and folders of one folder.

    Parameters:
        - path: Folder path relative to the storage root (default: root)

    Returns:
        - items: name, path, kind, size and lastModified per entry

    Raises:
        - 400: Path outside the storage root
        - 404: Folder not found
    """
    items = file_service.list_items(path)
    return ListItemsResponse(items=[_to_response(item) for item in items])


@router.post("/folders", response_model=PathResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    request: CreateFolderRequest,
    file_service: FileService = Depends(get_file_service),
):
    """
    Create a folder.

    Parameters:
        - currentPath: Parent folder relative to the storage root
        - folderName: 1-100 letters, digits, '-' or '_'

    Returns:
        - path: Relative path of the new folder

    Raises:
        - 400: Invalid folder name
        - 409: An entry with that name exists
    """
    folder = file_service.create_folder(request.current_path, request.folder_name)
    return PathResponse(path=folder.path)


@router.post("/files/rename", response_model=PathResponse)
async def rename_item(
    request: RenameItemRequest,
    file_service: FileService = Depends(get_file_service),
):
    """
    Rename a file or folder within its folder.

    Parameters:
        - itemPath: Entry path relative to the storage root
        - newName: New name (single path component)

    Returns:
        - path: Relative path after the rename

    Raises:
        - 400: Invalid name
        - 404: Entry not found
        - 409: New name is taken
    """
    renamed = file_service.rename_item(request.item_path, request.new_name)
    return PathResponse(path=renamed.path)


@router.delete("/files", response_model=SuccessResponse)
async def delete_item(
    path: str = Query(..., description="Entry path relative to the storage root"),
    file_service: FileService = Depends(get_file_service),
):
    """
    Delete a file, or a folder and its contents.

    Raises:
        - 400: Path outside the storage root, or the root itself
        - 404: Entry not found
    """
    file_service.delete_item(path)
    return SuccessResponse()
