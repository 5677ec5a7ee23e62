"""Pydantic schemas for file and folder endpoints."""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class StoredFileResponse(BaseModel):
    """Response model for a listed file or folder."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    path: str
    kind: Literal["file", "folder"]
    size: int
    last_modified: int = Field(alias="lastModified")


class ListItemsResponse(BaseModel):
    """Response model for a folder listing."""
    items: List[StoredFileResponse]


class CreateFolderRequest(BaseModel):
    """Request model for folder creation."""
    model_config = ConfigDict(populate_by_name=True)

    current_path: str = Field(default="", alias="currentPath")
    folder_name: str = Field(alias="folderName")


class RenameItemRequest(BaseModel):
    """Request model for renaming a file or folder."""
    model_config = ConfigDict(populate_by_name=True)

    item_path: str = Field(alias="itemPath")
    new_name: str = Field(alias="newName")


class PathResponse(BaseModel):
    """Response model for operations that produce a path."""
    success: bool = True
    path: str
