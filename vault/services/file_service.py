"""File and folder operations under the storage root."""

import re
import shutil
from pathlib import Path
from typing import List, Optional

from common.constants import MAX_ITEM_NAME_LENGTH
from common.logging_config import get_logger
from vault.exceptions import (
    FileNotFoundError,
    InvalidNameError,
    ItemExistsError,
    StorageIOError,
    ValidationError,
)
from vault.storage import ensure_directory, reject_reserved, resolve_path, stat_item, validate_single_component
from vault.types import StoredFile

logger = get_logger(__name__)

FOLDER_NAME_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")


def validate_folder_name(folder_name: str) -> str:
    """
    Folder names are 1-100 characters of letters, digits, '-' and '_'.

    Raises:
        InvalidNameError: If folder_name does not match
    """
    if not folder_name or len(folder_name) > MAX_ITEM_NAME_LENGTH or not FOLDER_NAME_PATTERN.fullmatch(folder_name):
        raise InvalidNameError("Invalid folder name.")
    return folder_name


class FileService:
    def __init__(self, storage_root: Path, temp_dir: Optional[Path] = None):
        self.storage_root = Path(storage_root)
        self.temp_dir = temp_dir

    def _resolve(self, *parts: str) -> Path:
        return reject_reserved(resolve_path(self.storage_root, *parts), self.temp_dir)

    def list_items(self, current_path: str = "") -> List[StoredFile]:
        """
        List a folder, hiding dot-entries (including the upload temp area).

        Raises:
            FileNotFoundError: If current_path is not an existing folder
        """
        ensure_directory(self.storage_root)
        directory = self._resolve(current_path)
        if not directory.is_dir():
            raise FileNotFoundError(f"Folder not found: '{current_path or '/'}'")

        items = []
        for entry in sorted(directory.iterdir(), key=lambda p: p.name.lower()):
            if entry.name.startswith('.'):
                continue
            try:
                items.append(stat_item(self.storage_root, entry))
            except OSError as e:
                logger.warning(f"Skipping unreadable entry {entry}: {e}")
        return items

    def create_folder(self, current_path: str, folder_name: str) -> StoredFile:
        """
        Create a folder inside current_path.

        Raises:
            InvalidNameError: If folder_name is not acceptable (checked before any I/O)
            ItemExistsError: If an entry with that name exists
        """
        validate_folder_name(folder_name)
        new_folder = self._resolve(current_path, folder_name)

        ensure_directory(self.storage_root)
        if not new_folder.parent.is_dir():
            raise FileNotFoundError(f"Folder not found: '{current_path or '/'}'")

        try:
            new_folder.mkdir()
        except FileExistsError:
            raise ItemExistsError(f"'{folder_name}' already exists")
        except OSError as e:
            raise StorageIOError(f"Failed to create folder '{folder_name}': {e.strerror or e}")

        logger.info(f"Created folder {new_folder}")
        return stat_item(self.storage_root, new_folder)

    def delete_item(self, item_path: str) -> None:
        """
        Delete a file, or a folder with everything in it.

        Raises:
            ValidationError: If item_path names the storage root
            FileNotFoundError: If item_path does not exist
        """
        full_path = self._resolve(item_path)
        if full_path == self.storage_root.resolve():
            raise ValidationError("The storage root cannot be deleted")
        if not full_path.exists():
            raise FileNotFoundError(f"Not found: '{item_path}'")

        try:
            if full_path.is_dir():
                shutil.rmtree(full_path)
            else:
                full_path.unlink()
        except OSError as e:
            raise StorageIOError(f"Failed to delete '{item_path}': {e.strerror or e}")

        logger.info(f"Deleted {full_path}")

    def rename_item(self, item_path: str, new_name: str) -> StoredFile:
        """
        Rename an entry within its folder.

        Raises:
            InvalidNameError: If new_name is empty, too long or contains separators
            FileNotFoundError: If item_path does not exist
            ItemExistsError: If the new name is taken
        """
        validate_single_component(new_name, max_length=MAX_ITEM_NAME_LENGTH)

        old_path = self._resolve(item_path)
        if old_path == self.storage_root.resolve():
            raise ValidationError("The storage root cannot be renamed")
        if not old_path.exists():
            raise FileNotFoundError(f"Not found: '{item_path}'")

        new_path = reject_reserved(old_path.parent / new_name, self.temp_dir)
        if new_path.exists():
            raise ItemExistsError(f"'{new_name}' already exists")

        try:
            old_path.rename(new_path)
        except OSError as e:
            raise StorageIOError(f"Failed to rename '{item_path}': {e.strerror or e}")

        logger.info(f"Renamed {old_path} -> {new_path.name}")
        return stat_item(self.storage_root, new_path)
