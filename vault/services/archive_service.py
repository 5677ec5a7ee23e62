"""ZIP bundling of selected files."""

import io
import time
import zipfile
from pathlib import Path
from typing import List, Optional, Tuple

from common.constants import MAX_ARCHIVE_FILES
from common.logging_config import get_logger
from vault.exceptions import ValidationError
from vault.storage import reject_reserved, resolve_path

logger = get_logger(__name__)


class ArchiveService:
    def __init__(self, storage_root: Path, temp_dir: Optional[Path] = None):
        self.storage_root = Path(storage_root)
        self.temp_dir = temp_dir

    def build_zip(self, file_paths: List[str]) -> Tuple[str, bytes]:
        """
        Bundle files into an in-memory deflated ZIP.

        Folders and missing entries are skipped. Entries are stored under
        their base name.

        Args:
            file_paths: 1-50 paths relative to the storage root

        Returns:
            Tuple of (archive filename, archive bytes)

        Raises:
            ValidationError: If the list is empty or too long
            PathTraversalError: If any path escapes the storage root or
                points into the upload temp area
        """
        if not file_paths:
            raise ValidationError("No files specified")
        if len(file_paths) > MAX_ARCHIVE_FILES:
            raise ValidationError(f"Too many files selected (max {MAX_ARCHIVE_FILES})")

        resolved = [reject_reserved(resolve_path(self.storage_root, p), self.temp_dir) for p in file_paths]

        buffer = io.BytesIO()
        added = 0
        with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
            for original, full_path in zip(file_paths, resolved):
                if not full_path.is_file():
                    logger.warning(f"Skipping '{original}' in archive: not a file")
                    continue
                archive.write(full_path, arcname=full_path.name)
                added += 1

        archive_name = f"selected_files_{int(time.time() * 1000)}.zip"
        logger.info(f"Built {archive_name} with {added}/{len(file_paths)} file(s)")
        return archive_name, buffer.getvalue()
