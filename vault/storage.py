"""Storage-root path resolution and traversal guard."""

import os
from pathlib import Path, PurePosixPath
from typing import Optional

from vault.exceptions import InvalidNameError, PathTraversalError
from vault.types import StoredFile


def resolve_path(root: Path, *parts: str) -> Path:
    """
    Join relative path parts onto the storage root and verify containment.

    Args:
        root: Storage root directory
        *parts: Relative path fragments (POSIX or native separators)

    Returns:
        Absolute resolved path inside root

    Raises:
        PathTraversalError: If the joined path escapes root or is absolute
    """
    root_resolved = root.resolve()
    candidate = root_resolved

    for part in parts:
        if not part:
            continue
        normalized = part.replace("\\", "/")
        if normalized.startswith("/") or PurePosixPath(normalized).is_absolute():
            raise PathTraversalError(f"Absolute paths are not allowed: '{part}'")
        segments = [s for s in normalized.split("/") if s not in ("", ".")]
        if ".." in segments:
            raise PathTraversalError(f"Path traversal is not allowed: '{part}'")
        candidate = candidate.joinpath(*segments)

    try:
        resolved = candidate.resolve()
        resolved.relative_to(root_resolved)
    except (OSError, RuntimeError, ValueError):
        raise PathTraversalError("Access denied: path is outside of the storage root")

    return resolved


def relative_path(root: Path, full_path: Path) -> str:
    """
    Express an absolute path relative to the storage root with POSIX separators.
    """
    return full_path.resolve().relative_to(root.resolve()).as_posix()


def validate_single_component(name: str, max_length: int = 255) -> str:
    """
    Ensure name is a single, non-special path component.

    Raises:
        InvalidNameError: If name is empty, too long, contains a separator or is '.'/'..'
    """
    if not name or len(name) > max_length:
        raise InvalidNameError(f"Name must be 1-{max_length} characters")
    if "/" in name or "\\" in name or "\x00" in name:
        raise InvalidNameError(f"Name must not contain path separators: '{name}'")
    if name in (".", ".."):
        raise InvalidNameError(f"Reserved name: '{name}'")
    return name


def stat_item(root: Path, full_path: Path) -> StoredFile:
    """
    Build a StoredFile record for an existing path.
    """
    stats = full_path.stat()
    return StoredFile(
        name=full_path.name,
        path=relative_path(root, full_path),
        kind="folder" if full_path.is_dir() else "file",
        size=stats.st_size,
        last_modified=int(stats.st_mtime * 1000),
    )


def ensure_directory(path: Path) -> None:
    """Create a directory (and parents) if it does not exist."""
    os.makedirs(path, exist_ok=True)


def reject_reserved(path: Path, reserved: Optional[Path]) -> Path:
    """
    Refuse paths at or below the reserved upload temp area.

    Raises:
        PathTraversalError: If path is reserved or lies inside it
    """
    if reserved is None:
        return path
    reserved = reserved.resolve()
    if path == reserved or reserved in path.parents:
        raise PathTraversalError("Access denied: path is inside the temporary upload area")
    return path
