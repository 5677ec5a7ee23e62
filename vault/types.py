"""Vault-specific data type definitions."""

from dataclasses import dataclass
from typing import Literal

ItemKind = Literal["file", "folder"]


@dataclass(frozen=True)
class StoredFile:
    """
    A file or folder under the storage root.
    """
    name: str
    path: str
    kind: ItemKind
    size: int
    last_modified: int


@dataclass(frozen=True)
class ByteRange:
    """
    Inclusive byte range [start, end] within a file.
    """
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1
