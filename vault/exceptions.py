"""Custom exception classes for the vault server."""

from typing import Iterable, Optional


class VaultException(Exception):
    """
    Base exception class for all vault errors.
    """
    pass


class ValidationError(VaultException):
    """
    Raised when a request argument is rejected before any I/O happens.
    """
    pass


class InvalidNameError(ValidationError):
    """
    Raised when a folder, file or rename target name is not acceptable.
    """
    pass


class PathTraversalError(ValidationError):
    """
    Raised when a path resolves outside the storage root.
    """
    pass


class MissingTokenError(VaultException):
    """
    Raised when a download or media request carries no token.
    """
    pass


class InvalidTokenError(VaultException):
    """
    Raised when a token is unknown or expired.
    """
    pass


class InvalidCredentialsError(VaultException):
    """
    Raised when a login or download password does not match.
    """
    pass


class FileNotFoundError(VaultException):
    """
    Raised when a requested file or folder does not exist.
    """
    pass


class ItemExistsError(VaultException):
    """
    Raised when creating or renaming onto an existing entry.
    """
    pass


class UploadSessionNotFoundError(VaultException):
    """
    Raised when finalizing or abandoning an upload session that has no chunks on disk.
    """
    pass


class IncompleteUploadError(VaultException):
    """
    Raised when finalize finds gaps in the received chunk indices.
    """

    def __init__(self, upload_id: str, missing: Iterable[int], missing_count: Optional[int] = None):
        self.upload_id = upload_id
        self.missing = sorted(missing)
        self.missing_count = missing_count if missing_count is not None else len(self.missing)
        preview = ", ".join(str(i) for i in self.missing[:10])
        if self.missing_count > min(len(self.missing), 10):
            preview += ", ..."
        super().__init__(f"Upload {upload_id} is missing {self.missing_count} chunk(s): {preview}")


class RangeNotSatisfiableError(VaultException):
    """
    Raised when a Range header cannot be served for the target file.
    """

    def __init__(self, range_header: str, file_size: int):
        self.range_header = range_header
        self.file_size = file_size
        super().__init__(f"Range '{range_header}' not satisfiable for {file_size} byte file")


class StorageIOError(VaultException):
    """
    Raised when the filesystem refuses a read or write (disk full, permissions).
    """
    pass
