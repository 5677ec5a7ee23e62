"""Client-side errors and server error-code mapping."""

from typing import Optional, Tuple

import httpx

ERROR_MESSAGES = {
    'VALIDATION_ERROR': 'Invalid request.',
    'INVALID_NAME': 'Invalid name. Folder names may only contain letters, digits, "-" and "_".',
    'PATH_TRAVERSAL': 'Path is outside the vault.',
    'MISSING_TOKEN': 'Download link is missing its token.',
    'INVALID_CREDENTIALS': 'Invalid username or password.',
    'INVALID_TOKEN': 'Download link expired. Please try again.',
    'FILE_NOT_FOUND': 'File not found on server.',
    'UPLOAD_SESSION_NOT_FOUND': 'Upload session not found on server.',
    'ITEM_EXISTS': 'An item with that name already exists.',
    'INCOMPLETE_UPLOAD': 'Upload is missing chunks.',
    'RANGE_NOT_SATISFIABLE': 'Server rejected the requested byte range.',
    'STORAGE_IO_ERROR': 'Server could not read or write the file.',
    'INTERNAL_ERROR': 'Server error.',
}

STATUS_MESSAGES = {
    400: 'Bad request',
    401: 'Not authenticated',
    403: 'Access forbidden',
    404: 'Not found',
    409: 'Conflict',
    416: 'Range not satisfiable',
    422: 'Invalid request',
    500: 'Server error',
    503: 'Service unavailable',
}


def describe_error(response: httpx.Response) -> Tuple[str, str]:
    """
    Map an error response to a code and a user-friendly message.

    Args:
        response: HTTP response with a non-success status

    Returns:
        Tuple of (code, message); code is 'UNKNOWN' for non-vault bodies
    """
    try:
        error_data = response.json()
    except ValueError:
        error_data = None

    if isinstance(error_data, dict):
        detail = error_data.get('detail', 'Unknown error')
        code = error_data.get('code', 'UNKNOWN')
    else:
        detail = response.text if response.text else 'Unknown error'
        code = 'UNKNOWN'

    if code in ERROR_MESSAGES:
        return code, ERROR_MESSAGES[code]

    message = STATUS_MESSAGES.get(response.status_code, str(detail))
    return code, message


class VaultClientError(Exception):
    """A request the server answered with an error status."""

    def __init__(self, message: str, code: str = 'UNKNOWN', status_code: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: httpx.Response) -> "VaultClientError":
        code, message = describe_error(response)
        return cls(message, code=code, status_code=response.status_code)


class PasswordRequiredError(VaultClientError):
    """The server asked for the vault password before issuing a token."""

    def __init__(self, reason: str):
        super().__init__(reason, code='REQUIRES_AUTH', status_code=401)
        self.reason = reason


class DownloadError(Exception):
    """A range response did not deliver the expected bytes."""


class DownloadCancelled(Exception):
    """The download was removed from the queue while in flight."""
