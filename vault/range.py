"""HTTP Range header parsing for single byte ranges."""

import re
from typing import Optional

from vault.exceptions import RangeNotSatisfiableError
from vault.types import ByteRange

RANGE_PATTERN = re.compile(r"\s*bytes\s*=\s*(\d+)\s*-\s*(\d*)\s*", re.IGNORECASE)


def parse_range(range_header: Optional[str], file_size: int) -> Optional[ByteRange]:
    """
    Parse a 'bytes=<start>-<end>' header against a file size.

    The end is optional and defaults to the last byte. Suffix ranges
    ('bytes=-500') and multiple ranges are not supported.

    Args:
        range_header: Raw Range header value, or None
        file_size: Size of the target file in bytes

    Returns:
        ByteRange, or None when no Range header was sent

    Raises:
        RangeNotSatisfiableError: If the header is malformed or the range
            does not satisfy 0 <= start <= end < file_size
    """
    if range_header is None or not range_header.strip():
        return None

    match = RANGE_PATTERN.fullmatch(range_header)
    if not match:
        raise RangeNotSatisfiableError(range_header, file_size)

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else file_size - 1

    if start >= file_size or end >= file_size or start > end:
        raise RangeNotSatisfiableError(range_header, file_size)

    return ByteRange(start=start, end=end)


def content_range(byte_range: ByteRange, file_size: int) -> str:
    return f"bytes {byte_range.start}-{byte_range.end}/{file_size}"
