"""Utility functions for CLI output."""

from typing import Optional

from vaultcli.constants import GREEN, RESET


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def format_eta(seconds: Optional[float]) -> str:
    """
    Format a remaining-time estimate as "1h02m", "3m05s" or "42s".

    Returns "--" when no estimate is available yet.
    """
    if seconds is None or seconds < 0:
        return "--"

    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes:02d}m"
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"


def progress_line(verb: str, name: str, done: int, total: int, percent: float, suffix: str = "") -> str:
    """Single-line transfer progress, meant to be written after a carriage return."""
    line = (
        f"{verb} {name}: {format_file_size(done)} / {format_file_size(total)} "
        f"({GREEN}{percent:.1f}%{RESET})"
    )
    return f"{line} {suffix}" if suffix else line
