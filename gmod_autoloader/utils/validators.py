"""Download validators for the auto-loader.

Structural sanity checks applied to downloaded files before they are
published. There is no signature verification; these checks only catch
truncated, empty or mistargeted downloads (e.g. an HTML error page).
"""

from pathlib import Path
from typing import Optional, Tuple


# Local file header signature every zip archive starts with
ZIP_SIGNATURE = b"PK\x03\x04"


def read_signature(path: Path, length: int = len(ZIP_SIGNATURE)) -> bytes:
    """
    Read the leading bytes of a file.

    Args:
        path: File to read
        length: Number of bytes to read

    Returns:
        Up to `length` leading bytes
    """
    with open(path, "rb") as f:
        return f.read(length)


def validate_archive_signature(header: bytes) -> Tuple[bool, Optional[str]]:
    """
    Validate that content starts with the zip local file header.

    Args:
        header: Leading bytes of the download

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not header:
        return False, "Content is empty"

    if header[:len(ZIP_SIGNATURE)] == ZIP_SIGNATURE:
        return True, None

    return False, f"Missing zip signature (starts with {header[:4]!r})"


def validate_size(
    size: int,
    limits: Optional[Tuple[int, int]] = None
) -> Tuple[bool, Optional[str]]:
    """
    Validate a download size against an optional (min, max) envelope.

    Args:
        size: Size in bytes
        limits: Inclusive (min_bytes, max_bytes), or None to accept any
            non-empty size

    Returns:
        Tuple of (is_valid, error_message)
    """
    if size <= 0:
        return False, "Content is empty"

    if limits is None:
        return True, None

    min_bytes, max_bytes = limits
    if size < min_bytes:
        return False, f"Size {size} is below minimum {min_bytes}"
    if max_bytes and size > max_bytes:
        return False, f"Size {size} exceeds maximum {max_bytes}"

    return True, None
