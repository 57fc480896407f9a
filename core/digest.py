"""
File digest computation.

SHA-256 is the only supported algorithm; digests are returned as uppercase
hex to match the canonical form used for manifest entries.

Example usage:
    from core.digest import compute_file_digest

    digest = compute_file_digest("evidence/photo.jpg")
    assert len(digest) == 64
"""

import hashlib
from pathlib import Path
from typing import Union

from core.errors import FileUnreadableError

CHUNK_SIZE = 1024 * 1024


def compute_file_digest(file_path: Union[str, Path]) -> str:
    """
    Calculate the SHA-256 digest of a file.

    Args:
        file_path: Path to the file to hash

    Returns:
        Uppercase hexadecimal SHA-256 digest

    Raises:
        FileUnreadableError: If the file is missing or cannot be read
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileUnreadableError(str(path), "not a regular file")

    try:
        sha256_hash = hashlib.sha256()
        with open(path, 'rb') as f:
            # Read file in chunks to handle large evidence files
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                sha256_hash.update(chunk)
        return sha256_hash.hexdigest().upper()
    except OSError as e:
        raise FileUnreadableError(str(path), e.strerror or str(e)) from e


def digests_equal(first: str, second: str) -> bool:
    """Compare two hex digests case-insensitively."""
    return first.strip().upper() == second.strip().upper()
