"""
HashCertify Test Helper Utilities

Provides utility functions for building manifests and archives in tests.

Example usage:
    line = manifest_line(b"content", r"C:\\Evidence\\a.txt")
    manifest = write_manifest(temp_dir / "hashes.txt", [line])
    archive = make_zip(temp_dir / "evidence.zip", {"a.txt": b"content"})
"""

import hashlib
import io
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

MANIFEST_HEADER = [
    "",
    "Algorithm       Hash                                                                   Path",
    "---------       ----                                                                   ----",
]


def sha256_upper(content: bytes) -> str:
    """Uppercase SHA-256 of content, as Get-FileHash prints it."""
    return hashlib.sha256(content).hexdigest().upper()


def manifest_line(content: bytes, absolute_path: str, digest: Optional[str] = None) -> str:
    """Build one Get-FileHash table row for content stored at absolute_path."""
    return f"SHA256          {digest or sha256_upper(content)}       {absolute_path}"


def write_manifest(
    path: Path,
    lines: List[str],
    header: bool = True,
    encoding: str = "utf-8"
) -> Path:
    """
    Write a manifest file.

    Args:
        path: Destination file
        lines: Record lines (or any raw lines)
        header: Prepend the Get-FileHash header and separator lines
        encoding: Codec used to write the file ("utf-16" adds a BOM)

    Returns:
        Path to the written manifest
    """
    all_lines = (MANIFEST_HEADER if header else []) + list(lines) + [""]
    path.write_bytes("\r\n".join(all_lines).encode(encoding))
    return path


def make_zip(path: Path, files: Dict[str, bytes], prefix: str = "") -> Path:
    """
    Create a ZIP archive.

    Args:
        path: Destination archive
        files: Member name -> content
        prefix: Folder prefix for every member (e.g. "Case42/")

    Returns:
        Path to the archive
    """
    with zipfile.ZipFile(path, 'w', zipfile.ZIP_DEFLATED) as zf:
        if prefix:
            zf.writestr(prefix, b"")
        for name, content in files.items():
            zf.writestr(prefix + name, content)
    return path


def make_tar(path: Path, files: Dict[str, bytes], prefix: str = "", mode: str = "w:gz") -> Path:
    """Create a TAR archive (gzip compressed by default)."""
    with tarfile.open(path, mode) as tf:
        for name, content in files.items():
            info = tarfile.TarInfo(prefix + name)
            info.size = len(content)
            tf.addfile(info, io.BytesIO(content))
    return path


def write_tree(root: Path, files: Dict[str, bytes]) -> Path:
    """Write files under root as if an archive had been extracted there."""
    for name, content in files.items():
        target = root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    return root
