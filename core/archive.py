"""
Archive extraction and root detection.

Extraction writes every member of a ZIP or TAR archive under a destination
directory after checking member names for path traversal. Root detection
then compensates for archives made with "compress this folder", which wrap
all content in one top-level directory, versus archives made from a
folder's contents.

Example usage:
    from core.archive import extract_archive, detect_archive_root, list_archived_files

    extract_archive("evidence.zip", destination)
    root, wrapping_folder = detect_archive_root(destination)
    files = list_archived_files(root)
"""

import re
import shutil
import tarfile
import zipfile
import zlib
from pathlib import Path
from typing import List, Optional, Tuple, Union

from core.errors import ArchiveCorruptError, ArchiveUnreadableError
from core.logging import get_logger
from core.models import ArchivedFile
from core.paths import relative_key

logger = get_logger(__name__)

_DRIVE_RE = re.compile(r"^[A-Za-z]:$")


def safe_member_name(name: str) -> str:
    """
    Normalize an archive member name and reject unsafe ones.

    Backslashes written by some Windows zip tools are treated as separators.

    Args:
        name: Member name as stored in the archive

    Returns:
        Relative POSIX-style name ("" for the archive root itself)

    Raises:
        ArchiveCorruptError: If the name is absolute, carries a drive letter
            or climbs out with ``..``
    """
    normalized = name.replace("\\", "/")
    parts = [part for part in normalized.split("/") if part not in ("", ".")]

    if normalized.startswith("/") or ".." in parts or (parts and _DRIVE_RE.match(parts[0])):
        raise ArchiveCorruptError(f"Unsafe archive path detected: {name}")

    return "/".join(parts)


def _is_zip_directory(info: zipfile.ZipInfo) -> bool:
    # Windows tools may mark directories with a trailing backslash
    return info.is_dir() or info.filename.endswith("\\")


def _warn_if_duplicate(target: Path, member_name: str) -> None:
    if target.is_file():
        logger.warning(f"Archive member {member_name} overwrites an earlier member with the same key")


def _extract_zip(archive: Path, destination: Path) -> int:
    count = 0
    try:
        with zipfile.ZipFile(archive, 'r') as zipf:
            # Validate zip file integrity
            bad_file = zipf.testzip()
            if bad_file:
                raise ArchiveCorruptError(f"Corrupted zip file - bad file: {bad_file}")

            for info in zipf.infolist():
                name = safe_member_name(info.filename)
                if not name:
                    continue
                target = destination / name
                if _is_zip_directory(info):
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                _warn_if_duplicate(target, info.filename)
                target.parent.mkdir(parents=True, exist_ok=True)
                with zipf.open(info) as src, open(target, 'wb') as dst:
                    shutil.copyfileobj(src, dst)
                count += 1
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise ArchiveCorruptError(f"Corrupted zip file {archive}: {e}") from e
    except (NotImplementedError, RuntimeError) as e:
        # Unsupported compression method or encrypted members
        raise ArchiveUnreadableError(f"Cannot extract {archive}: {e}") from e
    return count


def _extract_tar(archive: Path, destination: Path) -> int:
    count = 0
    try:
        with tarfile.open(archive, 'r:*') as tarf:
            for member in tarf.getmembers():
                name = safe_member_name(member.name)
                if not name:
                    continue
                target = destination / name
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                if member.issym() or not (member.isfile() or member.islnk()):
                    logger.warning(f"Skipping non-regular tar member: {member.name}")
                    continue
                try:
                    source = tarf.extractfile(member)
                except KeyError as e:
                    # Hard link to a member that is not in the archive
                    raise ArchiveCorruptError(f"Broken link in tar file {archive}: {member.name}: {e}") from e
                if source is None:
                    logger.warning(f"Skipping unreadable tar member: {member.name}")
                    continue
                _warn_if_duplicate(target, member.name)
                target.parent.mkdir(parents=True, exist_ok=True)
                with source, open(target, 'wb') as dst:
                    shutil.copyfileobj(source, dst)
                count += 1
    except tarfile.CompressionError as e:
        raise ArchiveUnreadableError(f"Cannot decompress {archive}: {e}") from e
    except (tarfile.TarError, zlib.error, EOFError) as e:
        raise ArchiveCorruptError(f"Corrupted tar file {archive}: {e}") from e
    return count


def extract_archive(archive_path: Union[str, Path], destination: Union[str, Path]) -> Path:
    """
    Extract a ZIP or TAR archive into an existing directory.

    Args:
        archive_path: Path to the archive
        destination: Directory to extract into (usually from an
            ExtractionWorkspace)

    Returns:
        The destination directory

    Raises:
        ArchiveUnreadableError: If the archive is missing, unreadable or of
            an unrecognized format
        ArchiveCorruptError: If members fail integrity or safety checks
    """
    archive = Path(archive_path)
    dest = Path(destination)

    if not archive.exists():
        raise ArchiveUnreadableError(f"Archive not found: {archive}")
    if not archive.is_file():
        raise ArchiveUnreadableError(f"Archive is not a file: {archive}")

    try:
        if zipfile.is_zipfile(archive):
            count = _extract_zip(archive, dest)
        elif tarfile.is_tarfile(archive):
            count = _extract_tar(archive, dest)
        else:
            raise ArchiveUnreadableError(f"Unrecognized archive format: {archive}")
    except OSError as e:
        raise ArchiveUnreadableError(f"Cannot read archive {archive}: {e}") from e

    logger.info(f"Extracted {count} files from {archive.name} to {dest}")
    return dest


def detect_archive_root(extracted_root: Union[str, Path]) -> Tuple[Path, Optional[str]]:
    """
    Find the effective root of an extracted archive.

    If the archive has exactly one top-level entry and it is a directory,
    that directory becomes the root. Otherwise the extracted root is used
    unchanged.

    Args:
        extracted_root: Directory the archive was extracted into

    Returns:
        Tuple of (effective_root, wrapping_folder_name or None)
    """
    root = Path(extracted_root)
    top_level = list(root.iterdir())

    if len(top_level) == 1 and top_level[0].is_dir() and not top_level[0].is_symlink():
        logger.info(f"Archive wraps its content in folder '{top_level[0].name}'; using it as root")
        return top_level[0], top_level[0].name

    return root, None


def list_archived_files(root: Union[str, Path]) -> List[ArchivedFile]:
    """
    List every regular file under the effective root, sorted by key.

    Args:
        root: Effective archive root

    Returns:
        ArchivedFile per file with its RelativeKey and size
    """
    root_path = Path(root)
    files = []
    for path in root_path.rglob("*"):
        if path.is_symlink() or not path.is_file():
            continue
        files.append(ArchivedFile(
            path=str(path),
            relative_key=relative_key(path, root_path),
            size_bytes=path.stat().st_size
        ))
    files.sort(key=lambda f: f.relative_key)
    return files
