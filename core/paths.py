"""
Base directory inference and relative key normalization.

Manifest paths are absolute and may use either ``/`` or ``\\``; archive
paths are relative to the extracted root. Both are reduced to the same
RelativeKey space: segments joined by ``/`` with no leading separator.

Prefixes are compared segment by segment, so ``C:\\Cases\\A`` is never
treated as a prefix of ``C:\\Cases\\AB\\file.txt``.

Example usage:
    >>> infer_base_directory([r"C:\\A\\B\\f1.txt", r"C:\\A\\B\\C\\f2.txt"])
    'C:\\\\A\\\\B'
    >>> normalize_key(r"C:\\A\\B\\C\\f2.txt", r"C:\\A\\B")
    'C/f2.txt'
"""

import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from core.errors import BaseDirectoryRequiredError, PathNotUnderBaseDirectoryError

KEY_SEPARATOR = "/"
_SEPARATOR_RE = re.compile(r"[\\/]+")


def split_segments(path: str) -> List[str]:
    """
    Split a path on runs of ``/`` or ``\\``.

    A leading separator yields an empty first segment, which marks a rooted
    path; trailing separators are dropped.

    Args:
        path: Path using either separator style

    Returns:
        List of segments ([] for an empty path)
    """
    if not path:
        return []
    segments = _SEPARATOR_RE.split(path)
    while len(segments) > 1 and segments[-1] == "":
        segments.pop()
    return segments


def separator_for(path: str) -> str:
    """Return the separator style a path is written in."""
    return "\\" if "\\" in path else "/"


def join_segments(segments: Sequence[str], separator: str = KEY_SEPARATOR) -> str:
    """Join segments back into a path; a lone root marker becomes the separator itself."""
    if list(segments) == [""]:
        return separator
    return separator.join(segments)


def infer_base_directory(paths: Iterable[str]) -> str:
    """
    Compute the longest common segment prefix of all paths.

    With a single path the result is that path's own segments, which
    includes the filename; callers must not rely on it (see
    resolve_base_directory).

    Args:
        paths: Absolute manifest paths

    Returns:
        Common base directory written with the first path's separator style,
        or "" when there are no paths or nothing in common
    """
    iterator = iter(paths)
    first = next(iterator, None)
    if first is None:
        return ""

    common = split_segments(first)
    for path in iterator:
        if not common:
            break
        segments = split_segments(path)
        index = 0
        while index < len(common) and index < len(segments) and common[index] == segments[index]:
            index += 1
        del common[index:]

    return join_segments(common, separator_for(first))


def resolve_base_directory(paths: Sequence[str], explicit: Optional[str] = None) -> Tuple[str, bool]:
    """
    Decide which base directory a run uses.

    Args:
        paths: Absolute manifest paths
        explicit: Caller-supplied base directory; bypasses inference

    Returns:
        Tuple of (base_directory, was_inferred)

    Raises:
        BaseDirectoryRequiredError: If inference would need to work from
            fewer than two distinct paths
    """
    if explicit is not None:
        return explicit, False
    distinct = len(set(paths))
    if distinct < 2:
        raise BaseDirectoryRequiredError(distinct)
    return infer_base_directory(paths), True


def normalize_key(path: str, base_directory: str) -> str:
    """
    Strip the base directory from a path and return its RelativeKey.

    Args:
        path: Absolute (or root-relative) path
        base_directory: Prefix to remove; "" strips nothing

    Returns:
        Key with ``/`` separators and no leading separator

    Raises:
        PathNotUnderBaseDirectoryError: If the base directory is not a
            segment-wise prefix of the path, or nothing remains after it
    """
    base_segments = split_segments(base_directory)
    path_segments = split_segments(path)

    prefix_length = len(base_segments)
    if path_segments[:prefix_length] != base_segments:
        raise PathNotUnderBaseDirectoryError(path, base_directory)

    remainder = [segment for segment in path_segments[prefix_length:] if segment]
    if not remainder:
        raise PathNotUnderBaseDirectoryError(path, base_directory, "path is the base directory itself")

    return KEY_SEPARATOR.join(remainder)


def relative_key(path: Union[str, Path], root: Union[str, Path]) -> str:
    """RelativeKey of a filesystem path under an extracted archive root."""
    return normalize_key(str(path), str(root))
