"""
Manifest parsing.

A manifest is the text export of an external hashing run, one record per
line in the ``Get-FileHash`` table shape::

    Algorithm       Hash                                   Path
    ---------       ----                                   ----
    SHA256          9F86D081884C7D659A2FEAA0C55AD015A3...  C:\\Evidence\\Case42\\photo 1.jpg

The path is everything after the digest, so it may contain spaces. Header,
separator and blank lines are structural and ignored; any other line that
does not have the record shape is reported as a diagnostic instead of being
dropped silently.

Example usage:
    from core.manifest import load_manifest

    manifest = load_manifest("hashes.txt")
    for diagnostic in manifest.diagnostics:
        print(diagnostic.line_number, diagnostic.reason)
"""

import codecs
import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from core.errors import ManifestUnreadableError
from core.logging import get_logger
from core.models import (
    DIGEST_LENGTH,
    DiagnosticReason,
    ManifestDiagnostic,
    ManifestEntry,
    ParsedManifest,
)

logger = get_logger(__name__)

RECORD_RE = re.compile(
    r"^\s*(?P<algorithm>[A-Za-z][A-Za-z0-9_-]*)\s+(?P<digest>[0-9A-Fa-f]+)\s+(?P<path>\S.*?)\s*$"
)
HEADER_RE = re.compile(r"^\s*Algorithm\s+Hash\s+Path\s*$", re.IGNORECASE)
SEPARATOR_RE = re.compile(r"^[\s-]*-[\s-]*$")

# Hex tokens at least this long are taken as a digest of the wrong width
# (MD5, SHA-1, truncated) rather than ordinary words that happen to be hex.
MIN_DIGEST_LIKE_LENGTH = 32


def _is_structural(line: str) -> bool:
    """Blank, header and separator lines carry no record and no problem."""
    return not line.strip() or bool(HEADER_RE.match(line)) or bool(SEPARATOR_RE.match(line))


def parse_manifest_line(line: str, line_number: Optional[int] = None) -> Optional[ManifestEntry]:
    """
    Parse a single manifest line.

    Args:
        line: Raw manifest line
        line_number: 1-based position, recorded on the entry

    Returns:
        ManifestEntry, or None when the line does not have the record shape
        or its digest has the wrong width
    """
    match = RECORD_RE.match(line)
    if not match or len(match.group('digest')) != DIGEST_LENGTH:
        return None
    return ManifestEntry(
        algorithm=match.group('algorithm').upper(),
        digest=match.group('digest'),
        absolute_path=match.group('path'),
        line_number=line_number
    )


def parse_manifest_lines(lines: Iterable[str]) -> ParsedManifest:
    """
    Parse manifest lines into entries and diagnostics.

    Args:
        lines: Raw text lines of the manifest

    Returns:
        ParsedManifest with entries in manifest order
    """
    entries: List[ManifestEntry] = []
    diagnostics: List[ManifestDiagnostic] = []

    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")
        if _is_structural(line):
            continue

        entry = parse_manifest_line(line, line_number)
        if entry is not None:
            entries.append(entry)
            continue

        match = RECORD_RE.match(line)
        if match and len(match.group('digest')) >= MIN_DIGEST_LIKE_LENGTH:
            diagnostics.append(ManifestDiagnostic(
                line_number=line_number,
                line=line.strip(),
                reason=DiagnosticReason.INVALID_DIGEST,
                message=(
                    f"Digest has {len(match.group('digest'))} hex characters, "
                    f"expected {DIGEST_LENGTH}"
                )
            ))
        else:
            diagnostics.append(ManifestDiagnostic(
                line_number=line_number,
                line=line.strip(),
                reason=DiagnosticReason.UNPARSEABLE,
                message="Line is not of the form: <algorithm> <digest> <path>"
            ))

    if diagnostics:
        logger.warning(f"Manifest has {len(diagnostics)} unparseable line(s)")
    logger.debug(f"Parsed {len(entries)} manifest entries")

    return ParsedManifest(entries=entries, diagnostics=diagnostics)


def _detect_encoding(raw: bytes) -> str:
    """Pick a codec from the byte-order mark; UTF-8 when there is none."""
    if raw.startswith(codecs.BOM_UTF8):
        return "utf-8-sig"
    if raw.startswith(codecs.BOM_UTF16_LE) or raw.startswith(codecs.BOM_UTF16_BE):
        return "utf-16"
    return "utf-8"


def read_manifest_lines(manifest_path: Union[str, Path], encoding: Optional[str] = None) -> List[str]:
    """
    Read the raw text lines of a manifest file.

    PowerShell 5 writes redirected output as UTF-16 LE with a byte-order
    mark, so the encoding is sniffed unless given explicitly.

    Args:
        manifest_path: Path to the manifest file
        encoding: Explicit codec name, bypassing detection

    Returns:
        List of lines without line terminators

    Raises:
        ManifestUnreadableError: If the file cannot be opened, read or decoded
    """
    path = Path(manifest_path)
    if not path.exists():
        raise ManifestUnreadableError(f"Manifest not found: {path}")
    if not path.is_file():
        raise ManifestUnreadableError(f"Manifest is not a file: {path}")

    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ManifestUnreadableError(f"Cannot read manifest {path}: {e}") from e

    codec = encoding or _detect_encoding(raw)
    try:
        text = raw.decode(codec)
    except (UnicodeDecodeError, LookupError) as e:
        raise ManifestUnreadableError(f"Cannot decode manifest {path} as {codec}: {e}") from e

    logger.info(f"Read manifest {path} ({len(raw)} bytes, {codec})")
    return text.splitlines()


def load_manifest(manifest_path: Union[str, Path], encoding: Optional[str] = None) -> ParsedManifest:
    """Read and parse a manifest file."""
    return parse_manifest_lines(read_manifest_lines(manifest_path, encoding=encoding))
