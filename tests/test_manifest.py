"""
HashCertify Manifest Parser Tests

Tests parsing of Get-FileHash table output including:
- Record lines with spaces in paths
- Structural lines (header, separator, blank) ignored silently
- Diagnostics for garbage lines and wrong-width digests
- Encoding detection from byte-order marks

Example usage:
    pytest tests/test_manifest.py -v
"""

import pytest

from core.errors import ManifestUnreadableError
from core.manifest import (
    load_manifest,
    parse_manifest_line,
    parse_manifest_lines,
    read_manifest_lines,
)
from core.models import DiagnosticReason
from tests.conftest import DIGEST_A, DIGEST_B
from tests.helpers import write_manifest


class TestParseManifestLine:
    """Test parsing of single manifest records."""

    def test_basic_record(self):
        """Test a record with a Windows path."""
        entry = parse_manifest_line(f"SHA256  {DIGEST_A}  C:\\A\\B\\x.txt", 3)

        assert entry is not None
        assert entry.algorithm == "SHA256"
        assert entry.digest == DIGEST_A
        assert entry.absolute_path == "C:\\A\\B\\x.txt"
        assert entry.line_number == 3

    def test_path_with_spaces(self):
        """Test that everything after the digest is the path."""
        entry = parse_manifest_line(f"SHA256   {DIGEST_A}   C:\\Case Files\\photo 1.jpg   ")

        assert entry.absolute_path == "C:\\Case Files\\photo 1.jpg"

    def test_lowercase_digest_canonicalized(self):
        """Test that digests are stored uppercase."""
        entry = parse_manifest_line(f"sha256 {'ab' * 32} /data/a.bin")

        assert entry.digest == "AB" * 32
        assert entry.algorithm == "SHA256"

    def test_posix_path(self):
        """Test a record with forward slashes."""
        entry = parse_manifest_line(f"SHA256 {DIGEST_B} /mnt/evidence/a.txt")

        assert entry.absolute_path == "/mnt/evidence/a.txt"

    def test_wrong_width_digest_rejected(self):
        """Test that an MD5-width digest does not produce an entry."""
        assert parse_manifest_line(f"MD5 {'a' * 32} C:\\x.txt") is None

    def test_garbage_rejected(self):
        """Test that free text does not produce an entry."""
        assert parse_manifest_line("this is not a manifest line") is None


class TestParseManifestLines:
    """Test parsing of whole manifests into entries and diagnostics."""

    def test_structural_lines_ignored(self):
        """Test header, separator and blank lines produce no diagnostics."""
        lines = [
            "",
            "Algorithm       Hash          Path",
            "---------       ----          ----",
            f"SHA256          {DIGEST_A}    C:\\A\\B\\x.txt",
            "   ",
            f"SHA256          {DIGEST_B}    C:\\A\\B\\y.txt",
            "",
        ]

        parsed = parse_manifest_lines(lines)

        assert len(parsed.entries) == 2
        assert parsed.diagnostics == []
        assert parsed.paths == ["C:\\A\\B\\x.txt", "C:\\A\\B\\y.txt"]

    def test_garbage_line_reported(self):
        """Test that an unparseable line becomes a diagnostic with its line number."""
        lines = [
            f"SHA256 {DIGEST_A} C:\\A\\x.txt",
            "random garbage",
            f"SHA256 {DIGEST_B} C:\\A\\y.txt",
        ]

        parsed = parse_manifest_lines(lines)

        assert len(parsed.entries) == 2
        assert len(parsed.diagnostics) == 1
        diagnostic = parsed.diagnostics[0]
        assert diagnostic.line_number == 2
        assert diagnostic.line == "random garbage"
        assert diagnostic.reason == DiagnosticReason.UNPARSEABLE.value

    def test_invalid_digest_reported(self):
        """Test that a digest of the wrong width gets its own reason."""
        parsed = parse_manifest_lines([f"SHA1 {'F' * 40} C:\\A\\x.txt"])

        assert parsed.entries == []
        assert parsed.diagnostics[0].reason == DiagnosticReason.INVALID_DIGEST.value
        assert "40" in parsed.diagnostics[0].message

    def test_line_terminators_stripped(self):
        """Test CRLF terminators do not leak into paths."""
        parsed = parse_manifest_lines([f"SHA256 {DIGEST_A} C:\\A\\x.txt\r\n"])

        assert parsed.entries[0].absolute_path == "C:\\A\\x.txt"

    def test_entries_keep_manifest_order(self):
        """Test entries come back in the order they were written."""
        lines = [f"SHA256 {DIGEST_A} C:\\A\\{name}.txt" for name in ("z", "a", "m")]

        parsed = parse_manifest_lines(lines)

        assert [e.absolute_path[-5:] for e in parsed.entries] == ["z.txt", "a.txt", "m.txt"]


class TestLoadManifest:
    """Test reading manifests from disk."""

    def test_load_utf8(self, temp_dir):
        """Test a plain UTF-8 manifest."""
        path = write_manifest(temp_dir / "hashes.txt", [
            f"SHA256 {DIGEST_A} C:\\A\\x.txt",
            f"SHA256 {DIGEST_B} C:\\A\\y.txt",
        ])

        parsed = load_manifest(path)

        assert len(parsed.entries) == 2
        assert parsed.diagnostics == []

    def test_load_utf16_with_bom(self, temp_dir):
        """Test a PowerShell-style UTF-16 manifest with non-ASCII paths."""
        path = write_manifest(
            temp_dir / "hashes.txt",
            [f"SHA256 {DIGEST_A} C:\\Akten\\Übersicht.txt", f"SHA256 {DIGEST_B} C:\\Akten\\b.txt"],
            encoding="utf-16"
        )

        parsed = load_manifest(path)

        assert len(parsed.entries) == 2
        assert parsed.entries[0].absolute_path == "C:\\Akten\\Übersicht.txt"

    def test_load_utf8_with_bom(self, temp_dir):
        """Test that a UTF-8 BOM does not end up in the first line."""
        path = temp_dir / "hashes.txt"
        path.write_bytes(f"SHA256 {DIGEST_A} C:\\A\\x.txt\n".encode("utf-8-sig"))

        parsed = load_manifest(path)

        assert len(parsed.entries) == 1
        assert parsed.diagnostics == []

    def test_missing_manifest(self, temp_dir):
        """Test that a missing manifest is fatal."""
        with pytest.raises(ManifestUnreadableError, match="not found"):
            load_manifest(temp_dir / "missing.txt")

    def test_directory_is_not_a_manifest(self, temp_dir):
        """Test that a directory path is rejected."""
        with pytest.raises(ManifestUnreadableError, match="not a file"):
            read_manifest_lines(temp_dir)

    def test_undecodable_manifest(self, temp_dir):
        """Test that bytes invalid in the chosen codec are fatal."""
        path = temp_dir / "hashes.txt"
        path.write_bytes(b"\xff\xfe\xfd not utf-8")

        with pytest.raises(ManifestUnreadableError, match="Cannot decode"):
            read_manifest_lines(path, encoding="utf-8")

    def test_empty_manifest(self, temp_dir):
        """Test an empty file parses to nothing."""
        path = temp_dir / "hashes.txt"
        path.write_bytes(b"")

        parsed = load_manifest(path)

        assert parsed.entries == []
        assert parsed.diagnostics == []
