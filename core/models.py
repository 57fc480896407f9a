"""
HashCertify Core Models

Pydantic v2 models for manifest entries, diagnostics and reconciliation
results. Results are frozen: they are computed once per run and only
consumed by reporting.

Example usage:
    from core.models import ManifestEntry, Outcome

    entry = ManifestEntry(
        algorithm="SHA256",
        digest="aa" * 32,
        absolute_path=r"C:\\Evidence\\Case42\\photo.jpg",
        line_number=4
    )
    print(entry.digest)  # canonical uppercase
"""

import re
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, computed_field

# Fixed digest algorithm: SHA-256, 64 hex characters
DIGEST_ALGORITHM = "SHA256"
DIGEST_LENGTH = 64

_HEX_RE = re.compile(r"^[0-9A-Fa-f]+$")


class Outcome(str, Enum):
    """Classification of one relative key after reconciliation."""
    MATCHED = "matched"
    MISMATCHED = "mismatched"
    MANIFEST_ONLY = "manifest_only"
    ARCHIVE_ONLY = "archive_only"
    UNREADABLE = "unreadable"


class DiagnosticReason(str, Enum):
    """Why a manifest line or entry did not make it into the expected map."""
    UNPARSEABLE = "unparseable"
    INVALID_DIGEST = "invalid_digest"
    PATH_NOT_UNDER_BASE = "path_not_under_base"
    EMPTY_KEY = "empty_key"
    DUPLICATE_KEY = "duplicate_key"


class DuplicatePolicy(str, Enum):
    """What to do when two manifest entries map to one key with different digests."""
    ERROR = "error"
    LAST_WINS = "last_wins"


def canonical_digest(value: str) -> str:
    """
    Validate and canonicalize a hex digest.

    Args:
        value: Hex digest in any case, surrounding whitespace allowed

    Returns:
        Uppercase digest

    Raises:
        ValueError: If the value is not DIGEST_LENGTH hex characters
    """
    digest = value.strip()
    if len(digest) != DIGEST_LENGTH or not _HEX_RE.match(digest):
        raise ValueError(f"Digest must be {DIGEST_LENGTH} hex characters, got {value!r}")
    return digest.upper()


class ManifestEntry(BaseModel):
    """One (digest, absolute path) record parsed from a manifest line."""
    algorithm: str = Field(DIGEST_ALGORITHM, min_length=1, description="Algorithm tag as written in the manifest")
    digest: str = Field(..., description="Expected digest, canonical uppercase hex")
    absolute_path: str = Field(..., min_length=1, description="Absolute path using / or \\ separators")
    line_number: Optional[int] = Field(None, ge=1, description="1-based line number in the manifest")

    @field_validator('digest')
    @classmethod
    def validate_digest(cls, v):
        """Ensure the digest has the fixed width and canonical case."""
        return canonical_digest(v)

    @field_validator('absolute_path')
    @classmethod
    def validate_absolute_path(cls, v):
        """Trim surrounding whitespace and reject empty paths."""
        v = v.strip()
        if not v:
            raise ValueError("Absolute path cannot be empty")
        return v

    model_config = {
        "extra": "forbid",
        "frozen": True
    }


class ManifestDiagnostic(BaseModel):
    """A manifest line or entry that was excluded, and why."""
    line_number: Optional[int] = Field(None, ge=1, description="1-based line number in the manifest")
    line: str = Field("", description="Offending line or path")
    reason: DiagnosticReason = Field(..., description="Machine-readable reason")
    message: str = Field("", description="Human-readable explanation")

    model_config = {
        "extra": "forbid",
        "frozen": True,
        "use_enum_values": True
    }


class ParsedManifest(BaseModel):
    """Entries and diagnostics produced by the manifest parser."""
    entries: List[ManifestEntry] = Field(default_factory=list)
    diagnostics: List[ManifestDiagnostic] = Field(default_factory=list)

    @property
    def paths(self) -> List[str]:
        """Absolute paths of all parsed entries, in manifest order."""
        return [entry.absolute_path for entry in self.entries]

    model_config = {
        "frozen": True
    }


class ArchivedFile(BaseModel):
    """One regular file found under the effective archive root."""
    path: str = Field(..., description="Filesystem path of the extracted file")
    relative_key: str = Field(..., min_length=1, description="Canonical key relative to the archive root")
    size_bytes: int = Field(0, ge=0)

    model_config = {
        "frozen": True
    }


class ReconciliationEntry(BaseModel):
    """Outcome for one relative key."""
    key: str = Field(..., min_length=1)
    outcome: Outcome
    expected_digest: Optional[str] = None
    actual_digest: Optional[str] = None
    error: Optional[str] = Field(None, description="Digest failure for unreadable files")

    model_config = {
        "extra": "forbid",
        "frozen": True,
        "use_enum_values": True
    }


class ReconciliationResult(BaseModel):
    """
    Complete reconciliation of a manifest against an archive.

    Every key in the expected map or the archive appears in ``entries``
    exactly once, sorted by key.
    """
    algorithm: str = Field(DIGEST_ALGORITHM)
    base_directory: str = Field("", description="Base directory stripped from manifest paths")
    base_directory_inferred: bool = Field(False, description="True when derived from the manifest")
    archive_root: Optional[str] = Field(None, description="Effective archive root used for keys")
    wrapping_folder: Optional[str] = Field(None, description="Name of the single top-level folder, if any")
    entries: List[ReconciliationEntry] = Field(default_factory=list)
    diagnostics: List[ManifestDiagnostic] = Field(default_factory=list)

    def by_outcome(self, outcome: Outcome) -> List[ReconciliationEntry]:
        """Return entries with the given outcome, in key order."""
        value = Outcome(outcome).value
        return [entry for entry in self.entries if entry.outcome == value]

    def counts(self) -> Dict[str, int]:
        """Count entries per outcome (every outcome present, zero if unused)."""
        counts = {outcome.value: 0 for outcome in Outcome}
        for entry in self.entries:
            counts[entry.outcome] += 1
        return counts

    @computed_field
    @property
    def is_certified(self) -> bool:
        """True when every key matched and the manifest had no diagnostics."""
        return (
            len(self.entries) > 0 and
            all(entry.outcome == Outcome.MATCHED.value for entry in self.entries) and
            len(self.diagnostics) == 0
        )

    model_config = {
        "frozen": True
    }
