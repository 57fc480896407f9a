"""Centralized error taxonomy and response helpers."""

from typing import List, Optional, Dict, Any
from fastapi.responses import JSONResponse


class HashCertifyError(Exception):
    """Base class for every error raised by the reconciliation pipeline."""

    code = "hashcertify_error"
    status_code = 400

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error_type': type(self).__name__,
            'code': self.code,
            'message': str(self)
        }


class ManifestUnreadableError(HashCertifyError):
    """Raised when the manifest file cannot be opened, read or decoded."""
    code = "manifest_unreadable"


class ArchiveUnreadableError(HashCertifyError):
    """Raised when the archive is missing, unreadable or of an unknown format."""
    code = "archive_unreadable"


class ArchiveCorruptError(HashCertifyError):
    """Raised when the archive opens but its members fail integrity or safety checks."""
    code = "archive_corrupt"
    status_code = 422


class FileUnreadableError(HashCertifyError):
    """
    Raised when a single archived file cannot be digested.

    The reconciliation engine records this per file as an ``unreadable``
    outcome instead of aborting the run.
    """
    code = "file_unreadable"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class PathNotUnderBaseDirectoryError(HashCertifyError):
    """Raised when a path does not start with the base directory segment by segment."""
    code = "path_not_under_base_directory"
    status_code = 422

    def __init__(self, path: str, base_directory: str, detail: Optional[str] = None):
        self.path = path
        self.base_directory = base_directory
        self.detail = detail
        msg = f"Path {path!r} is not under base directory {base_directory!r}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['path'] = self.path
        data['base_directory'] = self.base_directory
        return data


class ConfigurationError(HashCertifyError):
    """General configuration error for invalid options or environment values."""
    code = "configuration_error"


class BaseDirectoryRequiredError(ConfigurationError):
    """
    Raised when the base directory would have to be inferred from fewer than
    two distinct manifest paths.

    With a single path there is no way to tell directory segments from the
    filename, so an explicit base directory is required instead of a guess.
    """
    code = "base_directory_required"

    def __init__(self, entry_count: int):
        self.entry_count = entry_count
        super().__init__(
            f"Cannot infer a base directory from {entry_count} manifest "
            f"entr{'y' if entry_count == 1 else 'ies'}; supply it explicitly"
        )


class DuplicateManifestKeyError(HashCertifyError):
    """Raised when two manifest entries map to one key with different digests."""
    code = "duplicate_manifest_key"
    status_code = 422

    def __init__(self, key: str, first_digest: str, second_digest: str, line_number: Optional[int] = None):
        self.key = key
        self.first_digest = first_digest
        self.second_digest = second_digest
        self.line_number = line_number

        msg = f"Manifest lists {key!r} twice with different digests"
        if line_number is not None:
            msg += f" (second occurrence on line {line_number})"
        super().__init__(msg)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'key': self.key,
            'first_digest': self.first_digest,
            'second_digest': self.second_digest,
            'line_number': self.line_number
        })
        return data


def _hints_for(error_text: str) -> List[str]:
    """Build actionable hints from the lowercase text of one or more errors."""
    hints = []

    if "base directory" in error_text:
        hints.append("Pass base_directory explicitly, e.g. C:\\Evidence\\Case42")
        hints.append("The base directory must be a whole-segment prefix of every manifest path")

    if "manifest" in error_text:
        hints.append("Manifest lines must look like: SHA256  <64 hex digits>  <absolute path>")
        hints.append("Export with: Get-FileHash -Algorithm SHA256 | Format-Table -AutoSize")

    if "archive" in error_text or "zip" in error_text:
        hints.append("Supported archives: .zip, .tar, .tar.gz, .tgz, .tar.bz2, .tar.xz")
        hints.append("Re-create the archive if it fails integrity checks")

    if "size" in error_text and "limit" in error_text:
        hints.append("Raise MAX_UPLOAD_SIZE_MB or verify large archives with the hashcertify CLI")

    return hints


def validation_error_response(
    errors: List[str],
    code: int = 400,
    hints: Optional[List[str]] = None
) -> JSONResponse:
    """Create standardized validation error response."""

    # Generate actionable hints if not provided
    if not hints:
        hints = _hints_for(" ".join(errors).lower())

    # Take top 3 most relevant hints
    hints = hints[:3]

    response_body = {
        "error": "Validation Error",
        "code": code,
        "messages": errors,
        "hints": hints
    }

    return JSONResponse(status_code=code, content=response_body)


def error_response(exc: HashCertifyError) -> JSONResponse:
    """Create response for a domain error raised by the pipeline."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "code": exc.status_code,
            "messages": [str(exc)],
            "details": exc.to_dict(),
            "hints": _hints_for(str(exc).lower())[:3]
        }
    )
