"""
HashCertify Reconciliation Engine

Joins the expected digests of a manifest with the actual digests of the
files in an extracted archive and classifies every key exactly once:

- matched:        in both, digests equal (case-insensitive)
- mismatched:     in both, digests differ
- manifest_only:  listed in the manifest, absent from the archive
- archive_only:   present in the archive, not listed in the manifest
- unreadable:     present in the archive, digest could not be computed

Example usage:
    from core.reconcile import reconcile
    from core.manifest import load_manifest

    result = reconcile(load_manifest("hashes.txt"), extracted_dir)
    print(result.counts())
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from core.archive import detect_archive_root, list_archived_files
from core.config import ReconcileConfig
from core.digest import compute_file_digest, digests_equal
from core.errors import DuplicateManifestKeyError, FileUnreadableError, PathNotUnderBaseDirectoryError
from core.logging import get_logger
from core.models import (
    ArchivedFile,
    DiagnosticReason,
    DuplicatePolicy,
    ManifestDiagnostic,
    ManifestEntry,
    Outcome,
    ParsedManifest,
    ReconciliationEntry,
    ReconciliationResult,
)
from core.paths import normalize_key, resolve_base_directory

logger = get_logger(__name__)

DigestFunction = Callable[[Union[str, Path]], str]


def build_expected_map(
    entries: Iterable[ManifestEntry],
    base_directory: str,
    duplicate_policy: Union[DuplicatePolicy, str] = DuplicatePolicy.ERROR
) -> Tuple[Dict[str, str], List[ManifestDiagnostic]]:
    """
    Build the RelativeKey -> digest map from manifest entries.

    Entries outside the base directory are excluded and reported. Entries
    repeating a key with the same digest collapse into one.

    Args:
        entries: Parsed manifest entries
        base_directory: Resolved base directory
        duplicate_policy: "error" raises on conflicting duplicates,
            "last_wins" keeps the later entry and reports the conflict

    Returns:
        Tuple of (expected_map, diagnostics)

    Raises:
        DuplicateManifestKeyError: On conflicting duplicates under "error"
    """
    policy = DuplicatePolicy(duplicate_policy)
    expected: Dict[str, str] = {}
    diagnostics: List[ManifestDiagnostic] = []

    for entry in entries:
        try:
            key = normalize_key(entry.absolute_path, base_directory)
        except PathNotUnderBaseDirectoryError as e:
            # detail is only set when the path is the base directory itself
            diagnostics.append(ManifestDiagnostic(
                line_number=entry.line_number,
                line=entry.absolute_path,
                reason=DiagnosticReason.EMPTY_KEY if e.detail else DiagnosticReason.PATH_NOT_UNDER_BASE,
                message=str(e)
            ))
            continue

        previous = expected.get(key)
        if previous is not None and not digests_equal(previous, entry.digest):
            if policy == DuplicatePolicy.ERROR:
                raise DuplicateManifestKeyError(key, previous, entry.digest, entry.line_number)
            diagnostics.append(ManifestDiagnostic(
                line_number=entry.line_number,
                line=entry.absolute_path,
                reason=DiagnosticReason.DUPLICATE_KEY,
                message=f"Key {key!r} listed again with a different digest; later entry kept"
            ))
        elif previous is not None:
            logger.debug(f"Duplicate manifest entry for {key} with identical digest")

        expected[key] = entry.digest

    if diagnostics:
        logger.warning(f"{len(diagnostics)} manifest entries excluded from the expected map")

    return expected, diagnostics


def _digest_one(archived: ArchivedFile, digest_fn: DigestFunction) -> Tuple[str, Optional[str], Optional[str]]:
    try:
        return archived.relative_key, digest_fn(archived.path), None
    except FileUnreadableError as e:
        return archived.relative_key, None, str(e)


def compute_actual_digests(
    files: Sequence[ArchivedFile],
    digest_fn: DigestFunction = compute_file_digest,
    max_workers: int = 1
) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Digest every archived file.

    Files are independent, so with ``max_workers > 1`` they are digested in
    a bounded thread pool. Results are only written by the calling thread.

    Args:
        files: Archived files from list_archived_files
        digest_fn: Digest collaborator, called once per file
        max_workers: Thread count; 1 runs sequentially

    Returns:
        Tuple of (key -> digest, key -> error message for unreadable files)
    """
    digests: Dict[str, str] = {}
    errors: Dict[str, str] = {}

    def record(key: str, digest: Optional[str], error: Optional[str]) -> None:
        if key in digests or key in errors:
            logger.warning(f"Duplicate archive key {key}; keeping the later file")
            digests.pop(key, None)
            errors.pop(key, None)
        if error is not None:
            logger.warning(f"Could not digest {key}: {error}")
            errors[key] = error
        else:
            logger.debug(f"Digest for {key}: {digest[:16]}...")
            digests[key] = digest

    if max_workers <= 1 or len(files) <= 1:
        for archived in files:
            record(*_digest_one(archived, digest_fn))
    else:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="digest") as pool:
            futures = [pool.submit(_digest_one, archived, digest_fn) for archived in files]
            for future in as_completed(futures):
                record(*future.result())

    return digests, errors


def classify_keys(
    expected: Dict[str, str],
    actual: Dict[str, str],
    unreadable: Optional[Dict[str, str]] = None
) -> List[ReconciliationEntry]:
    """
    Classify every key of the expected and actual maps exactly once.

    Args:
        expected: RelativeKey -> digest from the manifest
        actual: RelativeKey -> digest computed from the archive
        unreadable: RelativeKey -> error for archived files that could not
            be digested

    Returns:
        ReconciliationEntry list sorted by key
    """
    unreadable = unreadable or {}
    entries: List[ReconciliationEntry] = []

    for key, actual_digest in actual.items():
        expected_digest = expected.get(key)
        if expected_digest is None:
            outcome = Outcome.ARCHIVE_ONLY
        elif digests_equal(expected_digest, actual_digest):
            outcome = Outcome.MATCHED
        else:
            outcome = Outcome.MISMATCHED
        entries.append(ReconciliationEntry(
            key=key,
            outcome=outcome,
            expected_digest=expected_digest,
            actual_digest=actual_digest.upper()
        ))

    for key, error in unreadable.items():
        if key in actual:
            continue
        entries.append(ReconciliationEntry(
            key=key,
            outcome=Outcome.UNREADABLE,
            expected_digest=expected.get(key),
            error=error
        ))

    seen = set(actual) | set(unreadable)
    for key, expected_digest in expected.items():
        if key not in seen:
            entries.append(ReconciliationEntry(
                key=key,
                outcome=Outcome.MANIFEST_ONLY,
                expected_digest=expected_digest
            ))

    entries.sort(key=lambda entry: entry.key)
    return entries


def reconcile(
    manifest: ParsedManifest,
    extracted_root: Union[str, Path],
    config: Optional[ReconcileConfig] = None,
    digest_fn: DigestFunction = compute_file_digest
) -> ReconciliationResult:
    """
    Reconcile a parsed manifest against an extracted archive.

    Args:
        manifest: Output of the manifest parser
        extracted_root: Directory the archive was extracted into
        config: Run options (base directory, workers, duplicate policy)
        digest_fn: Digest collaborator

    Returns:
        Frozen ReconciliationResult

    Raises:
        BaseDirectoryRequiredError: If no base directory is configured and
            the manifest has fewer than two entries
        DuplicateManifestKeyError: On conflicting duplicates under the
            "error" policy
    """
    config = config or ReconcileConfig()

    base_directory, inferred = resolve_base_directory(manifest.paths, config.base_directory)
    logger.info(
        f"Using base directory {base_directory!r} ({'inferred' if inferred else 'explicit'})"
    )

    expected, diagnostics = build_expected_map(
        manifest.entries, base_directory, config.duplicate_policy
    )

    archive_root, wrapping_folder = detect_archive_root(extracted_root)
    files = list_archived_files(archive_root)
    logger.info(f"Digesting {len(files)} archived files with {config.max_workers} worker(s)")

    actual, unreadable = compute_actual_digests(files, digest_fn, config.max_workers)
    entries = classify_keys(expected, actual, unreadable)

    result = ReconciliationResult(
        base_directory=base_directory,
        base_directory_inferred=inferred,
        archive_root=str(archive_root),
        wrapping_folder=wrapping_folder,
        entries=entries,
        diagnostics=list(manifest.diagnostics) + diagnostics
    )
    logger.info(f"Reconciliation finished: {result.counts()}")
    return result
