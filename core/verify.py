"""
HashCertify Archive Verification

Certifies that the files inside an archive are byte-identical to what an
earlier hashing run recorded in a manifest. Reads and parses the manifest,
resolves the base directory, extracts the archive into a scoped workspace,
detects a wrapping folder and reconciles.

Example usage:
    from core.verify import verify_archive
    from core.report import generate_summary

    result = verify_archive("hashes.txt", "evidence.zip")
    print(generate_summary(result))

    if not result.is_certified:
        for entry in result.entries:
            print(entry.key, entry.outcome)
"""

from pathlib import Path
from typing import Optional, Union

from core.archive import extract_archive
from core.config import ReconcileConfig
from core.digest import compute_file_digest
from core.logging import get_logger, log_with_context, new_run_id
from core.manifest import load_manifest
from core.models import ReconciliationResult
from core.paths import resolve_base_directory
from core.reconcile import DigestFunction, reconcile
from core.workspace import ExtractionWorkspace

logger = get_logger(__name__)


def verify_archive(
    manifest_path: Union[str, Path],
    archive_path: Union[str, Path],
    config: Optional[ReconcileConfig] = None,
    workspace: Optional[ExtractionWorkspace] = None,
    digest_fn: DigestFunction = compute_file_digest,
    manifest_encoding: Optional[str] = None
) -> ReconciliationResult:
    """
    Verify an archive against a manifest of expected digests.

    Args:
        manifest_path: Path to the manifest text file
        archive_path: Path to the ZIP or TAR archive
        config: Run options; defaults to ReconcileConfig()
        workspace: Open workspace owned by the caller. When omitted a
            private workspace is created and removed before returning.
        digest_fn: Digest collaborator
        manifest_encoding: Explicit manifest codec, bypassing detection

    Returns:
        ReconciliationResult

    Raises:
        ManifestUnreadableError: If the manifest cannot be read
        BaseDirectoryRequiredError: If the base directory cannot be inferred
        ArchiveUnreadableError: If the archive cannot be opened
        ArchiveCorruptError: If the archive fails integrity or safety checks
        DuplicateManifestKeyError: On conflicting duplicate manifest entries
    """
    config = config or ReconcileConfig()
    run_id = new_run_id()

    log_with_context(
        logger, "info", f"Starting verification of {archive_path} against {manifest_path}",
        run_id=run_id
    )

    manifest = load_manifest(manifest_path, encoding=manifest_encoding)

    # Fail before extraction when the base directory cannot be resolved
    resolve_base_directory(manifest.paths, config.base_directory)

    if workspace is not None:
        result = _extract_and_reconcile(manifest, archive_path, config, workspace, digest_fn)
    else:
        with ExtractionWorkspace(parent_dir=config.workspace_dir) as own_workspace:
            result = _extract_and_reconcile(manifest, archive_path, config, own_workspace, digest_fn)

    log_with_context(
        logger, "info",
        f"Verification completed - Status: {'CERTIFIED' if result.is_certified else 'NOT CERTIFIED'}",
        run_id=run_id,
        counts=result.counts(),
        diagnostics=len(result.diagnostics)
    )
    return result


def _extract_and_reconcile(manifest, archive_path, config, workspace, digest_fn) -> ReconciliationResult:
    destination = workspace.new_directory("archive")
    extract_archive(archive_path, destination)
    return reconcile(manifest, destination, config, digest_fn=digest_fn)
