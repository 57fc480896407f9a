"""
Reconcile API route - certifies an uploaded archive against an uploaded manifest

Uploads are written into a request-scoped ExtractionWorkspace which is
removed when the request finishes, whatever the outcome.
"""

import os
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from core.config import ReconcileConfig
from core.errors import HashCertifyError, error_response, validation_error_response
from core.logging import get_logger, log_with_context
from core.report import result_to_dict
from core.verify import verify_archive
from core.workspace import ExtractionWorkspace

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["reconcile"])

_max_mb_env = os.environ.get("MAX_UPLOAD_SIZE_MB") or "10"
MAX_UPLOAD_SIZE = int(_max_mb_env) * 1024 * 1024


def read_upload(file: UploadFile) -> bytes:
    """
    Read an uploaded file, enforcing the upload size limit.

    Args:
        file: The uploaded file

    Returns:
        File content as bytes

    Raises:
        HTTPException: 413 when over the limit, 400 without a usable filename
    """
    content = file.file.read()
    if len(content) > MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=413,
            detail=f"File size ({len(content) / 1024 / 1024:.1f}MB) exceeds {MAX_UPLOAD_SIZE / 1024 / 1024}MB limit"
        )

    if not file.filename or not os.path.basename(file.filename.replace("\\", "/")):
        raise HTTPException(status_code=400, detail="No filename provided")

    return content


def _save_upload(workspace: ExtractionWorkspace, name: str, content: bytes) -> Path:
    target = workspace.new_directory("upload") / name
    target.write_bytes(content)
    return target


@router.post("/reconcile")
def reconcile_upload(
    request: Request,
    manifest: UploadFile = File(..., description="Manifest text file"),
    archive: UploadFile = File(..., description="ZIP or TAR archive to certify"),
    base_directory: Optional[str] = Form(None),
    workers: Optional[int] = Form(None),
    duplicates: Optional[str] = Form(None)
):
    """
    Reconcile an uploaded archive against an uploaded manifest.

    Returns the reconciliation result dictionary. Fatal domain errors are
    returned as JSON error bodies with hints, as are rejected uploads.
    """
    try:
        manifest_content = read_upload(manifest)
        archive_content = read_upload(archive)
    except HTTPException as e:
        log_with_context(logger, "warning", f"Upload rejected: {e.detail}", request=request, status=e.status_code)
        return validation_error_response([e.detail], code=e.status_code)

    try:
        config = ReconcileConfig.from_env().with_overrides(
            base_directory=base_directory,
            max_workers=workers,
            duplicate_policy=duplicates
        )
        with ExtractionWorkspace(parent_dir=config.workspace_dir) as workspace:
            manifest_path = _save_upload(workspace, "manifest.txt", manifest_content)
            archive_path = _save_upload(workspace, "archive.bin", archive_content)
            result = verify_archive(manifest_path, archive_path, config=config, workspace=workspace)
    except HashCertifyError as e:
        log_with_context(logger, "warning", f"Reconciliation rejected: {e}", request=request, code=e.code)
        return error_response(e)

    log_with_context(
        logger, "info", f"Reconciled {archive.filename} against {manifest.filename}",
        request=request,
        certified=result.is_certified
    )
    return JSONResponse(
        content=result_to_dict(result, manifest_path=manifest.filename, archive_path=archive.filename),
        status_code=200
    )
