"""
HashCertify Test Configuration and Shared Fixtures

Provides pytest fixtures for temporary directories, digest constants and
ready-made manifest/archive pairs used across the HashCertify test suite.

Example usage:
    def test_reconcile_example(evidence_zip, evidence_manifest, temp_dir):
        # Use the example archive and manifest
        pass
"""

import logging
import shutil
import tempfile
from pathlib import Path

import pytest

from tests.helpers import make_zip, manifest_line, write_manifest

# Placeholder digests; only equality matters
DIGEST_A = "A" * 64
DIGEST_B = "B" * 64
DIGEST_C = "C" * 64
DIGEST_D = "D" * 64

BASE_DIRECTORY = r"C:\Evidence\Case42"

EVIDENCE_FILES = {
    "photo.jpg": b"jpeg bytes",
    "notes/interview.txt": b"interview notes\n",
    "notes/summary.txt": b"summary\n",
}


@pytest.fixture
def temp_dir():
    """
    Provide a temporary directory that is cleaned up after test.

    Returns:
        Path: Temporary directory path
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture(autouse=True)
def reset_core_logger():
    """Undo handlers installed by setup_logging(logger_name="core") in CLI tests."""
    yield
    core_logger = logging.getLogger("core")
    core_logger.handlers.clear()
    core_logger.propagate = True
    core_logger.setLevel(logging.NOTSET)


@pytest.fixture
def evidence_files():
    """Relative name -> content of the example evidence set."""
    return dict(EVIDENCE_FILES)


@pytest.fixture
def evidence_manifest(temp_dir, evidence_files):
    """
    Manifest for the example evidence set, in Get-FileHash table form.

    Returns:
        Path: Path to the manifest file
    """
    lines = [
        manifest_line(content, BASE_DIRECTORY + "\\" + name.replace("/", "\\"))
        for name, content in evidence_files.items()
    ]
    return write_manifest(temp_dir / "hashes.txt", lines)


@pytest.fixture
def evidence_zip(temp_dir, evidence_files):
    """
    ZIP of the example evidence set wrapped in a Case42/ folder.

    Returns:
        Path: Path to the archive
    """
    return make_zip(temp_dir / "evidence.zip", evidence_files, prefix="Case42/")
