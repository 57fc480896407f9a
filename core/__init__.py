"""
HashCertify Core Module

This module contains the core logic for HashCertify including:
- Manifest parsing with diagnostics for malformed lines
- Base directory inference and relative key normalization
- Archive extraction and wrapping-folder detection
- Reconciliation of expected against actual digests
- Reporting of reconciliation results

The core module is framework-agnostic and can be used independently of the
web interface or CLI.

Example usage:
    from core.verify import verify_archive
    from core.report import format_report

    result = verify_archive("hashes.txt", "evidence.zip")
    print(format_report(result))
"""

__version__ = "0.1.0"
__all__ = [
    "__version__",
]
