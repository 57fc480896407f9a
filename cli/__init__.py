"""
HashCertify CLI Module

This module contains the command-line interface for HashCertify using Typer.

Available commands:
- verify: Reconcile an archive against a manifest of expected digests
- inspect: Parse a manifest and preview the keys a verification would use

Example usage:
    from cli.main import app as cli_app

    # Or use directly from command line:
    # hashcertify verify hashes.txt evidence.zip --output-json report.json
    # hashcertify inspect hashes.txt --base-dir "C:\\Evidence\\Case42"
"""

__version__ = "0.1.0"
__all__ = [
    "__version__",
]
