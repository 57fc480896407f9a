"""
HashCertify CLI Main Module

Command-line interface for HashCertify using Typer.

Exit codes:
    0  archive certified (verify) / manifest clean (inspect)
    1  reconciliation found problems / manifest has diagnostics
    2  fatal error (unreadable manifest or archive, bad configuration)
"""

import typer
from pathlib import Path
from typing import Optional

from core.config import ReconcileConfig
from core.errors import HashCertifyError
from core.logging import get_logger, setup_logging
from core.manifest import load_manifest
from core.paths import resolve_base_directory
from core.reconcile import build_expected_map
from core.report import format_report, write_csv_report, write_json_report
from core.verify import verify_archive

logger = get_logger(__name__)

EXIT_FAILED = 1
EXIT_FATAL = 2

app = typer.Typer(
    name="hashcertify",
    help="HashCertify - certify that archived evidence files match a manifest of hashes",
    add_completion=False
)


def _load_config(**overrides) -> ReconcileConfig:
    config = ReconcileConfig.from_env().with_overrides(**overrides)
    setup_logging(level=config.log_level, format_type=config.log_format, logger_name="core")
    return config


@app.command()
def verify(
    manifest: Path = typer.Argument(..., help="Manifest text file (Get-FileHash table output)"),
    archive: Path = typer.Argument(..., help="Archive to certify (.zip or .tar[.gz|.bz2|.xz])"),
    base_dir: Optional[str] = typer.Option(None, "--base-dir", "-b", help="Base directory to strip from manifest paths (inferred if omitted)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Threads used to digest archived files"),
    duplicates: Optional[str] = typer.Option(None, "--duplicates", help="Conflicting duplicate entries: error or last-wins"),
    encoding: Optional[str] = typer.Option(None, "--encoding", help="Manifest encoding (detected from BOM if omitted)"),
    workspace_dir: Optional[Path] = typer.Option(None, "--workspace-dir", help="Parent directory for temporary extraction"),
    output_json: Optional[Path] = typer.Option(None, "--output-json", help="Save detailed report as JSON"),
    output_csv: Optional[Path] = typer.Option(None, "--output-csv", help="Save one row per file as CSV"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="List matched files too"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)"),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="Log format: json or text")
) -> None:
    """
    Reconcile an archive against a manifest of expected SHA-256 digests.

    Every file is reported as matched, mismatched, missing from the archive,
    not in the manifest, or unreadable.
    """
    try:
        config = _load_config(
            base_directory=base_dir,
            max_workers=workers,
            duplicate_policy=duplicates,
            workspace_dir=str(workspace_dir) if workspace_dir else None,
            log_level=log_level,
            log_format=log_format.lower() if log_format else None
        )

        typer.echo(f"Verifying archive: {archive}")
        typer.echo(f"Against manifest: {manifest}")

        result = verify_archive(manifest, archive, config=config, manifest_encoding=encoding)

        typer.echo("")
        typer.echo(format_report(result, verbose=verbose))

        if output_json:
            write_json_report(result, output_json, manifest_path=manifest, archive_path=archive)
            typer.echo(f"\nDetailed report saved to: {output_json}")
        if output_csv:
            write_csv_report(result, output_csv)
            typer.echo(f"File table saved to: {output_csv}")

    except HashCertifyError as e:
        typer.echo(f"Failed to verify archive: {e}", err=True)
        logger.error(f"Verification aborted: {e}")
        raise typer.Exit(EXIT_FATAL)

    if not result.is_certified:
        raise typer.Exit(EXIT_FAILED)


@app.command()
def inspect(
    manifest: Path = typer.Argument(..., help="Manifest text file (Get-FileHash table output)"),
    base_dir: Optional[str] = typer.Option(None, "--base-dir", "-b", help="Base directory to strip from manifest paths (inferred if omitted)"),
    encoding: Optional[str] = typer.Option(None, "--encoding", help="Manifest encoding (detected from BOM if omitted)"),
    sample: int = typer.Option(10, "--sample", "-n", help="Number of relative keys to show"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
) -> None:
    """
    Parse a manifest and show the base directory and keys a verification would use.
    """
    try:
        config = _load_config(base_directory=base_dir, log_level=log_level, log_format="text")

        parsed = load_manifest(manifest, encoding=encoding)
        base_directory, inferred = resolve_base_directory(parsed.paths, config.base_directory)
        expected, diagnostics = build_expected_map(
            parsed.entries, base_directory, config.duplicate_policy
        )
    except HashCertifyError as e:
        typer.echo(f"Failed to inspect manifest: {e}", err=True)
        raise typer.Exit(EXIT_FATAL)

    all_diagnostics = list(parsed.diagnostics) + diagnostics

    typer.echo(f"Manifest: {manifest}")
    typer.echo(f"Entries parsed: {len(parsed.entries)}")
    typer.echo(f"Distinct keys: {len(expected)}")
    typer.echo(f"Base directory: {base_directory or '(none)'}{' (inferred)' if inferred else ''}")

    if expected and sample > 0:
        typer.echo(f"\nSample keys:")
        for key in sorted(expected)[:sample]:
            typer.echo(f"  {key}")

    if all_diagnostics:
        typer.echo(f"\nDiagnostics ({len(all_diagnostics)}):")
        for diagnostic in all_diagnostics:
            where = f"line {diagnostic.line_number}" if diagnostic.line_number else "entry"
            typer.echo(f"  ✗ {where}: {diagnostic.reason}: {diagnostic.line}")
        raise typer.Exit(EXIT_FAILED)

    typer.echo("\n✓ Manifest parsed cleanly")


if __name__ == "__main__":
    app()
