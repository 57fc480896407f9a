"""
Reporting for reconciliation results.

Turns a ReconciliationResult into a human-readable summary, a JSON-ready
dictionary or a tabular export. Nothing here changes the result.

Example usage:
    from core.report import format_report, write_csv_report

    print(format_report(result, verbose=True))
    write_csv_report(result, "reconciliation.csv")
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from core import __version__
from core.models import Outcome, ReconciliationResult

OUTCOME_LABELS = {
    Outcome.MATCHED.value: "Matched",
    Outcome.MISMATCHED.value: "Mismatched",
    Outcome.MANIFEST_ONLY.value: "Missing from archive",
    Outcome.ARCHIVE_ONLY.value: "Not in manifest",
    Outcome.UNREADABLE.value: "Unreadable",
}

CSV_COLUMNS = ["key", "outcome", "expected_digest", "actual_digest", "error"]


def generate_summary(result: ReconciliationResult) -> str:
    """One-line verdict for the result."""
    counts = result.counts()
    if result.is_certified:
        return f"Certification PASSED - {counts[Outcome.MATCHED.value]} files match the manifest"
    problems = len(result.entries) - counts[Outcome.MATCHED.value]
    return (
        f"Certification FAILED - {problems} files differ from the manifest "
        f"({len(result.diagnostics)} manifest diagnostics)"
    )


def result_to_dict(
    result: ReconciliationResult,
    manifest_path: Optional[Union[str, Path]] = None,
    archive_path: Optional[Union[str, Path]] = None
) -> Dict[str, Any]:
    """
    Convert a result into a JSON-serializable dictionary.

    Args:
        result: Reconciliation result
        manifest_path: Manifest location, recorded in the metadata
        archive_path: Archive location, recorded in the metadata

    Returns:
        Dictionary with metadata, counts, entries and diagnostics
    """
    data = result.model_dump(mode="json")
    return {
        "verification_metadata": {
            "hashcertify_version": __version__,
            "verification_timestamp": datetime.now(timezone.utc).isoformat(),
            "manifest_path": str(manifest_path) if manifest_path is not None else None,
            "archive_path": str(archive_path) if archive_path is not None else None,
        },
        "is_certified": result.is_certified,
        "summary": generate_summary(result),
        "algorithm": result.algorithm,
        "base_directory": result.base_directory,
        "base_directory_inferred": result.base_directory_inferred,
        "wrapping_folder": result.wrapping_folder,
        "counts": result.counts(),
        "entries": data["entries"],
        "diagnostics": data["diagnostics"],
    }


def format_report(result: ReconciliationResult, verbose: bool = False) -> str:
    """
    Human-readable report.

    Only problem entries are listed unless ``verbose`` is set.
    """
    status = "CERTIFIED" if result.is_certified else "NOT CERTIFIED"
    counts = result.counts()
    lines: List[str] = [
        "HashCertify Reconciliation Report",
        f"Status: {status}",
        f"Base directory: {result.base_directory or '(none)'}"
        + (" (inferred)" if result.base_directory_inferred else ""),
        f"Wrapping folder: {result.wrapping_folder or '(none)'}",
        "",
        "Outcomes:",
    ]
    for outcome, label in OUTCOME_LABELS.items():
        lines.append(f"  {label}: {counts[outcome]}")

    shown = result.entries if verbose else [
        entry for entry in result.entries if entry.outcome != Outcome.MATCHED.value
    ]
    if shown:
        lines.extend(["", "Files:"])
        for entry in shown:
            line = f"  [{OUTCOME_LABELS[entry.outcome]}] {entry.key}"
            if entry.outcome == Outcome.MISMATCHED.value:
                line += f" (expected {entry.expected_digest[:16]}... got {entry.actual_digest[:16]}...)"
            elif entry.error:
                line += f" ({entry.error})"
            lines.append(line)

    if result.diagnostics:
        lines.extend(["", "Manifest diagnostics:"])
        for diagnostic in result.diagnostics:
            where = f"line {diagnostic.line_number}" if diagnostic.line_number else "entry"
            lines.append(f"  - {where}: {diagnostic.reason}: {diagnostic.message or diagnostic.line}")

    lines.extend(["", generate_summary(result)])
    return "\n".join(lines)


def result_to_dataframe(result: ReconciliationResult) -> pd.DataFrame:
    """One row per key with its outcome and digests."""
    rows = [entry.model_dump(mode="json") for entry in result.entries]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def write_json_report(result: ReconciliationResult, output_path: Union[str, Path], **metadata) -> Path:
    """Write result_to_dict output as indented JSON."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(result_to_dict(result, **metadata), f, indent=2)
    return path


def write_csv_report(result: ReconciliationResult, output_path: Union[str, Path]) -> Path:
    """Write one CSV row per key."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    result_to_dataframe(result).to_csv(path, index=False)
    return path
