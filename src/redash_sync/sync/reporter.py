"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync runs:

- ``format_sync_report`` -- full post-sync summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by classification.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncReport, SyncResult

from .models import Classification, RunStatus

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _line(r: SyncResult) -> str:
    return f"  Query {r.query_id}: {r.name}"


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Unchanged queries are summarised by count only.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    if report.status == RunStatus.COMPLETED:
        header = "Sync complete"
    elif report.status == RunStatus.INTERRUPTED:
        header = "Sync interrupted"
    else:
        header = "Sync failed"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header + ":")
    lines.append(f"  New:                 {len(report.created)}")
    lines.append(f"  Updated:             {len(report.pulled)}")
    lines.append(f"  Pushed:              {len(report.pushed)}")
    lines.append(f"  Skipped (unchanged): {len(report.unchanged)}")
    lines.append(f"  Skipped (declined):  {len(report.declined)}")
    lines.append(f"  Conflicts:           {len(report.conflicts)}")
    if report.errors:
        lines.append(f"  Errors:              {len(report.errors)}")
    lines.append(f"  Total:               {report.total_seen}")
    lines.append("")

    if report.conflicts:
        lines.append("Unresolved conflicts:")
        for r in report.conflicts:
            lines.append(f"{_line(r)} ({r.error or 'both sides changed'})")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"{_line(r)}: {r.error}")
        lines.append("")

    if report.error:
        lines.append(f"Fatal error: {report.error}")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------

_PREVIEW_ORDER = [
    (Classification.NEW, "NEW"),
    (Classification.REMOTE_UPDATED, "UPDATE"),
    (Classification.CONVERGED, "REFRESH"),
    (Classification.LOCAL_MODIFIED, "LOCAL CHANGE"),
    (Classification.CONFLICT, "CONFLICT"),
]


def format_dry_run_preview(report: SyncReport) -> str:
    """Format a dry-run preview grouped by classification.

    Args:
        report: A dry-run sync report (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = ["DRY RUN -- No changes will be made", ""]

    groups: dict[Classification, list[SyncResult]] = defaultdict(list)
    for r in report.results:
        groups[r.classification].append(r)

    for classification, label in _PREVIEW_ORDER:
        if classification not in groups:
            continue
        lines.append(f"[{label}]")
        for r in groups[classification]:
            lines.append(_line(r))
        lines.append("")

    unchanged = len(groups.get(Classification.UNCHANGED, []))
    if unchanged:
        lines.append(f"Unchanged: {unchanged} queries")
        lines.append("")

    if not any(c != Classification.UNCHANGED for c in groups):
        lines.append("No changes needed.")
        lines.append("")

    if report.error:
        lines.append(f"Fatal error: {report.error}")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with run status, counts, and per-query details.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "query_id": r.query_id,
            "name": r.name,
            "classification": r.classification.value,
            "action": r.action.value,
            "success": r.success,
        }
        if r.error:
            entry["error"] = r.error
        results_list.append(entry)

    return {
        "status": report.status.value,
        "dry_run": report.dry_run,
        "error": report.error,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": report.total_seen,
            "new": len(report.created),
            "updated": len(report.pulled),
            "pushed": len(report.pushed),
            "unchanged": len(report.unchanged),
            "declined": len(report.declined),
            "conflicts": len(report.conflicts),
            "errors": len(report.errors),
        },
        "results": results_list,
    }
