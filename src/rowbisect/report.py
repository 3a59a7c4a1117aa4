"""
Run summary generation and export.

Builds a summary of a completed bisection run and renders it as JSON or
for the console. The summary is informational only: a run that finds
broken rows still exits successfully.
"""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .progress import ProgressSnapshot
from .ranges import RowRange


def generate_report(
    table: str,
    initial_range: RowRange,
    snapshot: ProgressSnapshot,
    broken_row_ids: list[int],
    concurrency: int,
    duration_seconds: float,
    rowid_column: str = "_tidb_rowid",
) -> dict[str, Any]:
    """
    Build the summary of a finished run.

    Args:
        table: Scanned table
        initial_range: Range the run started from
        snapshot: Final counters
        broken_row_ids: Identifiers of every confirmed broken row
        concurrency: Worker count used
        duration_seconds: Wall-clock run time
        rowid_column: Row identifier column

    Returns:
        Report dictionary, JSON-serializable
    """
    return {
        "table": table,
        "rowid_column": rowid_column,
        "status": "BROKEN_ROWS_FOUND" if broken_row_ids else "CLEAN",
        "initial_range": {
            "min_row_id": initial_range.min_row_id,
            "max_row_id": initial_range.max_row_id,
            "width": initial_range.width,
        },
        "concurrency": concurrency,
        "finished_tasks": snapshot.finished,
        "pending_tasks": snapshot.pending,
        "broken_rows": snapshot.broken,
        "broken_row_ids": sorted(broken_row_ids),
        "duration_seconds": round(duration_seconds, 3),
        "timestamp": datetime.now(UTC).isoformat(),
    }


def export_report_json(report: dict[str, Any], output_path: str) -> None:
    """Write the report to a JSON file, creating parent directories."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(report, f, indent=2)


def format_report_console(report: dict[str, Any]) -> str:
    """Render the report for terminal output."""
    initial = report["initial_range"]
    lines = [
        "=" * 80,
        "ROW BISECTION REPORT",
        "=" * 80,
        f"Table: {report['table']} ({report['rowid_column']})",
        f"Status: {report['status']}",
        f"Timestamp: {report['timestamp']}",
        f"Scanned Range: [{initial['min_row_id']}, {initial['max_row_id']}) "
        f"({initial['width']:,} row ids)",
        f"Concurrency: {report['concurrency']}",
        f"Finished Tasks: {report['finished_tasks']:,}",
        f"Broken Rows: {report['broken_rows']:,}",
        f"Duration: {report['duration_seconds']:.3f}s",
        "",
    ]

    if report["broken_row_ids"]:
        lines.append("BROKEN ROW IDS")
        lines.append("-" * 80)
        lines.extend(str(row_id) for row_id in report["broken_row_ids"])
        lines.append("")

    lines.append("=" * 80)
    return "\n".join(lines)
