"""Change report formatting functions.

Provides human-readable and machine-readable output for a revision scan:

- ``format_change_records`` -- reports grouped by file, rendered by the
  handler that owns each file.
- ``format_conflicts`` -- conflicts recorded by one merge.
- ``reports_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .merge.models import ChangeReport, Conflict
    from .merge.registry import HandlerRegistry

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_change_records(
    reports: list[ChangeReport],
    registry: HandlerRegistry,
    title: str | None = None,
) -> str:
    """Format a revision's change reports as human-readable text.

    Reports are grouped by file in first-seen order. Each report is
    rendered by the handler that owns its file.

    Args:
        reports: Reports returned by the inspector.
        registry: Registry used to find each report's presenter.
        title: Optional header line (e.g. the revision description).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    if title:
        lines.append(title)
        lines.append("")

    if not reports:
        lines.append("No changes.")
        return "\n".join(lines)

    counts = Counter(r.kind.value for r in reports)
    lines.append(
        f"{len(reports)} change(s): "
        + ", ".join(f"{n} {kind}" for kind, n in sorted(counts.items()))
    )
    lines.append("")

    by_file: dict[str, list[ChangeReport]] = defaultdict(list)
    for report in reports:
        by_file[report.path_to_file].append(report)

    for path, file_reports in by_file.items():
        handler = registry.resolve(path)
        lines.append(f"{path}:")
        for report in file_reports:
            text = handler.present(report).as_text()
            first, *rest = text.splitlines() or [""]
            lines.append(f"  {first}")
            lines.extend(f"    {line}" for line in rest)
        lines.append("")

    return "\n".join(lines).rstrip()


def format_conflicts(conflicts: list[Conflict]) -> str:
    """Format the conflicts recorded by one merge.

    Args:
        conflicts: Conflicts collected by a merge order's listener.

    Returns:
        Multi-line formatted string, or ``"No conflicts."``.
    """
    if not conflicts:
        return "No conflicts."
    lines = [f"{len(conflicts)} conflict(s):"]
    for conflict in conflicts:
        lines.append(f"  {conflict.data_label}: {conflict.description}")
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def reports_to_json(reports: list[ChangeReport]) -> dict:
    """Convert change reports to a structured dict for JSON serialisation.

    Args:
        reports: Reports returned by the inspector.

    Returns:
        Dict with counts by kind and per-report details.
    """
    results = []
    for r in reports:
        entry: dict = {
            "path": r.path_to_file,
            "kind": r.kind.value,
            "action": r.action_label,
            "revision": r.child.revision_number,
        }
        if r.parent is not None:
            entry["parent_revision"] = r.parent.revision_number
        if r.data_label:
            entry["data_label"] = r.data_label
        if r.details:
            entry["details"] = r.details
        results.append(entry)

    return {
        "counts": {
            "total": len(reports),
            **Counter(r.kind.value for r in reports),
        },
        "reports": results,
    }
