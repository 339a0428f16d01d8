"""Conflict report formatting functions.

Provides human-readable and machine-readable output for reconciliation:

- ``format_conflicts_for_display`` -- numbered conflict list for review.
- ``format_conflict_diff`` -- unified diff of one text conflict.
- ``conflicts_to_json`` -- structured list for API output.
- ``export_conflict_history`` -- JSON audit record for the caller to store.
"""

from __future__ import annotations

import difflib
import json
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ConflictRecord

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _display_value(record: ConflictRecord, side: str) -> str:
    dumped = record.model_dump(mode="json")
    return json.dumps(dumped[f"{side}_value"])


def format_conflicts_for_display(conflicts: Sequence[ConflictRecord]) -> str:
    """Format conflicts as a numbered, human-readable list.

    Args:
        conflicts: Records from ``detect_conflicts()``.

    Returns:
        Multi-line string, or ``"No conflicts detected."``.
    """
    if not conflicts:
        return "No conflicts detected."

    lines = [f"{len(conflicts)} conflict(s) detected:", ""]
    for index, record in enumerate(conflicts, start=1):
        lines.append(
            f"{index}. {record.field_name} "
            f"({record.severity.value.upper()}, {record.conflict_type.value})"
        )
        lines.append(f"   Client: {_display_value(record, 'client')}")
        lines.append(f"   Server: {_display_value(record, 'server')}")
        lines.append(f"   {record.suggestion}")
        lines.append("")

    return "\n".join(lines).rstrip()


def format_conflict_diff(record: ConflictRecord) -> str:
    """Show a text conflict as a unified diff (client -> server).

    Non-text values are rendered as JSON first, so step and tag
    conflicts diff one element per line.

    Returns:
        The diff, or an empty string if both renderings are identical.
    """

    def render(value: Any) -> str:
        if isinstance(value, str):
            return value if value.endswith("\n") else value + "\n"
        return json.dumps(value, indent=2) + "\n"

    dumped = record.model_dump(mode="json")
    return "".join(
        difflib.unified_diff(
            render(dumped["client_value"]).splitlines(True),
            render(dumped["server_value"]).splitlines(True),
            fromfile=f"client/{record.field_name}",
            tofile=f"server/{record.field_name}",
        )
    )


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def conflicts_to_json(conflicts: Sequence[ConflictRecord]) -> list[dict]:
    """Convert conflicts to JSON-serialisable dicts."""
    return [
        {
            "field": dumped["field_name"],
            "type": dumped["conflict_type"],
            "severity": dumped["severity"],
            "baseValue": dumped["base_value"],
            "clientValue": dumped["client_value"],
            "serverValue": dumped["server_value"],
            "suggestion": dumped["suggestion"],
        }
        for dumped in (c.model_dump(mode="json") for c in conflicts)
    ]


def export_conflict_history(
    test_case_id: int | str,
    conflicts: Sequence[ConflictRecord],
    timestamp: datetime | None = None,
) -> str:
    """Build a JSON audit record of one reconciliation.

    Args:
        test_case_id: Tracker work item id.
        conflicts: Records from ``detect_conflicts()``.
        timestamp: Record time (defaults to now, UTC).

    Returns:
        Pretty-printed JSON string.
    """
    stamp = timestamp or datetime.now(timezone.utc)
    report = {
        "timestamp": stamp.isoformat(),
        "testCaseId": test_case_id,
        "totalConflicts": len(conflicts),
        "conflicts": conflicts_to_json(conflicts),
    }
    return json.dumps(report, indent=2)
