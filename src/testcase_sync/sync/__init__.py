"""Three-way reconciliation of test-case documents.

Given a common ancestor (base), a locally edited copy (client) and a
freshly fetched copy (server), detect per-field divergence and produce a
merged document under a selectable strategy.

Modules:

- ``models``    -- ``ConflictRecord``, ``ConflictType``, ``Severity``,
  ``ReconcileResult``: core data contracts.
- ``detector``  -- ``detect_conflicts``: per-field three-way comparison.
- ``resolver``  -- Merge strategies (server-wins, client-wins, manual,
  merge) and the ``reconcile`` entry point.
- ``reporter``  -- Human-readable and JSON conflict reports.

The reconciler performs no I/O.  Callers must hand it a consistent
base/client/server snapshot.

Usage example
-------------
::

    from testcase_sync.sync import reconcile, format_conflicts_for_display

    result = reconcile(base, client, server, strategy="merge")
    print(format_conflicts_for_display(result.conflicts))
    merged = result.merged
"""

from .detector import TRACKED_FIELDS, detect_conflicts
from .models import ConflictRecord, ConflictType, ReconcileResult, Severity
from .reporter import (
    conflicts_to_json,
    export_conflict_history,
    format_conflict_diff,
    format_conflicts_for_display,
)
from .resolver import (
    AutomaticMergeStrategy,
    ClientWinsStrategy,
    ManualStrategy,
    MergeStrategy,
    ServerWinsStrategy,
    create_strategy,
    merge_documents,
    reconcile,
)

__all__ = [
    "AutomaticMergeStrategy",
    "ClientWinsStrategy",
    "ConflictRecord",
    "ConflictType",
    "ManualStrategy",
    "MergeStrategy",
    "ReconcileResult",
    "ServerWinsStrategy",
    "Severity",
    "TRACKED_FIELDS",
    "conflicts_to_json",
    "create_strategy",
    "detect_conflicts",
    "export_conflict_history",
    "format_conflict_diff",
    "format_conflicts_for_display",
    "merge_documents",
    "reconcile",
]
