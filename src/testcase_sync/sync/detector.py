"""Per-field three-way conflict detection.

Each tracked field of the client and server copies is compared against
the common base.  A field conflicts when both sides moved away from the
base and did not land on the same value.

Equality rules:

* Scalars compare exactly; ``None``, ``""`` and ``[]`` all count as empty
  and compare equal to each other.
* Tags compare as a set of trimmed values (order and duplicates ignored).
* Steps compare as an ordered list of (action, expected result, test
  data); identifiers and ``order`` are ignored so that documents parsed
  independently from notation still compare by content.
"""

from __future__ import annotations

import logging
from typing import Any

from testcase_sync.document.models import Document
from testcase_sync.sync.models import ConflictRecord, ConflictType, Severity

logger = logging.getLogger(__name__)

TRACKED_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "steps",
    "priority",
    "assigned_to",
    "tags",
    "precondition",
    "postcondition",
    "automation_status",
)

_HIGH_SEVERITY_FIELDS = frozenset({"title", "priority", "automation_status"})
_MEDIUM_SEVERITY_FIELDS = frozenset(
    {"description", "precondition", "postcondition"}
)


def is_empty(value: Any) -> bool:
    """True for ``None``, blank strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return not value
    return False


def _comparable(field_name: str, value: Any) -> Any:
    if is_empty(value):
        return None
    if field_name == "tags":
        return frozenset(tag.strip() for tag in value if tag.strip())
    if field_name == "steps":
        return tuple(
            (step.action, step.expected_result, step.test_data)
            for step in value
        )
    return value


def values_equal(field_name: str, left: Any, right: Any) -> bool:
    """Compare two values of *field_name* under the detector's rules."""
    return _comparable(field_name, left) == _comparable(field_name, right)


def severity_for(field_name: str) -> Severity:
    """Severity of a both-changed conflict on *field_name*."""
    if field_name in _HIGH_SEVERITY_FIELDS:
        return Severity.HIGH
    if field_name in _MEDIUM_SEVERITY_FIELDS:
        return Severity.MEDIUM
    return Severity.LOW


def _suggestion(field_name: str, client_value: Any, server_value: Any) -> str:
    if field_name == "title":
        return (
            f'Title conflict: Client has "{client_value}", Server has '
            f'"{server_value}". Server value recommended.'
        )
    if field_name == "priority":
        return (
            f"Priority conflict: Client has {client_value}, Server has "
            f"{server_value}. Server value recommended."
        )
    if field_name == "steps":
        return (
            f"Steps conflict: Client has {len(client_value or [])} steps, "
            f"Server has {len(server_value or [])} steps. "
            "Review and merge manually."
        )
    if field_name == "tags":
        return (
            "Tags can be merged: Both client and server tags will be combined."
        )
    return f"Conflict detected in {field_name}. Manual review recommended."


def _classify(
    field_name: str, client_value: Any, server_value: Any
) -> tuple[ConflictType, Severity, str]:
    client_empty = is_empty(client_value)
    server_empty = is_empty(server_value)
    if client_empty and not server_empty:
        return (
            ConflictType.SERVER_DELETED_CLIENT_CHANGED,
            Severity.HIGH,
            f"Server has newer value for {field_name}. "
            "Use server value or confirm deletion.",
        )
    if server_empty and not client_empty:
        return (
            ConflictType.CLIENT_DELETED_SERVER_CHANGED,
            Severity.HIGH,
            f"Server deleted {field_name}, but you have unsaved changes. "
            "Confirm action.",
        )
    return (
        ConflictType.BOTH_CHANGED,
        severity_for(field_name),
        _suggestion(field_name, client_value, server_value),
    )


def detect_conflicts(
    client: Document, server: Document, base: Document
) -> list[ConflictRecord]:
    """Detect fields changed on both sides since *base*.

    Args:
        client: Locally edited copy.
        server: Freshly fetched server copy.
        base: Common ancestor of both.

    Returns:
        One ``ConflictRecord`` per conflicting field, in
        ``TRACKED_FIELDS`` order.  Empty when either side is unchanged.
    """
    conflicts: list[ConflictRecord] = []

    for field_name in TRACKED_FIELDS:
        client_value = getattr(client, field_name)
        server_value = getattr(server, field_name)
        base_value = getattr(base, field_name)

        if values_equal(field_name, client_value, base_value):
            continue
        if values_equal(field_name, server_value, base_value):
            continue
        if values_equal(field_name, client_value, server_value):
            logger.debug("Both sides made the same change to %s", field_name)
            continue

        conflict_type, severity, suggestion = _classify(
            field_name, client_value, server_value
        )
        conflicts.append(
            ConflictRecord(
                field_name=field_name,
                base_value=base_value,
                client_value=client_value,
                server_value=server_value,
                conflict_type=conflict_type,
                severity=severity,
                suggestion=suggestion,
            )
        )

    logger.debug("Detected %d conflict(s)", len(conflicts))
    return conflicts
