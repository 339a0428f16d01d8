"""Pydantic models for three-way test-case reconciliation.

Defines the data contracts used across the reconciler modules:

- ``ConflictType``: How the two sides diverged from the base.
- ``Severity``: How much attention a conflict needs.
- ``ConflictRecord``: One detected per-field divergence.
- ``ReconcileResult``: Merged document plus the conflicts behind it.

Conflict records are created fresh on every reconciliation call and are
never persisted here; storing resolution history is the caller's job.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel

from testcase_sync.document.models import Document


class ConflictType(str, Enum):
    """Classification of a per-field conflict."""

    BOTH_CHANGED = "both-changed"
    # The client's value became empty while the server changed it.
    SERVER_DELETED_CLIENT_CHANGED = "server-deleted-client-changed"
    # The server's value became empty while the client changed it.
    CLIENT_DELETED_SERVER_CHANGED = "client-deleted-server-changed"

    @property
    def is_deletion(self) -> bool:
        return self is not ConflictType.BOTH_CHANGED


class Severity(str, Enum):
    """Conflict severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConflictRecord(BaseModel):
    """Details about one conflicting field.

    Attributes:
        field_name: ``Document`` attribute name (e.g. ``"priority"``).
        base_value: Value in the common ancestor.
        client_value: Value in the locally edited copy.
        server_value: Value in the freshly fetched server copy.
        conflict_type: How the sides diverged.
        severity: How much attention the conflict needs.
        suggestion: Human-readable resolution hint.
    """

    field_name: str
    base_value: Any = None
    client_value: Any = None
    server_value: Any = None
    conflict_type: ConflictType
    severity: Severity
    suggestion: str

    model_config = {"frozen": True}


class ReconcileResult(BaseModel):
    """Outcome of a full reconciliation.

    Attributes:
        merged: The merged document.
        conflicts: Conflicts detected between client and server.
        strategy: Name of the strategy that produced ``merged``.
        resolved: False when a manual merge still has conflicts to
            settle, True otherwise.
    """

    merged: Document
    conflicts: list[ConflictRecord] = []
    strategy: str
    resolved: bool

    model_config = {"frozen": True}

    @property
    def high_severity(self) -> list[ConflictRecord]:
        """Conflicts with HIGH severity."""
        return [c for c in self.conflicts if c.severity is Severity.HIGH]

    def summary(self) -> str:
        """One-line summary of the reconciliation."""
        state = "resolved" if self.resolved else "needs review"
        return (
            f"{len(self.conflicts)} conflict(s), "
            f"{len(self.high_severity)} high severity, "
            f"strategy '{self.strategy}', {state}"
        )
