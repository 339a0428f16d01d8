"""Merge strategies for reconciling client and server documents.

Provides multiple merge approaches behind one protocol:

- ``ServerWinsStrategy``: Return the server copy verbatim.
- ``ClientWinsStrategy``: Return the client copy verbatim.
- ``ManualStrategy``: Take an explicit allow-list of fields from the
  client and everything else from the server.  The caller still owns any
  remaining conflicts, so results are reported as unresolved.
- ``AutomaticMergeStrategy``: Field-by-field heuristics (server for
  identity fields, longer text for descriptions, unions for tags and
  steps, surviving value over a deletion).

The heuristics are product policy, which is why they live here and not
in the detector.  The ``create_strategy()`` factory maps config strategy
strings to strategy instances.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any, Protocol

from testcase_sync.document.models import Document
from testcase_sync.steps.identity import merge_steps
from testcase_sync.sync.detector import (
    TRACKED_FIELDS,
    detect_conflicts,
    is_empty,
    values_equal,
)
from testcase_sync.sync.models import (
    ConflictRecord,
    ConflictType,
    ReconcileResult,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class MergeStrategy(Protocol):
    """Protocol that all merge strategies must satisfy."""

    name: str

    def merge(
        self,
        client: Document,
        server: Document,
        conflicts: Sequence[ConflictRecord],
        base: Document | None = None,
    ) -> Document:
        """Produce the merged document.

        Args:
            client: Locally edited copy.
            server: Freshly fetched server copy.
            conflicts: Output of ``detect_conflicts()`` for these copies.
            base: Common ancestor, when the caller has it.

        Returns:
            The merged document.
        """
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Simple strategies
# ---------------------------------------------------------------------------


class ServerWinsStrategy:
    """Always resolve in favour of the server copy."""

    name = "server-wins"

    def merge(self, client, server, conflicts, base=None) -> Document:
        """Return the server copy."""
        return server


class ClientWinsStrategy:
    """Always resolve in favour of the client copy."""

    name = "client-wins"

    def merge(self, client, server, conflicts, base=None) -> Document:
        """Return the client copy."""
        return client


class ManualStrategy:
    """Take the listed fields from the client, the rest from the server.

    Args:
        fields: ``Document`` attribute names to take from the client.

    Raises:
        ValueError: If a field name is not a ``Document`` attribute.
    """

    name = "manual"

    def __init__(self, fields: Iterable[str] | None = None) -> None:
        self.fields = list(fields or [])
        unknown = [f for f in self.fields if f not in Document.model_fields]
        if unknown:
            raise ValueError(
                f"Unknown document fields: {unknown}. "
                f"Valid fields: {sorted(Document.model_fields)}"
            )

    def merge(self, client, server, conflicts, base=None) -> Document:
        """Overlay the selected client fields on the server copy."""
        pending = [
            c.field_name for c in conflicts if c.field_name not in self.fields
        ]
        if pending:
            logger.info(
                "Manual merge leaves %d conflict(s) unresolved: %s",
                len(pending),
                ", ".join(pending),
            )
        return server.replace(
            **{name: getattr(client, name) for name in self.fields}
        )


# ---------------------------------------------------------------------------
# Automatic strategy
# ---------------------------------------------------------------------------

_SERVER_PREFERRED = frozenset(
    {"title", "priority", "automation_status", "assigned_to"}
)
_LONGER_PREFERRED = frozenset({"description", "precondition", "postcondition"})


def _longer(client_value: str | None, server_value: str | None) -> str:
    client_text = client_value or ""
    server_text = server_value or ""
    return client_text if len(client_text) > len(server_text) else server_text


def _tag_union(server_tags: list[str], client_tags: list[str]) -> list[str]:
    return list(
        dict.fromkeys(
            tag for tag in [*(server_tags or []), *(client_tags or [])] if tag
        )
    )


def _merge_custom_fields(
    client: dict[str, str], server: dict[str, str], base: dict[str, str]
) -> dict[str, str]:
    merged = dict(server)
    keys = list(client) + [key for key in base if key not in client]
    for key in keys:
        if client.get(key) == base.get(key):
            continue
        if server.get(key) != base.get(key):
            continue
        if key in client:
            merged[key] = client[key]
        else:
            merged.pop(key, None)
    return merged


def _client_only_changes(
    client: Document, server: Document, base: Document, skip: set[str]
) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for name in Document.model_fields:
        if name in skip:
            continue
        client_value = getattr(client, name)
        server_value = getattr(server, name)
        base_value = getattr(base, name)
        if name == "custom_fields":
            merged = _merge_custom_fields(client_value, server_value, base_value)
            if merged != server_value:
                changes[name] = merged
            continue
        if name in TRACKED_FIELDS:
            client_changed = not values_equal(name, client_value, base_value)
            server_changed = not values_equal(name, server_value, base_value)
        else:
            client_changed = client_value != base_value
            server_changed = server_value != base_value
        if client_changed and not server_changed:
            changes[name] = client_value
    return changes


class AutomaticMergeStrategy:
    """Resolve conflicts with per-field heuristics.

    Starts from the server copy.  When *base* is supplied, fields only
    the client changed are carried over first.  Then each conflict is
    resolved:

    * both changed: server wins for title, priority, automation status
      and assignee; the longer text wins for description, precondition
      and postcondition; tags are unioned; steps are merged by stable
      identifier.
    * one side deleted: the surviving value wins.
    """

    name = "merge"

    def merge(self, client, server, conflicts, base=None) -> Document:
        """Merge *client* into *server* under the heuristics above."""
        conflicted = {c.field_name for c in conflicts}
        changes: dict[str, Any] = {}
        if base is not None:
            changes.update(
                _client_only_changes(client, server, base, conflicted)
            )

        for conflict in conflicts:
            changes[conflict.field_name] = self._resolve(conflict)

        return server.replace(**changes)

    def _resolve(self, conflict: ConflictRecord) -> Any:
        name = conflict.field_name
        client_value = conflict.client_value
        server_value = conflict.server_value

        if conflict.conflict_type is not ConflictType.BOTH_CHANGED:
            return server_value if is_empty(client_value) else client_value
        if name in _LONGER_PREFERRED:
            return _longer(client_value, server_value)
        if name == "tags":
            return _tag_union(server_value, client_value)
        if name == "steps":
            result = merge_steps(server_value or [], client_value or [])
            for message in result.conflicts:
                logger.info("Step merge: %s", message)
            return result.merged
        return server_value


# ---------------------------------------------------------------------------
# Factory and entry points
# ---------------------------------------------------------------------------

_STRATEGY_MAP: dict[str, type] = {
    "server-wins": ServerWinsStrategy,
    "client-wins": ClientWinsStrategy,
    "manual": ManualStrategy,
    "merge": AutomaticMergeStrategy,
}

STRATEGY_NAMES: tuple[str, ...] = tuple(_STRATEGY_MAP)


def create_strategy(
    strategy: str, fields: Iterable[str] | None = None
) -> MergeStrategy:
    """Create a merge strategy for the given strategy string.

    Args:
        strategy: One of ``"server-wins"``, ``"client-wins"``,
            ``"manual"``, ``"merge"``.
        fields: Client-side fields for the ``"manual"`` strategy.

    Returns:
        A ``MergeStrategy`` implementation instance.

    Raises:
        ValueError: If the strategy string is not recognised.
    """
    cls = _STRATEGY_MAP.get(strategy)
    if cls is None:
        raise ValueError(
            f"Unknown merge strategy: '{strategy}'. Valid strategies: {sorted(_STRATEGY_MAP.keys())}"
        )
    if cls is ManualStrategy:
        return ManualStrategy(fields)
    return cls()  # type: ignore[return-value]


def _as_strategy(
    strategy: MergeStrategy | str, fields: Iterable[str] | None
) -> MergeStrategy:
    if isinstance(strategy, str):
        return create_strategy(strategy, fields)
    return strategy


def merge_documents(
    client: Document,
    server: Document,
    conflicts: Sequence[ConflictRecord],
    strategy: MergeStrategy | str,
    *,
    base: Document | None = None,
    fields: Iterable[str] | None = None,
) -> Document:
    """Merge *client* and *server* using *strategy* (name or instance)."""
    return _as_strategy(strategy, fields).merge(
        client, server, conflicts, base=base
    )


def reconcile(
    base: Document,
    client: Document,
    server: Document,
    strategy: MergeStrategy | str = "merge",
    fields: Iterable[str] | None = None,
) -> ReconcileResult:
    """Detect conflicts between *client* and *server* and merge them.

    Args:
        base: Common ancestor snapshot.
        client: Locally edited snapshot.
        server: Freshly fetched server snapshot.
        strategy: Strategy name or instance.
        fields: Client-side fields for the ``"manual"`` strategy.

    Returns:
        ``ReconcileResult`` with the merged document and the conflicts.
        ``resolved`` is False only for a manual merge with conflicts.
    """
    impl = _as_strategy(strategy, fields)
    conflicts = detect_conflicts(client, server, base)
    merged = impl.merge(client, server, conflicts, base=base)
    resolved = not conflicts or impl.name != "manual"
    logger.info(
        "Reconciled %r: %d conflict(s) using %s",
        merged.title,
        len(conflicts),
        impl.name,
    )
    return ReconcileResult(
        merged=merged,
        conflicts=conflicts,
        strategy=impl.name,
        resolved=resolved,
    )
