"""Stable step identifiers and identity-preserving sequence operations.

Every step carries a ``stable_id`` that is assigned once and then never
rewritten, whatever happens to the step's position:

* **Locally minted** ids look like ``step_{millis}_{position}`` and come
  from a ``StepIdMinter``.  The minter's clock is injectable so tests can
  produce deterministic ids.
* **Imported** ids look like ``step_ado_{n}`` where *n* is the tracker's
  own step index.  The markup encoder writes *n* back unchanged.

All sequence operations are pure: they return new lists with ``order``
renumbered 1..N and leave surviving identifiers untouched.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from testcase_sync.document.models import Step

logger = logging.getLogger(__name__)

IMPORTED_PREFIX = "step_ado_"


def _wall_clock_millis() -> int:
    return time.time_ns() // 1_000_000


class StepIdMinter:
    """Mint session-unique step identifiers.

    Args:
        clock: Zero-argument callable returning integer milliseconds.
            Defaults to the wall clock.  Whatever the clock returns, the
            minted timestamps are strictly increasing for this minter.
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or _wall_clock_millis
        self._last = -1
        self._lock = threading.Lock()

    def mint(self, position: int) -> str:
        """Return a new identifier for a step at *position* (1-based)."""
        with self._lock:
            stamp = int(self._clock())
            if stamp <= self._last:
                stamp = self._last + 1
            self._last = stamp
        return f"step_{stamp}_{position}"


default_minter = StepIdMinter()


def imported_id(index: int | str) -> str:
    """Build the stable id for a step imported from the tracker."""
    return f"{IMPORTED_PREFIX}{index}"


def is_imported_id(stable_id: str) -> bool:
    """True for ids of the form ``step_ado_{n}``."""
    return external_index(stable_id) is not None


def external_index(stable_id: str) -> int | None:
    """Return the tracker step index carried by an imported id."""
    if not stable_id.startswith(IMPORTED_PREFIX):
        return None
    tail = stable_id[len(IMPORTED_PREFIX):]
    if not tail.isdigit():
        return None
    return int(tail)


# ---------------------------------------------------------------------------
# Sequence operations
# ---------------------------------------------------------------------------


def renumber(steps: Iterable[Step]) -> list[Step]:
    """Rewrite ``order`` to 1..N following list position."""
    return [
        step
        if step.order == position
        else step.model_copy(update={"order": position})
        for position, step in enumerate(steps, start=1)
    ]


def ensure_ids(
    steps: Sequence[Step], minter: StepIdMinter | None = None
) -> list[Step]:
    """Mint identifiers for steps that have none; keep existing ones."""
    minter = minter or default_minter
    return renumber(
        step
        if step.stable_id
        else step.model_copy(update={"stable_id": minter.mint(position)})
        for position, step in enumerate(steps, start=1)
    )


def reorder_steps(
    steps: Sequence[Step], from_index: int, to_index: int
) -> list[Step]:
    """Move the step at *from_index* to *to_index* (0-based).

    An out-of-range *from_index* leaves the sequence unchanged.
    *to_index* is clamped to the list bounds.
    """
    moved = list(steps)
    if not 0 <= from_index < len(moved):
        logger.warning(
            "Cannot move step %d: sequence has %d steps",
            from_index,
            len(moved),
        )
        return renumber(moved)
    step = moved.pop(from_index)
    to_index = max(0, min(to_index, len(moved)))
    moved.insert(to_index, step)
    return renumber(moved)


def add_step(
    steps: Sequence[Step],
    action: str,
    expected_result: str = "",
    position: int | None = None,
    *,
    test_data: str = "",
    minter: StepIdMinter | None = None,
) -> list[Step]:
    """Insert a new step with a freshly minted identifier.

    Args:
        steps: Current sequence.
        action: Action text of the new step.
        expected_result: Expected result of the new step.
        position: 0-based insertion point.  ``None`` or out of range
            appends.
        test_data: Optional test data.
        minter: Identifier source (module default when omitted).

    Returns:
        New renumbered sequence.
    """
    minter = minter or default_minter
    result = list(steps)
    if position is None or not 0 <= position <= len(result):
        position = len(result)
    new_step = Step(
        action=action,
        expected_result=expected_result,
        test_data=test_data,
        stable_id=minter.mint(position + 1),
    )
    result.insert(position, new_step)
    return renumber(result)


def remove_step(steps: Sequence[Step], index: int) -> list[Step]:
    """Remove the step at *index*; out of range is a no-op."""
    return renumber(s for i, s in enumerate(steps) if i != index)


def has_order_changed(
    original: Sequence[Step], modified: Sequence[Step]
) -> bool:
    """True if the identifier sequence differs between the two lists."""
    if len(original) != len(modified):
        return True
    return any(
        a.stable_id != b.stable_id for a, b in zip(original, modified)
    )


# ---------------------------------------------------------------------------
# Identity-keyed merge
# ---------------------------------------------------------------------------


@dataclass
class StepMergeResult:
    """Outcome of ``merge_steps``."""

    merged: list[Step]
    conflicts: list[str] = field(default_factory=list)


def _identity_key(step: Step) -> str:
    return step.stable_id or f"step_{step.order}"


def _content_key(step: Step) -> tuple[str, str, str]:
    return (step.action, step.expected_result, step.test_data)


def adopt_ids(steps: Sequence[Step], reference: Sequence[Step]) -> list[Step]:
    """Give *steps* the identifiers of matching *reference* steps.

    A step takes the identifier of the first reference step with the
    same action, expected result and test data that no earlier step has
    taken.  Other steps keep their own identifier.  Used for steps parsed
    from notation, whose identifiers are minted fresh on every parse.
    """
    available: dict[tuple[str, str, str], list[str]] = {}
    for step in reference:
        if step.stable_id:
            available.setdefault(_content_key(step), []).append(step.stable_id)

    adopted: list[Step] = []
    for step in steps:
        candidates = available.get(_content_key(step))
        if candidates:
            step = step.model_copy(update={"stable_id": candidates.pop(0)})
        adopted.append(step)
    return adopted


def merge_steps(
    server_steps: Sequence[Step], client_steps: Sequence[Step]
) -> StepMergeResult:
    """Merge two step lists by stable identifier.

    Server steps are indexed first and client steps overwrite entries
    with the same identifier.  A conflict message is recorded whenever
    the overwritten server step had a different action or expected
    result.  The result is ordered by each surviving step's ``order``
    (ties keep insertion order) and renumbered.
    """
    merged: dict[str, Step] = {}
    conflicts: list[str] = []

    for step in server_steps:
        merged[_identity_key(step)] = step

    for step in client_steps:
        key = _identity_key(step)
        existing = merged.get(key)
        if existing is not None and (
            existing.action != step.action
            or existing.expected_result != step.expected_result
        ):
            conflicts.append(
                f"Step {step.order}: Different content on server and client"
            )
        merged[key] = step

    ordered = sorted(merged.values(), key=lambda s: s.order)
    return StepMergeResult(merged=renumber(ordered), conflicts=conflicts)
