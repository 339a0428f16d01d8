"""Known notation keys.

Each ``key: value`` line is resolved once, at parse time, to a
``FieldKind``.  Keys are case-insensitive and several have aliases.
Anything unrecognised is ``FieldKind.CUSTOM`` and lands in the
document's ``custom_fields`` map.
"""

from __future__ import annotations

from enum import Enum


class FieldKind(str, Enum):
    """Tagged enumeration of notation keys."""

    TITLE = "title"
    DESCRIPTION = "description"
    PRECONDITION = "precondition"
    POSTCONDITION = "postcondition"
    TAGS = "tags"
    PRIORITY = "priority"
    AUTOMATION = "automation"
    ASSIGNED_TO = "assignedto"
    AREA_PATH = "areapath"
    ITERATION_PATH = "iterationpath"
    ACTION = "action"
    EXPECTED = "expected"
    TEST_DATA = "data"
    CUSTOM = "custom"

    @property
    def is_step_field(self) -> bool:
        return self in _STEP_KINDS


_STEP_KINDS = frozenset(
    {FieldKind.ACTION, FieldKind.EXPECTED, FieldKind.TEST_DATA}
)

# Lower-cased key -> kind.  The canonical spelling (the enum value) is
# what the formatter writes.
KEY_ALIASES: dict[str, FieldKind] = {
    "title": FieldKind.TITLE,
    "name": FieldKind.TITLE,
    "description": FieldKind.DESCRIPTION,
    "precondition": FieldKind.PRECONDITION,
    "postcondition": FieldKind.POSTCONDITION,
    "tags": FieldKind.TAGS,
    "tag": FieldKind.TAGS,
    "priority": FieldKind.PRIORITY,
    "automation": FieldKind.AUTOMATION,
    "automationstatus": FieldKind.AUTOMATION,
    "assignedto": FieldKind.ASSIGNED_TO,
    "owner": FieldKind.ASSIGNED_TO,
    "areapath": FieldKind.AREA_PATH,
    "area": FieldKind.AREA_PATH,
    "iterationpath": FieldKind.ITERATION_PATH,
    "iteration": FieldKind.ITERATION_PATH,
    "action": FieldKind.ACTION,
    "expected": FieldKind.EXPECTED,
    "expectedresult": FieldKind.EXPECTED,
    "data": FieldKind.TEST_DATA,
    "testdata": FieldKind.TEST_DATA,
}


def resolve_key(key: str) -> FieldKind:
    """Map a notation key to its ``FieldKind`` (case-insensitive)."""
    return KEY_ALIASES.get(key.strip().lower(), FieldKind.CUSTOM)
