"""Pydantic models for the structured test-case document.

Defines the data contracts shared by every pipeline stage:

- ``AutomationStatus``: Enum of tracker automation states.
- ``Step``: One ordered action / expected-result record.
- ``Document``: The canonical structured test case.

All models are frozen (immutable).  Engines never mutate a document in
place; they return new instances built with ``Document.replace()``.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator

_STATUS_NORMALIZE = re.compile(r"[\s_\-]+")


class AutomationStatus(str, Enum):
    """Automation state of a test case, valued as the tracker spells it."""

    NOT_AUTOMATED = "Not Automated"
    PLANNED = "Planned"
    IN_PROGRESS = "In Progress"
    AUTOMATED = "Automated"

    @classmethod
    def parse(cls, text: str | None) -> AutomationStatus | None:
        """Parse loosely-written status text.

        Case, whitespace, ``-`` and ``_`` are ignored, so ``"notautomated"``,
        ``"in-progress"`` and ``"In Progress"`` are all accepted.

        Returns:
            The matching member, or ``None`` for empty or unknown text.
        """
        if not text:
            return None
        key = _STATUS_NORMALIZE.sub("", text).lower()
        for member in cls:
            if _STATUS_NORMALIZE.sub("", member.value).lower() == key:
                return member
        return None


class Step(BaseModel):
    """One ordered test action.

    Attributes:
        action: What the tester does.  Required for the step to be kept
            by the notation parser.
        expected_result: What should happen (may be empty).
        test_data: Optional input data for the action.
        attachments: References to attachments uploaded elsewhere.
        stable_id: Identifier that survives reordering and round-trips
            through the tracker's step markup.
        order: 1-based position, maintained by ``Document``.
    """

    action: str
    expected_result: str = ""
    test_data: str = ""
    attachments: list[str] = []
    stable_id: str = ""
    order: int = 0

    model_config = {"frozen": True}

    @property
    def is_validation(self) -> bool:
        """True when the step carries an expected result."""
        return bool(self.expected_result.strip())


class Document(BaseModel):
    """The structured test case.

    ``priority`` is ``None`` when unset, which is distinct from every
    in-range value including 0.  Step ``order`` values are rewritten to
    a dense 1..N sequence on construction.
    """

    title: str = ""
    description: str = ""
    precondition: str = ""
    postcondition: str = ""
    tags: list[str] = []
    priority: int | None = None
    automation_status: AutomationStatus | None = None
    assigned_to: str = ""
    area_path: str = ""
    iteration_path: str = ""
    steps: list[Step] = []
    custom_fields: dict[str, str] = {}

    model_config = {"frozen": True}

    @field_validator("steps")
    @classmethod
    def _renumber_steps(cls, steps: list[Step]) -> list[Step]:
        return [
            step
            if step.order == position
            else step.model_copy(update={"order": position})
            for position, step in enumerate(steps, start=1)
        ]

    def replace(self, **changes: Any) -> Document:
        """Return a validated copy with *changes* applied."""
        data = dict(self)
        data.update(changes)
        return type(self)(**data)

    def content_dump(self) -> dict[str, Any]:
        """Dump every field except step identifiers."""
        return self.model_dump(
            exclude={"steps": {"__all__": {"stable_id"}}}
        )

    def same_content(self, other: Document) -> bool:
        """Field-for-field equality with step identifiers ignored.

        Notation text does not carry step identifiers, so this is the
        equality that parse/format round-trips preserve.
        """
        return self.content_dump() == other.content_dump()
