"""JSON-Patch builder for tracker Test Case work items.

Produces the ordered ``[{op, path, value}, ...]`` batch that the
tracker's work-item create/update endpoint expects, e.g.::

    [
      {"op": "add", "path": "/fields/System.Title", "value": "Login"},
      {"op": "add", "path": "/fields/Microsoft.VSTS.TCM.Steps",
       "value": "<steps id=\\"0\\" last=\\"1\\">...</steps>"}
    ]

Rules:

* ``set_title`` raises on an empty title.  A batch without a title is
  useless, so this is the one setter that fails hard.
* Every other setter skips empty input (no operation, a note in
  ``notes``) so partial documents never produce empty-valued operations.
* ``set_steps`` and ``set_priority`` reject invalid input by recording
  an error for ``validate()`` instead of appending an operation.
* ``validate()`` reports every problem at once; ``build()`` only refuses
  an empty batch.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel

from testcase_sync.document.models import AutomationStatus, Document
from testcase_sync.patch import fields
from testcase_sync.steps.markup import encode_steps, is_steps_markup
from testcase_sync.validators import ValidationResult, format_validation_error

logger = logging.getLogger(__name__)


class PatchOp(str, Enum):
    """Patch operation kinds used against work-item fields."""

    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"


class PatchOperation(BaseModel):
    """One field-level instruction in a patch batch.

    Attributes:
        op: Operation kind.
        path: Field path, ``/fields/<ReferenceName>``.
        value: New value (``None`` for ``remove``).
    """

    op: PatchOp
    path: str
    value: Any = None

    model_config = {"frozen": True}

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-Patch dict sent to the tracker."""
        wire: dict[str, Any] = {"op": self.op.value, "path": self.path}
        if self.op is not PatchOp.REMOVE:
            wire["value"] = self.value
        return wire


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


class PatchBuilder:
    """Fluent builder for a patch batch.

    Args:
        op: Operation kind used by the setters: ``add`` when creating a
            work item, ``replace`` when updating one.
        priority_min: Lowest priority the tracker accepts.
        priority_max: Highest priority the tracker accepts.
    """

    def __init__(
        self,
        op: PatchOp | str = PatchOp.ADD,
        *,
        priority_min: int = 1,
        priority_max: int = 4,
    ) -> None:
        self._op = PatchOp(op)
        if self._op is PatchOp.REMOVE:
            raise ValueError("Builder operation must be 'add' or 'replace'")
        self.priority_min = priority_min
        self.priority_max = priority_max
        self._operations: list[PatchOperation] = []
        self._errors: list[str] = []
        self.notes: list[str] = []

    @property
    def operations(self) -> list[PatchOperation]:
        """Operations accumulated so far (copy)."""
        return list(self._operations)

    # ------------------------------------------------------------------
    # Generic field operations
    # ------------------------------------------------------------------

    def add_field(self, reference: str, value: Any) -> PatchBuilder:
        """Append an operation for *reference*, skipping empty values."""
        path = fields.field_path(reference)
        if _is_blank(value):
            return self._skip(path)
        self._operations.append(
            PatchOperation(op=self._op, path=path, value=value)
        )
        return self

    def remove_field(self, reference: str) -> PatchBuilder:
        """Append a ``remove`` operation clearing *reference*."""
        self._operations.append(
            PatchOperation(op=PatchOp.REMOVE, path=fields.field_path(reference))
        )
        return self

    def _skip(self, path: str, reason: str = "empty value") -> PatchBuilder:
        note = f"Skipped {path}: {reason}"
        self.notes.append(note)
        logger.debug(note)
        return self

    def _reject(self, message: str) -> PatchBuilder:
        self._errors.append(message)
        logger.warning("Patch builder rejected input: %s", message)
        return self

    # ------------------------------------------------------------------
    # Field setters
    # ------------------------------------------------------------------

    def set_title(self, title: str | None) -> PatchBuilder:
        """Set ``System.Title``.

        Raises:
            ValueError: If the trimmed title is empty.
        """
        if not title or not title.strip():
            raise ValueError("Title is required and cannot be empty")
        return self.add_field(fields.TITLE, title.strip())

    def set_description(self, description: str | None) -> PatchBuilder:
        return self.add_field(
            fields.DESCRIPTION, (description or "").strip()
        )

    def set_steps(self, steps_markup: str | None) -> PatchBuilder:
        """Set the steps field from an already-encoded markup fragment."""
        if _is_blank(steps_markup):
            return self._skip(fields.field_path(fields.STEPS))
        if not is_steps_markup(steps_markup):
            return self._reject(
                'Steps must be step markup: <steps id="0" last="N">'
                '<step id="1" type="ActionStep">...</step></steps>'
            )
        return self.add_field(fields.STEPS, steps_markup)

    def set_priority(self, priority: int | None) -> PatchBuilder:
        if priority is None:
            return self._skip(fields.field_path(fields.PRIORITY))
        if isinstance(priority, bool) or not isinstance(priority, int):
            return self._reject(
                format_validation_error("Priority", "must be an integer")
            )
        if not self.priority_min <= priority <= self.priority_max:
            return self._reject(
                format_validation_error(
                    "Priority",
                    f"must be between {self.priority_min} and {self.priority_max}",
                )
            )
        return self.add_field(fields.PRIORITY, priority)

    def set_tags(self, tags: Iterable[str] | None) -> PatchBuilder:
        """Set ``System.Tags`` as a semicolon-joined string."""
        joined = ";".join(
            tag.strip() for tag in (tags or []) if tag and tag.strip()
        )
        return self.add_field(fields.TAGS, joined)

    def set_automation_status(
        self, status: AutomationStatus | str | None
    ) -> PatchBuilder:
        if _is_blank(status):
            return self._skip(fields.field_path(fields.AUTOMATION_STATUS))
        parsed = (
            status
            if isinstance(status, AutomationStatus)
            else AutomationStatus.parse(status)
        )
        if parsed is None:
            return self._reject(f"Unknown automation status '{status}'")
        return self.add_field(fields.AUTOMATION_STATUS, parsed.value)

    def set_area_path(self, area_path: str | None) -> PatchBuilder:
        return self.add_field(fields.AREA_PATH, (area_path or "").strip())

    def set_iteration_path(self, iteration_path: str | None) -> PatchBuilder:
        return self.add_field(
            fields.ITERATION_PATH, (iteration_path or "").strip()
        )

    def set_assigned_to(self, assigned_to: str | None) -> PatchBuilder:
        return self.add_field(
            fields.ASSIGNED_TO, (assigned_to or "").strip()
        )

    def add_custom_field(self, name: str, value: Any) -> PatchBuilder:
        if not name.startswith(fields.CUSTOM_PREFIX):
            logger.warning(
                "Custom field should start with %r: %s",
                fields.CUSTOM_PREFIX,
                name,
            )
        return self.add_field(name, value)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def validate(self) -> ValidationResult:
        """Check the batch before it is sent.

        Collects rejected setter input, a missing title operation,
        malformed paths, unknown tracker-owned references, and add/replace
        operations without a value.
        """
        errors = list(self._errors)

        if not self._operations:
            errors.append("No operations defined")
            return ValidationResult.from_errors(errors)

        title_path = fields.field_path(fields.TITLE)
        if not any(op.path == title_path for op in self._operations):
            errors.append(f"Title ({fields.TITLE}) is required")

        for operation in self._operations:
            if not fields.is_valid_path(operation.path):
                errors.append(f"Invalid path: {operation.path}")
            elif not fields.is_known_reference(
                operation.path[len(fields.FIELDS_ROOT):]
            ):
                errors.append(f"Unknown field reference: {operation.path}")
            if (
                operation.op in (PatchOp.ADD, PatchOp.REPLACE)
                and operation.value is None
            ):
                errors.append(
                    f"Missing value for {operation.op.value} operation "
                    f"on {operation.path}"
                )

        return ValidationResult.from_errors(errors)

    def build(self) -> list[PatchOperation]:
        """Return the accumulated operations.

        Raises:
            ValueError: If no operations were added.
        """
        if not self._operations:
            raise ValueError("No operations added to patch")
        return list(self._operations)

    def build_wire(self) -> list[dict[str, Any]]:
        return [operation.to_wire() for operation in self.build()]

    def build_json(self) -> str:
        return json.dumps(self.build_wire(), indent=2)

    def reset(self) -> PatchBuilder:
        self._operations = []
        self._errors = []
        self.notes = []
        return self


# ---------------------------------------------------------------------------
# Document -> patch
# ---------------------------------------------------------------------------

_INVALID_REFERENCE_CHARS = re.compile(r"[^\w.]")


def custom_field_reference(
    name: str, prefix: str = fields.CUSTOM_PREFIX
) -> str:
    """Qualify a notation custom-field key as a tracker reference name."""
    cleaned = _INVALID_REFERENCE_CHARS.sub("", name)
    if "." in cleaned:
        return cleaned
    return f"{prefix}{cleaned}"


def builder_for_document(
    document: Document,
    *,
    op: PatchOp | str = PatchOp.ADD,
    priority_min: int = 1,
    priority_max: int = 4,
    custom_field_prefix: str = fields.CUSTOM_PREFIX,
) -> PatchBuilder:
    """Populate a ``PatchBuilder`` from every field of *document*.

    Raises:
        ValueError: If the document has no title.
    """
    builder = PatchBuilder(
        op, priority_min=priority_min, priority_max=priority_max
    )
    builder.set_title(document.title)
    builder.set_description(document.description)
    if document.steps:
        builder.set_steps(encode_steps(document.steps))
    builder.set_priority(document.priority)
    builder.set_tags(document.tags)
    builder.set_automation_status(document.automation_status)
    builder.set_area_path(document.area_path)
    builder.set_iteration_path(document.iteration_path)
    builder.set_assigned_to(document.assigned_to)
    for name, value in document.custom_fields.items():
        builder.add_custom_field(
            custom_field_reference(name, custom_field_prefix), value
        )
    return builder


def document_to_patch(
    document: Document,
    *,
    op: PatchOp | str = PatchOp.ADD,
    priority_min: int = 1,
    priority_max: int = 4,
    custom_field_prefix: str = fields.CUSTOM_PREFIX,
) -> list[PatchOperation]:
    """Translate *document* into a patch batch.

    Problems that ``validate()`` would report are logged; use
    ``builder_for_document()`` to inspect them directly.
    """
    builder = builder_for_document(
        document,
        op=op,
        priority_min=priority_min,
        priority_max=priority_max,
        custom_field_prefix=custom_field_prefix,
    )
    result = builder.validate()
    for error in result.errors:
        logger.warning("Patch for %r: %s", document.title, error)
    return builder.build()
