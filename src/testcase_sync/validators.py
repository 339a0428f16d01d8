"""
Validation rules for test-case documents.

Validation never raises: every rule contributes a message to a
``ValidationResult`` so callers can show all problems at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .document.models import Document

MAX_TITLE_LENGTH = 255
MAX_STEP_TEXT_LENGTH = 4000


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation pass.

    Attributes:
        valid: True when no errors were found.
        errors: Human-readable error messages, in discovery order.
    """

    valid: bool
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        return cls(valid=not errors, errors=list(errors))


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Title")
        reason: Description of validation failure (e.g., "is required")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_title(title: str | None) -> tuple[bool, str]:
    """
    Validate a test case title.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.
    """
    if not title or not title.strip():
        return (False, format_validation_error("Title", "is required"))

    if len(title) > MAX_TITLE_LENGTH:
        return (
            False,
            format_validation_error(
                "Title",
                f"must be less than {MAX_TITLE_LENGTH} characters",
            ),
        )

    return (True, "")


def validate_priority(
    priority: int | None, priority_min: int = 0, priority_max: int = 4
) -> tuple[bool, str]:
    """
    Validate a priority value.  ``None`` (unset) is always valid.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if priority is None:
        return (True, "")

    if not priority_min <= priority <= priority_max:
        return (
            False,
            format_validation_error(
                "Priority",
                f"must be between {priority_min} and {priority_max}",
            ),
        )

    return (True, "")


def validate_document(
    document: Document, priority_min: int = 0, priority_max: int = 4
) -> ValidationResult:
    """
    Check a document against the authoring rules.

    Validation rules:
        - Title is required and shorter than 255 characters
        - At least one step
        - Every step has an action; action and expected result are at
          most 4000 characters
        - Priority, when set, lies within [priority_min, priority_max]
    """
    errors: list[str] = []

    ok, message = validate_title(document.title)
    if not ok:
        errors.append(message)

    if not document.steps:
        errors.append(
            format_validation_error("At least one step", "is required")
        )

    for position, step in enumerate(document.steps, start=1):
        label = f"Step {position}:"
        if not step.action.strip():
            errors.append(
                format_validation_error(f"{label} Action", "is required")
            )
        elif len(step.action) > MAX_STEP_TEXT_LENGTH:
            errors.append(
                format_validation_error(f"{label} Action", "is too long")
            )
        if len(step.expected_result) > MAX_STEP_TEXT_LENGTH:
            errors.append(
                format_validation_error(
                    f"{label} Expected result", "is too long"
                )
            )

    ok, message = validate_priority(
        document.priority, priority_min, priority_max
    )
    if not ok:
        errors.append(message)

    return ValidationResult.from_errors(errors)
