"""Plain-text test-case notation: parse, format, validate.

The notation is line oriented::

    title: Login Test
    priority: 1
    tags: smoke, auth

    action: Open login page
    expected: Form is visible

    // action: This step is disabled
    action: Submit credentials
    expected: User redirected to dashboard

Rules:

* ``key: value`` per line; keys are case-insensitive, both sides trimmed.
  Custom-field keys keep the spelling they were written with.
* Lines starting with the comment marker (``//``) are skipped entirely and
  do not close a step.
* A blank line closes the open step.  Steps without an action are dropped.
* Lines without a ``key:`` prefix are tolerated and skipped.
* Unknown keys become custom fields.

Parsing never validates and never pads an empty step list; see
``validate_notation()`` and ``pad_default_steps()``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from testcase_sync.document.models import AutomationStatus, Document, Step
from testcase_sync.notation.fields import FieldKind, resolve_key
from testcase_sync.steps.identity import (
    StepIdMinter,
    default_minter,
    ensure_ids,
)
from testcase_sync.validators import ValidationResult, validate_document

logger = logging.getLogger(__name__)

DEFAULT_COMMENT_MARKER = "//"
DEFAULT_PLACEHOLDER_STEPS = 10

_METADATA_ATTRS: dict[FieldKind, str] = {
    FieldKind.TITLE: "title",
    FieldKind.DESCRIPTION: "description",
    FieldKind.PRECONDITION: "precondition",
    FieldKind.POSTCONDITION: "postcondition",
    FieldKind.ASSIGNED_TO: "assigned_to",
    FieldKind.AREA_PATH: "area_path",
    FieldKind.ITERATION_PATH: "iteration_path",
}


@dataclass
class _OpenStep:
    action: str = ""
    expected_result: str = ""
    test_data: str = ""


@dataclass
class _ParseState:
    fields: dict[str, Any] = field(default_factory=dict)
    custom: dict[str, str] = field(default_factory=dict)
    steps: list[Step] = field(default_factory=list)
    current: _OpenStep | None = None
    problems: list[str] = field(default_factory=list)

    def flush(self) -> None:
        if self.current is not None and self.current.action:
            self.steps.append(
                Step(
                    action=self.current.action,
                    expected_result=self.current.expected_result,
                    test_data=self.current.test_data,
                )
            )
        self.current = None

    def open_step(self) -> _OpenStep:
        if self.current is None:
            self.current = _OpenStep()
        return self.current


def _split_line(line: str) -> tuple[str, str] | None:
    colon = line.find(":")
    if colon <= 0:
        return None
    return line[:colon].strip(), line[colon + 1:].strip()


def _apply(state: _ParseState, key: str, value: str) -> None:
    kind = resolve_key(key)
    match kind:
        case FieldKind.ACTION:
            state.flush()
            state.current = _OpenStep(action=value)
        case FieldKind.EXPECTED:
            step = state.open_step()
            if step.expected_result and value:
                step.expected_result = f"{step.expected_result} {value}"
            else:
                step.expected_result = value or step.expected_result
        case FieldKind.TEST_DATA:
            state.open_step().test_data = value
        case FieldKind.TAGS:
            state.fields["tags"] = [
                tag.strip() for tag in value.split(",") if tag.strip()
            ]
        case FieldKind.PRIORITY:
            try:
                state.fields["priority"] = int(value)
            except ValueError:
                state.problems.append(f"Priority '{value}' is not a number")
                logger.debug("Ignoring non-numeric priority %r", value)
        case FieldKind.AUTOMATION:
            status = AutomationStatus.parse(value)
            if status is None and value:
                state.problems.append(f"Unknown automation status '{value}'")
                logger.debug("Ignoring unknown automation status %r", value)
            state.fields["automation_status"] = status
        case FieldKind.CUSTOM:
            state.custom[key] = value
        case _:
            state.fields[_METADATA_ATTRS[kind]] = value


def _parse(
    text: str,
    comment_marker: str,
    minter: StepIdMinter | None,
) -> tuple[Document, list[str]]:
    state = _ParseState()

    for number, line in enumerate(text.splitlines(), start=1):
        trimmed = line.strip()
        if not trimmed:
            state.flush()
            continue
        if trimmed.startswith(comment_marker):
            continue
        pair = _split_line(trimmed)
        if pair is None:
            logger.debug("Line %d has no 'key:' prefix; skipped", number)
            continue
        _apply(state, *pair)

    state.flush()

    document = Document(
        **state.fields,
        steps=ensure_ids(state.steps, minter or default_minter),
        custom_fields=state.custom,
    )
    return document, state.problems


def parse_notation(
    text: str,
    *,
    comment_marker: str = DEFAULT_COMMENT_MARKER,
    minter: StepIdMinter | None = None,
) -> Document:
    """Parse notation text into a ``Document``.

    Malformed lines are skipped rather than rejected.  Out-of-range
    priorities are kept as written; validation happens downstream.

    Args:
        text: Notation text.
        comment_marker: Prefix that disables a line.
        minter: Source of stable ids for the parsed steps.

    Returns:
        The parsed document (possibly with zero steps).
    """
    document, _ = _parse(text, comment_marker, minter)
    logger.debug(
        "Parsed notation: title=%r, %d steps",
        document.title,
        len(document.steps),
    )
    return document


def format_notation(
    document: Document,
    *,
    disabled: Iterable[int] = (),
    comment_marker: str = DEFAULT_COMMENT_MARKER,
) -> str:
    """Format a ``Document`` as notation text.

    Metadata keys are written in a fixed order and only when non-empty,
    followed by custom fields, one blank line, and one block per step.
    Step attachments are not part of the notation and are not written.

    Args:
        document: Document to format.
        disabled: 0-based positions of steps to write commented out.
            The parser skips those lines, so the steps drop out of the
            next parse while staying visible in the text.
        comment_marker: Prefix used for disabled step lines.
    """
    skipped = set(disabled)
    lines: list[str] = []

    def emit(key: str, value: str, prefix: str = "") -> None:
        if value:
            lines.append(f"{prefix}{key}: {value}")

    emit("title", document.title)
    emit("description", document.description)
    emit("assignedto", document.assigned_to)
    if document.priority is not None:
        lines.append(f"priority: {document.priority}")
    if document.automation_status is not None:
        emit("automation", document.automation_status.value)
    emit("tags", ", ".join(document.tags))
    emit("precondition", document.precondition)
    emit("postcondition", document.postcondition)
    emit("areapath", document.area_path)
    emit("iterationpath", document.iteration_path)
    for key, value in document.custom_fields.items():
        lines.append(f"{key}: {value}".rstrip())

    lines.append("")

    for position, step in enumerate(document.steps):
        prefix = f"{comment_marker} " if position in skipped else ""
        lines.append(f"{prefix}action: {step.action}")
        emit("expected", step.expected_result, prefix)
        emit("data", step.test_data, prefix)
        lines.append("")

    return "\n".join(lines)


def validate_notation(
    text: str,
    *,
    priority_min: int = 0,
    priority_max: int = 4,
    comment_marker: str = DEFAULT_COMMENT_MARKER,
) -> ValidationResult:
    """Parse *text* and check it against the document rules.

    Reports a missing title, an empty step list, steps without actions,
    out-of-range priorities, and values the parser had to ignore.
    """
    document, problems = _parse(text, comment_marker, None)
    result = validate_document(document, priority_min, priority_max)
    return ValidationResult.from_errors(result.errors + problems)


def pad_default_steps(
    document: Document,
    count: int = DEFAULT_PLACEHOLDER_STEPS,
    minter: StepIdMinter | None = None,
) -> Document:
    """Fill an empty step list with labelled placeholder steps.

    Authoring aid for new documents.  Documents that already have steps
    are returned unchanged.
    """
    if document.steps:
        return document
    placeholders = [
        Step(
            action=f"Step {i} action (default)",
            expected_result=f"Step {i} expected result (default)",
        )
        for i in range(1, count + 1)
    ]
    return document.replace(steps=ensure_ids(placeholders, minter))


# =============================================================================
# Editor highlighting
# =============================================================================

_SECTION_RE = re.compile(
    r"^(steps|precondition|postcondition|custom fields):\s*$", re.IGNORECASE
)


@dataclass(frozen=True)
class LineHighlight:
    """Highlight hint for one notation line (1-based)."""

    line: int
    type: str
    message: str | None = None


def highlight_notation(
    text: str, comment_marker: str = DEFAULT_COMMENT_MARKER
) -> list[LineHighlight]:
    """Classify notation lines for an editor.

    Types are ``disabled`` (comment), ``section`` (bare section header),
    ``keyword`` (recognised key) and ``error`` (no ``key:`` prefix).
    Blank lines and custom keys get no highlight.
    """
    highlights: list[LineHighlight] = []
    for number, line in enumerate(text.splitlines(), start=1):
        trimmed = line.strip()
        if not trimmed:
            continue
        if trimmed.startswith(comment_marker):
            highlights.append(LineHighlight(number, "disabled"))
        elif _SECTION_RE.match(trimmed):
            highlights.append(LineHighlight(number, "section"))
        else:
            pair = _split_line(trimmed)
            if pair is None:
                highlights.append(
                    LineHighlight(number, "error", "Expected 'key: value'")
                )
            elif resolve_key(pair[0]) is not FieldKind.CUSTOM:
                highlights.append(LineHighlight(number, "keyword"))
    return highlights
