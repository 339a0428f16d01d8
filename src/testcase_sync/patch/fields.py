"""Tracker field reference names and JSON-Patch paths for Test Case items."""

from __future__ import annotations

import re

TITLE = "System.Title"
DESCRIPTION = "System.Description"
STEPS = "Microsoft.VSTS.TCM.Steps"
PRIORITY = "Microsoft.VSTS.Common.Priority"
TAGS = "System.Tags"
AUTOMATION_STATUS = "Microsoft.VSTS.TCM.AutomationStatus"
AREA_PATH = "System.AreaPath"
ITERATION_PATH = "System.IterationPath"
ASSIGNED_TO = "System.AssignedTo"

KNOWN_FIELDS: frozenset[str] = frozenset(
    {
        TITLE,
        DESCRIPTION,
        STEPS,
        PRIORITY,
        TAGS,
        AUTOMATION_STATUS,
        AREA_PATH,
        ITERATION_PATH,
        ASSIGNED_TO,
    }
)

CUSTOM_PREFIX = "Custom."
FIELDS_ROOT = "/fields/"

# Namespaces owned by the tracker; only KNOWN_FIELDS may be written there
RESERVED_NAMESPACES: tuple[str, ...] = ("System.", "Microsoft.VSTS.")

# Reference names are dotted identifiers: System.Title, Custom.Browser
_REFERENCE_RE = re.compile(r"^[A-Za-z_]\w*(\.[A-Za-z_]\w*)+$")


def field_path(reference: str) -> str:
    """Return the patch path for a field reference name.

    Accepts ``System.Title``, ``/System.Title`` or a full
    ``/fields/System.Title`` path.
    """
    if reference.startswith(FIELDS_ROOT):
        return reference
    return f"{FIELDS_ROOT}{reference.lstrip('/')}"


def is_valid_reference(reference: str) -> bool:
    """True for a dotted reference name such as ``Custom.Browser``."""
    return bool(_REFERENCE_RE.match(reference))


def is_valid_path(path: str | None) -> bool:
    """True when *path* is ``/fields/<ReferenceName>``."""
    if not path or not path.startswith(FIELDS_ROOT):
        return False
    return is_valid_reference(path[len(FIELDS_ROOT):])


def is_known_reference(reference: str) -> bool:
    """False for a reserved-namespace reference this tool does not write.

    ``System.Titel`` is a typo the tracker would reject; ``Custom.Browser``
    and other non-reserved names are left to the tracker.
    """
    if reference in KNOWN_FIELDS:
        return True
    return not reference.startswith(RESERVED_NAMESPACES)
