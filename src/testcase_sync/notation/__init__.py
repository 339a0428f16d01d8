"""Plain-text test-case notation codec."""

from .codec import (
    LineHighlight,
    format_notation,
    highlight_notation,
    pad_default_steps,
    parse_notation,
    validate_notation,
)
from .fields import FieldKind, resolve_key

__all__ = [
    "FieldKind",
    "LineHighlight",
    "format_notation",
    "highlight_notation",
    "pad_default_steps",
    "parse_notation",
    "resolve_key",
    "validate_notation",
]
