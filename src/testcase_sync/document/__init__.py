"""Structured test-case document model."""

from .models import AutomationStatus, Document, Step

__all__ = [
    "AutomationStatus",
    "Document",
    "Step",
]
