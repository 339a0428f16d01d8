"""JSON-Patch batches for the tracker's work-item API."""

from .builder import (
    PatchBuilder,
    PatchOp,
    PatchOperation,
    builder_for_document,
    custom_field_reference,
    document_to_patch,
)

__all__ = [
    "PatchBuilder",
    "PatchOp",
    "PatchOperation",
    "builder_for_document",
    "custom_field_reference",
    "document_to_patch",
]
