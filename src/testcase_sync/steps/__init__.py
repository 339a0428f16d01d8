"""Stable step identity and the tracker's step markup.

Modules:

- ``identity`` -- ``StepIdMinter`` plus identity-preserving reorder, add,
  remove and merge of step sequences.
- ``markup``   -- exact escaping, a tolerant tokenizer, and
  ``encode_steps`` / ``decode_steps`` for the tracker's step XML.
"""

from .identity import (
    StepIdMinter,
    StepMergeResult,
    add_step,
    adopt_ids,
    default_minter,
    ensure_ids,
    has_order_changed,
    merge_steps,
    remove_step,
    renumber,
    reorder_steps,
)
from .markup import (
    decode_steps,
    encode_steps,
    escape_xml,
    is_steps_markup,
    tokenize,
    unescape_xml,
)

__all__ = [
    "StepIdMinter",
    "StepMergeResult",
    "add_step",
    "adopt_ids",
    "decode_steps",
    "default_minter",
    "encode_steps",
    "ensure_ids",
    "escape_xml",
    "has_order_changed",
    "is_steps_markup",
    "merge_steps",
    "remove_step",
    "renumber",
    "reorder_steps",
    "tokenize",
    "unescape_xml",
]
