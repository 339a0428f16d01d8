"""Unified configuration schema for testcase_sync.

Defines Pydantic models for the config file structure with dedicated
sections for the notation codec, patch building, reconciliation and
logging.  Includes an adapter that flattens the sections into the
runtime ``Config`` dataclass.

Usage:
    from testcase_sync.config_schema import build_config, to_runtime_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = to_runtime_config(unified, cli_overrides={"strategy": "server-wins"})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field, model_validator

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class NotationConfig(BaseModel):
    """Notation codec settings."""

    comment_marker: str = Field(
        default="//",
        min_length=1,
        description="Prefix that disables a notation line",
    )
    pad_empty_steps: bool = Field(
        default=False,
        description="Fill documents without steps with placeholder steps",
    )
    placeholder_step_count: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of placeholder steps (1-100)",
    )
    priority_min: int = Field(default=0, description="Lowest valid priority")
    priority_max: int = Field(default=4, description="Highest valid priority")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_bounds(self) -> NotationConfig:
        if self.priority_min > self.priority_max:
            raise ValueError("priority_min must not exceed priority_max")
        return self


class PatchConfig(BaseModel):
    """Patch builder settings for the tracker."""

    operation: Literal["add", "replace"] = Field(
        default="add",
        description="Operation used by field setters (add creates, replace updates)",
    )
    priority_min: int = Field(default=1, description="Lowest tracker priority")
    priority_max: int = Field(default=4, description="Highest tracker priority")
    custom_field_prefix: str = Field(
        default="Custom.",
        description="Prefix added to unqualified custom field names",
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_bounds(self) -> PatchConfig:
        if self.priority_min > self.priority_max:
            raise ValueError("priority_min must not exceed priority_max")
        return self


class ReconcileConfig(BaseModel):
    """Reconciliation settings.

    Attributes:
        strategy: Default merge strategy name.
    """

    strategy: Literal["server-wins", "client-wins", "manual", "merge"] = Field(
        default="merge", description="Default merge strategy"
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: "text" or "json".
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log record format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    notation: NotationConfig = Field(default_factory=NotationConfig)
    patch: PatchConfig = Field(default_factory=PatchConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict | None) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully: anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> runtime Config dataclass
# ---------------------------------------------------------------------------


def to_runtime_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Flatten a ``UnifiedConfig`` into the runtime ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value

    CLI overrides dict keys: comment_marker, pad_empty_steps, strategy,
    patch_operation, log_file, log_format, debug.

    Args:
        unified: The unified config produced by ``build_config()``.
        cli_overrides: Optional dict of CLI argument values.

    Returns:
        ``Config`` dataclass instance (not validated; the caller should run
        ``validate_config()`` separately if needed).
    """
    # Import here to avoid circular imports (config.py imports config_schema)
    from .config import Config

    overrides = cli_overrides or {}

    return Config(
        comment_marker=overrides.get("comment_marker")
        or unified.notation.comment_marker,
        pad_empty_steps=overrides.get("pad_empty_steps", False)
        or unified.notation.pad_empty_steps,
        placeholder_step_count=unified.notation.placeholder_step_count,
        priority_min=unified.notation.priority_min,
        priority_max=unified.notation.priority_max,
        patch_operation=overrides.get("patch_operation")
        or unified.patch.operation,
        patch_priority_min=unified.patch.priority_min,
        patch_priority_max=unified.patch.priority_max,
        custom_field_prefix=unified.patch.custom_field_prefix,
        strategy=overrides.get("strategy") or unified.reconcile.strategy,
        log_level=unified.logging.level,
        log_file=overrides.get("log_file") or unified.logging.file,
        log_format=overrides.get("log_format") or unified.logging.format,
        debug=overrides.get("debug", False),
    )
