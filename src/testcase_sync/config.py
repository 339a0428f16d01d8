"""Runtime configuration for the testcase-sync tool.

Reads settings from CLI args, environment variables, .env files, and
YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    TESTCASE_SYNC_COMMENT_MARKER: Prefix that disables a notation line (default: //)
    TESTCASE_SYNC_PAD_EMPTY_STEPS: Fill empty step lists with placeholders (default: false)
    TESTCASE_SYNC_PRIORITY_MIN: Lowest valid notation priority (default: 0)
    TESTCASE_SYNC_PRIORITY_MAX: Highest valid notation priority (default: 4)
    TESTCASE_SYNC_STRATEGY: Default merge strategy (default: merge)
"""

import logging
import os
from dataclasses import dataclass

from .config_schema import build_config, to_runtime_config
from .sync.resolver import STRATEGY_NAMES

logger = logging.getLogger(__name__)


@dataclass
class Config:
    comment_marker: str = "//"
    pad_empty_steps: bool = False
    placeholder_step_count: int = 10
    priority_min: int = 0
    priority_max: int = 4
    patch_operation: str = "add"
    patch_priority_min: int = 1
    patch_priority_max: int = 4
    custom_field_prefix: str = "Custom."
    strategy: str = "merge"
    log_level: str = "INFO"
    log_file: str | None = None
    log_format: str = "text"
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If any setting is out of range or unknown.
    """
    config.comment_marker = config.comment_marker.strip()
    if not config.comment_marker:
        raise ValueError("Comment marker cannot be empty or whitespace")

    if config.priority_min > config.priority_max:
        raise ValueError(
            f"Invalid priority range {config.priority_min}..{config.priority_max}: "
            "minimum exceeds maximum"
        )

    if config.patch_priority_min > config.patch_priority_max:
        raise ValueError(
            f"Invalid patch priority range "
            f"{config.patch_priority_min}..{config.patch_priority_max}: "
            "minimum exceeds maximum"
        )

    if not 1 <= config.placeholder_step_count <= 100:
        raise ValueError(
            f"Invalid placeholder step count {config.placeholder_step_count}: "
            "must be between 1 and 100"
        )

    if config.strategy not in STRATEGY_NAMES:
        raise ValueError(
            f"Unknown merge strategy '{config.strategy}': "
            f"expected one of {', '.join(STRATEGY_NAMES)}"
        )

    if config.patch_operation not in ("add", "replace"):
        raise ValueError(
            f"Invalid patch operation '{config.patch_operation}': "
            "must be 'add' or 'replace'"
        )

    if config.log_format not in ("text", "json"):
        raise ValueError(
            f"Invalid log format '{config.log_format}': must be 'text' or 'json'"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid {key} '{raw}': must be a number") from None


def load_config(
    cli_overrides: dict | None = None,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        cli_overrides: Values from command-line flags (see
            ``to_runtime_config`` for the accepted keys).
        yaml_fallbacks: Merged dict from ``load_hierarchical_config()``.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a setting from any source is invalid.
    """
    overrides = dict(cli_overrides or {})

    # --- String fields: CLI > env > YAML ---

    for key, env_name in (
        ("comment_marker", "TESTCASE_SYNC_COMMENT_MARKER"),
        ("strategy", "TESTCASE_SYNC_STRATEGY"),
    ):
        if not overrides.get(key) and os.getenv(env_name):
            overrides[key] = os.getenv(env_name)

    config = to_runtime_config(build_config(yaml_fallbacks), overrides)

    # --- Boolean fields: CLI > env > YAML ---

    if not overrides.get("pad_empty_steps"):
        env_pad = _get_bool_env("TESTCASE_SYNC_PAD_EMPTY_STEPS")
        if env_pad is not None:
            config.pad_empty_steps = env_pad

    # --- Numeric fields: env > YAML ---

    config.priority_min = _get_int_env(
        "TESTCASE_SYNC_PRIORITY_MIN", config.priority_min
    )
    config.priority_max = _get_int_env(
        "TESTCASE_SYNC_PRIORITY_MAX", config.priority_max
    )

    validate_config(config)

    return config
