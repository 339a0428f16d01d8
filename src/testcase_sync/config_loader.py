"""
Hierarchical configuration loader for testcase_sync.

Finds YAML config files by convention, resolves ``!include`` directives
and ``${VAR}`` references, and merges the files so that project-level
settings win over user-level ones.

Usage:
    from testcase_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TESTCASE_SYNC_CONFIG"
PROJECT_DIR_NAME = ".testcase_sync"

# ---------------------------------------------------------------------------
# 1. Env var interpolation
# ---------------------------------------------------------------------------

# ${VAR} or ${VAR:-fallback}
_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-fallback}`` from the environment.

    An unset or empty variable expands to its fallback, or to an empty
    string when there is none.  A ``${`` without a closing brace is kept.
    """

    def _expand(match: re.Match) -> str:
        current = os.environ.get(match.group(1))
        if current:
            return current
        return match.group(2) or ""

    return _ENV_REF.sub(_expand, value)


def _interpolate_tree(node: Any) -> Any:
    """Apply ``interpolate_env_vars`` to every string in a YAML tree."""
    if isinstance(node, str):
        return interpolate_env_vars(node)
    if isinstance(node, list):
        return [_interpolate_tree(item) for item in node]
    if isinstance(node, dict):
        return {key: _interpolate_tree(item) for key, item in node.items()}
    return node


# ---------------------------------------------------------------------------
# 2. YAML !include support (dedicated SafeLoader subclass)
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader with an ``!include`` tag.

    A subclass keeps the global ``yaml.SafeLoader`` untouched.  Each load
    carries the chain of files being read so circular includes fail fast.
    """


def _include_constructor(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    """Load the file named by ``!include <path>`` in place of the node."""
    target = Path(loader.construct_scalar(node))
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    chain: list[Path] = getattr(loader, "_include_chain", [])
    if target in chain:
        cycle = " -> ".join(str(p) for p in [*chain, target])
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.exists():
        raise FileNotFoundError(
            f"Include file not found: {target} "
            f"(referenced from {Path(loader.name).resolve()})"
        )

    return load_yaml_file(target, _chain=[*chain, target])


ConfigLoader.add_constructor("!include", _include_constructor)


def load_yaml_file(path: Path, *, _chain: list[Path] | None = None) -> Any:
    """Load one YAML file with ``!include`` support."""
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_chain = _chain or [path]  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# 3. Convention-based file discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config files, highest precedence first.

    Search order:
        1. ``TESTCASE_SYNC_CONFIG`` env var (explicit single path)
        2. ``.testcase_sync/config.yml`` in CWD (project-level)
        3. ``.testcase_sync/config.yaml`` in CWD (alternate extension)
        4. ``~/.config/testcase_sync/config.yml`` (XDG global)
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project = Path.cwd() / PROJECT_DIR_NAME
    candidates.append(project / "config.yml")
    candidates.append(project / "config.yaml")
    candidates.append(Path.home() / ".config" / "testcase_sync" / "config.yml")

    return [path for path in candidates if path.exists()]


# ---------------------------------------------------------------------------
# 3a. Config bootstrapping
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# testcase-sync configuration
#
# Values may reference environment variables: ${VAR} or ${VAR:-default}
# Other files can be pulled in with: section: !include other.yml
#
# notation:
#   comment_marker: "//"
#   pad_empty_steps: false
#   placeholder_step_count: 10
#   priority_min: 0
#   priority_max: 4
#
# patch:
#   operation: add          # add | replace
#   priority_min: 1
#   priority_max: 4
#   custom_field_prefix: Custom.
#
# reconcile:
#   strategy: merge         # server-wins | client-wins | manual | merge
#
# logging:
#   level: INFO
#   file: null
#   format: text            # text | json
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, creating a starter file if none exists.

    Args:
        target: Where to create the starter file.  Defaults to
            ``CWD / .testcase_sync / config.yml``.

    Returns:
        Path to the existing or newly created config file.
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or Path.cwd() / PROJECT_DIR_NAME / "config.yml"
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


# ---------------------------------------------------------------------------
# 4. Hierarchical merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Files are applied from lowest to highest precedence, and each file's
    top-level sections replace (not deep-merge) earlier ones.  Environment
    references are expanded after merging.

    Returns an empty dict when no config files exist (zero-config).
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found: using zero-config defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = load_yaml_file(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s): skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_tree(merged)
