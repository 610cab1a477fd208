"""
YAML config file discovery and loading.

Search order (highest precedence first):
    1. ``WORD_ASSISTANT_CONFIG`` env var (explicit path)
    2. ``.word_assistant/config.yml`` in CWD (project-level)
    3. ``~/.config/word_assistant/config.yml`` (XDG global)

Files are merged with "project wins" semantics: top-level keys of a
higher-precedence file replace those of lower ones.  ``${VAR}`` and
``${VAR:-default}`` are expanded in every string after the merge.

Usage:
    from word_assistant.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "WORD_ASSISTANT_CONFIG"

# ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` / ``${VAR:-default}`` in *value*.

    An unset or empty VAR expands to *default*, or to ``""`` without one.
    """

    def _replace(match: re.Match) -> str:
        env_val = os.environ.get(match.group(1))
        if env_val:
            return env_val
        return match.group(2) or ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    match obj:
        case str():
            return interpolate_env_vars(obj)
        case dict():
            return {k: _interpolate_recursive(v) for k, v in obj.items()}
        case list():
            return [_interpolate_recursive(item) for item in obj]
        case _:
            return obj


def discover_config_files() -> list[Path]:
    """Return the existing config files, highest precedence first."""
    candidates: list[Path] = []

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())

    candidates.append(Path.cwd() / ".word_assistant" / "config.yml")
    candidates.append(
        Path.home() / ".config" / "word_assistant" / "config.yml"
    )

    return [p for p in candidates if p.exists()]


def _load_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh)


def load_hierarchical_config() -> dict[str, Any]:
    """Load, merge and interpolate all discovered config files.

    Returns an empty dict when no config file exists (zero-config).

    Raises:
        yaml.YAMLError: If a file is not valid YAML.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found; using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml(path)
        except yaml.YAMLError:
            logger.exception("Failed to parse config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s); skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)
