"""
Configuration management for the maintainer dashboard.

Settings are resolved in this order:
1. Values set explicitly via the set_* functions (CLI options)
2. Environment variables (MAINTAINER_DASHBOARD_*)
3. .maintainer-dashboard.toml (local config)
4. pyproject.toml (project-level config)
5. Built-in defaults
"""

import os
import tomllib
from pathlib import Path
from typing import Any

# project_root is the parent directory of maintainer_dashboard/
PROJECT_ROOT = Path(__file__).resolve().parent.parent

CONFIG_SECTION = "maintainer-dashboard"

# Global configuration for SSL verification
# Can be set to False by CLI --insecure flag
VERIFY_SSL = True

DEFAULT_DATA_DIR = PROJECT_ROOT / "public" / "data"
DEFAULT_REGISTRY_PATH = PROJECT_ROOT / "config" / "repos.json"

# Repository passes run one request at a time unless configured otherwise.
DEFAULT_CONCURRENCY = 1

# Items younger than this are never reported as unengaged.
DEFAULT_UNENGAGED_DAYS = 3

DEFAULT_ATTENTION_WEIGHTS: dict[str, float] = {
    "issues": 1,
    "prs": 2,
    "release_staleness": 0.5,
    "unengaged": 3,
}

_DATA_DIR: Path | None = None
_REGISTRY_PATH: Path | None = None
_CONCURRENCY: int | None = None


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def get_project_config() -> dict[str, Any]:
    """
    Return the [tool.maintainer-dashboard] table.

    .maintainer-dashboard.toml wins over pyproject.toml; the two are not merged.
    """
    for filename in (".maintainer-dashboard.toml", "pyproject.toml"):
        config = load_config_file(PROJECT_ROOT / filename)
        section = config.get("tool", {}).get(CONFIG_SECTION)
        if section:
            return section
    return {}


def _parse_int(value: Any, name: str, minimum: int) -> int:
    """Parse an integer setting, rejecting booleans, fractions and values below minimum."""
    if isinstance(value, (bool, float)):
        parsed = None
    else:
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            parsed = None
    if parsed is None or parsed < minimum:
        raise ValueError(
            f"{name} must be an integer of at least {minimum}, got {value!r}."
        )
    return parsed


def set_verify_ssl(verify: bool) -> None:
    """Set the SSL verification setting globally."""
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """Get the current SSL verification setting."""
    return VERIFY_SSL


def get_data_dir() -> Path:
    """
    Get the directory the snapshot documents are written to.

    Priority:
    1. Explicitly set value via set_data_dir()
    2. MAINTAINER_DASHBOARD_DATA_DIR environment variable
    3. data_dir in config files
    4. Default: <project>/public/data
    """
    if _DATA_DIR is not None:
        return _DATA_DIR

    env_data_dir = os.getenv("MAINTAINER_DASHBOARD_DATA_DIR")
    if env_data_dir:
        return Path(env_data_dir).expanduser()

    config = get_project_config()
    if "data_dir" in config:
        return (PROJECT_ROOT / config["data_dir"]).expanduser()

    return DEFAULT_DATA_DIR


def set_data_dir(path: Path | str | None) -> None:
    """Set the data directory explicitly. None restores normal resolution."""
    global _DATA_DIR
    _DATA_DIR = Path(path).expanduser() if path is not None else None


def get_registry_path() -> Path:
    """
    Get the path of the repository registry document.

    Priority:
    1. Explicitly set value via set_registry_path()
    2. MAINTAINER_DASHBOARD_REGISTRY environment variable
    3. registry in config files
    4. Default: <project>/config/repos.json
    """
    if _REGISTRY_PATH is not None:
        return _REGISTRY_PATH

    env_registry = os.getenv("MAINTAINER_DASHBOARD_REGISTRY")
    if env_registry:
        return Path(env_registry).expanduser()

    config = get_project_config()
    if "registry" in config:
        return (PROJECT_ROOT / config["registry"]).expanduser()

    return DEFAULT_REGISTRY_PATH


def set_registry_path(path: Path | str | None) -> None:
    """Set the registry path explicitly. None restores normal resolution."""
    global _REGISTRY_PATH
    _REGISTRY_PATH = Path(path).expanduser() if path is not None else None


def get_concurrency() -> int:
    """
    Get the number of repository requests allowed in flight at once.

    Priority:
    1. Explicitly set value via set_concurrency()
    2. MAINTAINER_DASHBOARD_CONCURRENCY environment variable
    3. concurrency in config files
    4. Default: 1 (strictly sequential)
    """
    if _CONCURRENCY is not None:
        return _CONCURRENCY

    env_concurrency = os.getenv("MAINTAINER_DASHBOARD_CONCURRENCY")
    if env_concurrency:
        return _parse_int(
            env_concurrency, "MAINTAINER_DASHBOARD_CONCURRENCY", minimum=1
        )

    config = get_project_config()
    if "concurrency" in config:
        return _parse_int(config["concurrency"], "concurrency", minimum=1)

    return DEFAULT_CONCURRENCY


def set_concurrency(limit: int | None) -> None:
    """
    Set the concurrency limit explicitly.

    Raises:
        ValueError: If limit is lower than 1.
    """
    global _CONCURRENCY
    if limit is not None and limit < 1:
        raise ValueError(f"Concurrency must be at least 1, got {limit}.")
    _CONCURRENCY = limit


def get_unengaged_days() -> int:
    """
    Grace window in days before an item without engagement is flagged.

    Raises:
        ValueError: If unengaged_days is not a non-negative integer.
    """
    config = get_project_config()
    if "unengaged_days" in config:
        return _parse_int(config["unengaged_days"], "unengaged_days", minimum=0)
    return DEFAULT_UNENGAGED_DAYS


def get_attention_weights() -> dict[str, float]:
    """
    Load attention score weights, applying config overrides on top of defaults.

    Raises:
        ValueError: If the overrides name unknown weights or use invalid values.
    """
    weights = dict(DEFAULT_ATTENTION_WEIGHTS)
    overrides = get_project_config().get("weights")
    if not overrides:
        return weights

    if not isinstance(overrides, dict):
        raise ValueError("weights should be a table of weight names to numbers.")

    unknown = set(overrides) - set(DEFAULT_ATTENTION_WEIGHTS)
    if unknown:
        raise ValueError(
            f"Unknown attention weights: {', '.join(sorted(unknown))}. "
            f"Available: {', '.join(DEFAULT_ATTENTION_WEIGHTS)}."
        )

    invalid = {
        key: value
        for key, value in overrides.items()
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0
    }
    if invalid:
        invalid_list = ", ".join(f"{key}={value}" for key, value in invalid.items())
        raise ValueError(
            f"Attention weights must be non-negative numbers. Invalid values: {invalid_list}."
        )

    weights.update(overrides)
    return weights
