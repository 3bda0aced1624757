"""Environment variable utilities

Shared runtime checks for local runs and CI.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

RuntimeEnv = Literal["ci", "local"]

DETECTOR_ENV_VAR = "BRA_DETECTOR_ENV"
DETECTOR_CONFIG_DIR_VAR = "BRA_DETECTOR_CONFIG_DIR"
DETECTOR_DEBUG_VAR = "BRA_DETECTOR_DEBUG"


@lru_cache(maxsize=None)
def get_runtime_environment() -> RuntimeEnv:
    """Determine the current runtime environment.

    Priority:
    1. BRA_DETECTOR_ENV (ci / local)
    2. CI or GITHUB_ACTIONS set to true -> ci
    3. otherwise local
    """
    explicit_env = os.getenv(DETECTOR_ENV_VAR)
    if explicit_env:
        normalized = explicit_env.strip().lower()
        return "ci" if normalized == "ci" else "local"

    for var in ("CI", "GITHUB_ACTIONS"):
        if os.getenv(var, "").lower() == "true":
            return "ci"

    return "local"


@lru_cache(maxsize=None)
def get_config_dir_override() -> Optional[Path]:
    """Config directory from BRA_DETECTOR_CONFIG_DIR, if set."""
    raw = os.getenv(DETECTOR_CONFIG_DIR_VAR)
    if raw is None or not raw.strip():
        return None
    return Path(raw.strip()).expanduser()


@lru_cache(maxsize=None)
def is_debug_enabled() -> bool:
    """Whether verbose per-field detection traces were requested."""
    override = os.getenv(DETECTOR_DEBUG_VAR)
    if override is not None:
        return override.strip().lower() in {"1", "true", "yes"}
    return False


def is_ci_environment() -> bool:
    return get_runtime_environment() == "ci"


def reset_cache() -> None:
    """Reset cached lookups (for tests)."""
    get_runtime_environment.cache_clear()
    get_config_dir_override.cache_clear()
    is_debug_enabled.cache_clear()
