"""Centralized path management.

State (config, logs) lives under a single base directory, overridable with
the AUTOFILL_HOME environment variable. Default: ~/.autofill
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "AUTOFILL_HOME"


@lru_cache(maxsize=1)
def get_autofill_home() -> Path:
    """Get the base directory for autofill data.

    Resolution order:
    1. AUTOFILL_HOME environment variable (if set)
    2. ~/.autofill
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".autofill"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_autofill_home() / "config.toml"


def get_logs_path() -> Path:
    """Get the JSONL logs directory."""
    return get_autofill_home() / "logs"
