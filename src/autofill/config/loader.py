"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from autofill.config.models import AutofillConfig
from autofill.config.paths import get_config_path


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.autofill/config.toml (or AUTOFILL_HOME)
        Path("/etc/autofill/config.toml"),  # System-wide
    ]


def _resolve_env_secrets(config: dict[str, Any]) -> dict[str, Any]:
    """Fill the inference API key from the environment if not set in config."""
    section = config.setdefault("openai", {})
    if section.get("api_key") is None:
        value = os.environ.get("OPENAI_API_KEY")
        if value:
            section["api_key"] = SecretStr(value)
    return config


def find_config_path(path: Path | None = None) -> Path | None:
    """Locate the config file to load.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    for default_path in _get_default_config_paths():
        expanded = default_path.expanduser()
        if expanded.exists():
            return expanded
    return None


def load_config(path: Path | None = None) -> AutofillConfig:
    """Load configuration from TOML file.

    Args:
        path: Explicit path to config file. If None, searches default
            locations and falls back to defaults when none exists.

    Returns:
        Validated AutofillConfig instance.

    Raises:
        FileNotFoundError: If an explicit config file is missing.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
        pydantic.ValidationError: If config values are invalid.
    """
    config_path = find_config_path(path)

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        with config_path.open("rb") as f:
            raw_config = tomllib.load(f)

    raw_config = _resolve_env_secrets(raw_config)
    return AutofillConfig.model_validate(raw_config)


def get_default_config() -> AutofillConfig:
    """Get a default configuration for development/testing."""
    return AutofillConfig()
