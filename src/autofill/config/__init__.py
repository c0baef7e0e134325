"""Configuration module."""

from autofill.config.loader import find_config_path, get_default_config, load_config
from autofill.config.models import (
    AutofillConfig,
    ConfigError,
    DownloadConfig,
    ExtractionConfig,
    InferenceConfig,
    LoggingConfig,
    OpenAIConfig,
    ServerConfig,
)
from autofill.config.paths import get_autofill_home, get_config_path, get_logs_path

__all__ = [
    "AutofillConfig",
    "ConfigError",
    "DownloadConfig",
    "ExtractionConfig",
    "InferenceConfig",
    "LoggingConfig",
    "OpenAIConfig",
    "ServerConfig",
    "find_config_path",
    "get_autofill_home",
    "get_config_path",
    "get_default_config",
    "get_logs_path",
    "load_config",
]
