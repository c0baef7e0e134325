"""Configuration models using Pydantic."""

import os
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator

from autofill.errors import ConfigError
from autofill.extraction.schema import SCHEMA_VERSION, get_schema

__all__ = [
    "AutofillConfig",
    "ConfigError",
    "DownloadConfig",
    "ExtractionConfig",
    "InferenceConfig",
    "LoggingConfig",
    "OpenAIConfig",
    "ServerConfig",
]


class OpenAIConfig(BaseModel):
    """Credentials and endpoint for the inference service."""

    api_key: SecretStr | None = None
    base_url: str | None = None


class InferenceConfig(BaseModel):
    """Configuration for the extraction call.

    ``instructions`` and ``prompt`` override the built-in texts when set.
    Temperature is optional - if None, the service default is used.
    """

    model: str = "gpt-4o-2024-08-06"
    timeout_seconds: float = Field(default=25.0, gt=0)
    temperature: float | None = None
    language: str | None = "Spanish"
    instructions: str | None = None
    prompt: str | None = None


class DownloadConfig(BaseModel):
    """Configuration for fetching remote images."""

    timeout_seconds: float = Field(default=15.0, gt=0)
    max_image_bytes: int = Field(default=20 * 1024 * 1024, gt=0)
    user_agent: str = "Mozilla/5.0"
    accept: str = "image/*,*/*;q=0.8"

    def headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": self.accept}


class ExtractionConfig(BaseModel):
    """Schema selection and result post-processing."""

    schema_version: str = SCHEMA_VERSION
    layout: Literal["nested", "flat"] = "nested"
    enforce_text_limits: bool = True
    default_mime: str = "image/png"

    @field_validator("schema_version")
    @classmethod
    def _known_schema_version(cls, value: str) -> str:
        get_schema(value)
        return value


class ServerConfig(BaseModel):
    """Configuration for HTTP server."""

    host: str = "127.0.0.1"
    port: int = 8080
    # Stage-tagged error bodies; False renders only the message.
    diagnostic_errors: bool = True


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None
    redact_secrets: bool = True


class AutofillConfig(BaseModel):
    """Root configuration model."""

    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    download: DownloadConfig = Field(default_factory=DownloadConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def resolve_api_key(self) -> SecretStr | None:
        """Resolve the inference API key.

        Resolution order:
        1. [openai] api_key from the config file
        2. OPENAI_API_KEY environment variable

        Returns:
            The resolved API key, or None if not found.
        """
        if self.openai.api_key and self.openai.api_key.get_secret_value().strip():
            return self.openai.api_key

        env_value = os.environ.get("OPENAI_API_KEY", "").strip()
        if env_value:
            return SecretStr(env_value)

        return None

    def require_api_key(self) -> str:
        """Return the API key or raise ConfigError."""
        api_key = self.resolve_api_key()
        if api_key is None:
            raise ConfigError("Missing OPENAI_API_KEY")
        return api_key.get_secret_value()
