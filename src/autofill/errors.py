"""Failure types for the extraction pipeline.

Every pipeline stage reports failures as a ``StageError`` tagged with the
stage it came from. The HTTP layer and the CLI render them; nothing else
escapes the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Stage(StrEnum):
    """Pipeline phase a failure originated from."""

    VALIDATION = "validation"
    IMAGE_DOWNLOAD = "image_download"
    INFERENCE_CALL = "inference_call"
    RESPONSE_PARSE = "response_parse"


@dataclass(frozen=True, slots=True)
class StageFailure:
    """Terminal failure of a single request."""

    stage: Stage
    message: str
    upstream_status: int | None = None

    def to_dict(self, *, diagnostic: bool = True) -> dict[str, Any]:
        if not diagnostic:
            return {"error": self.message}
        return {
            "error": self.stage.value,
            "message": self.message,
            "upstream_status": self.upstream_status,
        }


class StageError(Exception):
    """Raised by a pipeline stage that cannot complete."""

    def __init__(
        self,
        stage: Stage,
        message: str,
        *,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.failure = StageFailure(
            stage=stage, message=message, upstream_status=upstream_status
        )

    @property
    def stage(self) -> Stage:
        return self.failure.stage

    @property
    def message(self) -> str:
        return self.failure.message

    @property
    def upstream_status(self) -> int | None:
        return self.failure.upstream_status

    def __str__(self) -> str:
        if self.upstream_status is not None:
            return f"{self.stage.value}: {self.message} (status {self.upstream_status})"
        return f"{self.stage.value}: {self.message}"


class ConfigError(Exception):
    """Configuration error."""

    pass
