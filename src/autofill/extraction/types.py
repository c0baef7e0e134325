"""Inbound request model for the autofill gateway."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from autofill.errors import Stage, StageError
from autofill.images.types import (
    DEFAULT_MIME_TYPE,
    ImageReference,
    InlineBase64,
    RemoteURL,
)


class AutofillRequest(BaseModel):
    """One product photo, inline or by URL.

    When both ``image_base64`` and ``image_url`` are supplied the inline
    payload wins and the URL is never fetched.
    """

    image_base64: str | None = Field(
        default=None, description="Raw base64 or a data URL."
    )
    image_url: str | None = Field(
        default=None, description="Absolute URL, used only without image_base64."
    )
    image_mime: str | None = Field(
        default=None, description=f"Default MIME hint (default {DEFAULT_MIME_TYPE})."
    )

    @field_validator("image_base64", "image_url", "image_mime", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def to_reference(self) -> ImageReference:
        """Select the image source.

        Raises:
            StageError: ``validation`` when neither source is present.
        """
        if self.image_base64:
            return InlineBase64(data=self.image_base64)
        if self.image_url:
            return RemoteURL(url=self.image_url)
        raise StageError(Stage.VALIDATION, "Missing image_base64 or image_url")
