"""Types for product image acquisition."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MIME_TYPE = "image/png"


@dataclass(frozen=True, slots=True)
class EncodedImage:
    """A base64-encoded image ready to embed in an inference request."""

    data_base64: str
    mime_type: str = DEFAULT_MIME_TYPE
    # Data-URL prefix exactly as the caller sent it, if any.
    prefix: str | None = None

    @property
    def data_url(self) -> str:
        prefix = self.prefix or f"data:{self.mime_type};base64,"
        return f"{prefix}{self.data_base64}"

    @property
    def approx_bytes(self) -> int:
        """Decoded size estimated from the base64 length."""
        padding = self.data_base64[-2:].count("=")
        return len(self.data_base64) * 3 // 4 - padding


@dataclass(frozen=True, slots=True)
class InlineBase64:
    """Image supplied in the request body, raw base64 or data URL."""

    data: str
    mime_hint: str | None = None


@dataclass(frozen=True, slots=True)
class RemoteURL:
    """Image hosted elsewhere and downloaded by the gateway."""

    url: str


type ImageReference = InlineBase64 | RemoteURL
