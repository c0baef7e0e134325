"""Resolve inline or remote product images into canonical data URLs."""

from __future__ import annotations

import asyncio
import base64
import logging
import re
import time
from urllib.parse import urlparse

import httpx

from autofill.errors import Stage, StageError
from autofill.images.types import (
    DEFAULT_MIME_TYPE,
    EncodedImage,
    ImageReference,
    InlineBase64,
    RemoteURL,
)

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_TIMEOUT_SECONDS = 15.0
DEFAULT_MAX_IMAGE_BYTES = 20 * 1024 * 1024

# Some image hosts reject default client identifiers.
DEFAULT_DOWNLOAD_HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "image/*,*/*;q=0.8",
}

_DATA_URL_PREFIX_RE = re.compile(r"^data:([^,]*?);base64,", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
# Standard or URL-safe alphabet, padding optional.
_BASE64_RE = re.compile(r"^[A-Za-z0-9+/_-]+={0,2}$")


def to_data_url(payload: str, mime_type: str) -> str:
    """Wrap a base64 payload as ``data:<mime>;base64,<payload>``."""
    return f"data:{mime_type};base64,{payload}"


def _split_prefix(text: str) -> tuple[str | None, str | None, str]:
    text = text.strip()
    match = _DATA_URL_PREFIX_RE.match(text)
    if match is None:
        return None, None, _WHITESPACE_RE.sub("", text)
    declared = match.group(1).strip() or None
    return match.group(0), declared, _WHITESPACE_RE.sub("", text[match.end() :])


def split_data_url(text: str) -> tuple[str | None, str]:
    """Split an optional data-URL prefix from a base64 payload.

    Returns the media type declared in the prefix, parameters included (or
    None when the text is raw base64), and the payload with all whitespace
    removed.
    """
    _, declared, payload = _split_prefix(text)
    return declared, payload


def _normalize_mime(value: str | None) -> str | None:
    if not value:
        return None
    mime_type = value.split(";", 1)[0].strip().lower()
    return mime_type or None


class ImageSourceResolver:
    """Turns an ``ImageReference`` into a single ``EncodedImage``.

    Inline payloads never touch the network. Remote references are fetched
    with one bounded GET per call; the httpx client is opened and closed
    inside the call so concurrent resolutions share nothing.
    """

    def __init__(
        self,
        *,
        default_mime: str = DEFAULT_MIME_TYPE,
        timeout_seconds: float = DEFAULT_DOWNLOAD_TIMEOUT_SECONDS,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._default_mime = default_mime
        self._timeout_seconds = timeout_seconds
        self._max_image_bytes = max_image_bytes
        self._headers = dict(headers or DEFAULT_DOWNLOAD_HEADERS)
        self._transport = transport

    async def resolve(
        self,
        reference: ImageReference | None,
        default_mime: str | None = None,
    ) -> EncodedImage:
        fallback_mime = _normalize_mime(default_mime) or self._default_mime
        if isinstance(reference, InlineBase64):
            return self._resolve_inline(reference, fallback_mime)
        if isinstance(reference, RemoteURL):
            return await self._download(reference.url, fallback_mime)
        raise StageError(Stage.VALIDATION, "Missing image_base64 or image_url")

    def _resolve_inline(self, reference: InlineBase64, fallback_mime: str) -> EncodedImage:
        prefix, declared_mime, payload = _split_prefix(reference.data)
        if not payload:
            raise StageError(Stage.VALIDATION, "image_base64 is empty")
        if not _BASE64_RE.match(payload):
            raise StageError(Stage.VALIDATION, "image_base64 is not valid base64")

        # The payload is forwarded as sent; a caller's data-URL prefix is too.
        image = EncodedImage(
            data_base64=payload,
            mime_type=(
                _normalize_mime(declared_mime)
                or _normalize_mime(reference.mime_hint)
                or fallback_mime
            ),
            prefix=prefix,
        )
        if image.approx_bytes > self._max_image_bytes:
            raise StageError(
                Stage.VALIDATION,
                f"image_base64 exceeds max size of {self._max_image_bytes} bytes",
            )
        logger.debug(
            "Resolved inline image mime=%s bytes=%d",
            image.mime_type,
            image.approx_bytes,
        )
        return image

    async def _download(self, url: str, fallback_mime: str) -> EncodedImage:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise StageError(
                Stage.VALIDATION, "image_url must be an absolute http(s) URL"
            )

        started_at = time.monotonic()
        try:
            # httpx timeouts apply per read; this bounds the whole download.
            status_code, content_type, body = await asyncio.wait_for(
                self._fetch(url), timeout=self._timeout_seconds
            )
        except StageError as e:
            logger.warning("Image download failed url=%s: %s", url, e)
            raise
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning(
                "Image download timed out url=%s timeout_s=%s",
                url,
                self._timeout_seconds,
            )
            raise StageError(
                Stage.IMAGE_DOWNLOAD, "Timed out downloading image_url"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Image download error url=%s: %s", url, e)
            raise StageError(
                Stage.IMAGE_DOWNLOAD,
                f"Could not download image_url ({e.__class__.__name__}: {e})",
            ) from e

        if not body:
            raise StageError(
                Stage.IMAGE_DOWNLOAD,
                "Downloaded image_url is empty",
                upstream_status=status_code,
            )

        mime_type = _normalize_mime(content_type) or fallback_mime
        logger.info(
            "Downloaded image url=%s mime=%s bytes=%d duration_ms=%d",
            url,
            mime_type,
            len(body),
            int((time.monotonic() - started_at) * 1000),
        )
        return EncodedImage(
            data_base64=base64.b64encode(body).decode("ascii"),
            mime_type=mime_type,
        )

    async def _fetch(self, url: str) -> tuple[int, str | None, bytes]:
        async with httpx.AsyncClient(
            timeout=self._timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            async with client.stream("GET", url, headers=self._headers) as response:
                if not response.is_success:
                    raise StageError(
                        Stage.IMAGE_DOWNLOAD,
                        f"Could not download image_url (status {response.status_code})",
                        upstream_status=response.status_code,
                    )
                body = await self._read_limited(response)
                return (
                    response.status_code,
                    response.headers.get("content-type"),
                    body,
                )

    async def _read_limited(self, response: httpx.Response) -> bytes:
        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self._max_image_bytes:
            raise StageError(
                Stage.IMAGE_DOWNLOAD,
                f"image_url exceeds max size of {self._max_image_bytes} bytes",
                upstream_status=response.status_code,
            )

        chunks: list[bytes] = []
        total = 0
        async for chunk in response.aiter_bytes():
            total += len(chunk)
            if total > self._max_image_bytes:
                raise StageError(
                    Stage.IMAGE_DOWNLOAD,
                    f"image_url exceeds max size of {self._max_image_bytes} bytes",
                    upstream_status=response.status_code,
                )
            chunks.append(chunk)
        return b"".join(chunks)
