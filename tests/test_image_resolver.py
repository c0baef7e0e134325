"""Tests for image source resolution."""

import asyncio
import base64

import httpx
import pytest

from autofill.errors import Stage, StageError
from autofill.images import (
    EncodedImage,
    ImageSourceResolver,
    InlineBase64,
    RemoteURL,
    split_data_url,
)
from tests.conftest import PNG_BASE64, PNG_BYTES, mock_transport


def _no_network(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


class TestInlineImages:
    """Inline base64 payloads never touch the network."""

    async def test_raw_base64_wrapped_with_default_mime(self):
        resolver = ImageSourceResolver()
        image = await resolver.resolve(InlineBase64(data=PNG_BASE64))
        assert image.data_url == f"data:image/png;base64,{PNG_BASE64}"

    async def test_raw_base64_round_trips(self):
        resolver = ImageSourceResolver()
        image = await resolver.resolve(InlineBase64(data=PNG_BASE64), "image/jpeg")
        mime, payload = split_data_url(image.data_url)
        assert mime == "image/jpeg"
        assert payload == PNG_BASE64
        assert base64.b64decode(payload) == PNG_BYTES

    @pytest.mark.parametrize(
        "data_url",
        [
            f"data:image/jpeg;base64,{PNG_BASE64}",
            f"data:image/webp;base64,{PNG_BASE64}",
            f"data:image/png;base64,{PNG_BASE64}",
            f"data:image/jpeg;name=a.jpg;base64,{PNG_BASE64}",
            f"DATA:image/png;BASE64,{PNG_BASE64}",
        ],
    )
    async def test_data_url_is_kept_verbatim(self, data_url):
        resolver = ImageSourceResolver()
        image = await resolver.resolve(InlineBase64(data=data_url), "image/gif")
        assert image.data_url == data_url

        again = await resolver.resolve(InlineBase64(data=image.data_url))
        assert again.data_url == data_url

    async def test_data_url_parameters_do_not_leak_into_mime(self):
        resolver = ImageSourceResolver()
        image = await resolver.resolve(
            InlineBase64(data=f"data:Image/JPEG;name=a.jpg;base64,{PNG_BASE64}")
        )
        assert image.mime_type == "image/jpeg"
        assert split_data_url(image.data_url) == (
            "Image/JPEG;name=a.jpg",
            PNG_BASE64,
        )

    @pytest.mark.parametrize(
        "payload",
        [
            # 25 bytes, padding stripped
            base64.b64encode(PNG_BYTES + b"!").decode("ascii").rstrip("="),
            base64.urlsafe_b64encode(b"\xfb\xff\xfe\xfa\xbf").decode("ascii"),
            base64.urlsafe_b64encode(b"\xfb\xff").decode("ascii").rstrip("="),
        ],
    )
    async def test_unpadded_and_urlsafe_base64_forwarded_unchanged(self, payload):
        resolver = ImageSourceResolver()
        image = await resolver.resolve(InlineBase64(data=payload))
        assert image.data_base64 == payload
        assert image.data_url == f"data:image/png;base64,{payload}"

    async def test_mime_hint_beats_default(self):
        resolver = ImageSourceResolver()
        image = await resolver.resolve(
            InlineBase64(data=PNG_BASE64, mime_hint="image/webp"), "image/gif"
        )
        assert image.mime_type == "image/webp"

    async def test_whitespace_and_newlines_removed(self):
        wrapped = "\n".join(PNG_BASE64[i : i + 8] for i in range(0, len(PNG_BASE64), 8))
        resolver = ImageSourceResolver()
        image = await resolver.resolve(InlineBase64(data=f"  {wrapped} \r\n"))
        assert image.data_base64 == PNG_BASE64
        assert not any(ch.isspace() for ch in image.data_url)

    async def test_empty_payload_is_validation_error(self):
        resolver = ImageSourceResolver()
        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(InlineBase64(data="data:image/png;base64,   "))
        assert exc_info.value.stage is Stage.VALIDATION

    async def test_invalid_base64_is_validation_error(self):
        resolver = ImageSourceResolver()
        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(InlineBase64(data="not*base64!"))
        assert exc_info.value.stage is Stage.VALIDATION
        assert "base64" in exc_info.value.message

    async def test_oversized_inline_payload_rejected(self):
        resolver = ImageSourceResolver(max_image_bytes=4)
        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(InlineBase64(data=PNG_BASE64))
        assert exc_info.value.stage is Stage.VALIDATION

    async def test_missing_reference_is_validation_error(self):
        transport, seen = mock_transport(_no_network)
        resolver = ImageSourceResolver(transport=transport)
        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(None)
        assert exc_info.value.stage is Stage.VALIDATION
        assert seen == []


class TestRemoteImages:
    """Remote references are downloaded once with a bounded GET."""

    async def test_download_uses_content_type(self):
        transport, seen = mock_transport(
            lambda request: httpx.Response(
                200,
                content=PNG_BYTES,
                headers={"Content-Type": "image/webp; charset=binary"},
            )
        )
        resolver = ImageSourceResolver(transport=transport)

        image = await resolver.resolve(RemoteURL(url="https://cdn.example.com/a.webp"))

        assert image == EncodedImage(data_base64=PNG_BASE64, mime_type="image/webp")
        assert len(seen) == 1
        assert seen[0].method == "GET"
        assert seen[0].headers["User-Agent"] == "Mozilla/5.0"
        assert seen[0].headers["Accept"].startswith("image/*")

    async def test_download_without_content_type_uses_default(self):
        transport, _ = mock_transport(
            lambda request: httpx.Response(200, content=PNG_BYTES)
        )
        resolver = ImageSourceResolver(transport=transport)
        image = await resolver.resolve(
            RemoteURL(url="https://cdn.example.com/a"), "image/jpeg"
        )
        assert image.mime_type == "image/jpeg"

    @pytest.mark.parametrize("status", [403, 404, 500, 503])
    async def test_non_success_status_fails_with_status(self, status):
        transport, _ = mock_transport(lambda request: httpx.Response(status))
        resolver = ImageSourceResolver(transport=transport)

        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(RemoteURL(url="https://cdn.example.com/a.png"))

        assert exc_info.value.stage is Stage.IMAGE_DOWNLOAD
        assert exc_info.value.upstream_status == status
        assert str(status) in exc_info.value.message

    async def test_redirects_are_followed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old.png":
                return httpx.Response(302, headers={"Location": "/new.png"})
            return httpx.Response(
                200, content=PNG_BYTES, headers={"Content-Type": "image/png"}
            )

        transport, seen = mock_transport(handler)
        resolver = ImageSourceResolver(transport=transport)
        image = await resolver.resolve(RemoteURL(url="https://cdn.example.com/old.png"))
        assert image.data_base64 == PNG_BASE64
        assert [r.url.path for r in seen] == ["/old.png", "/new.png"]

    async def test_timeout_is_download_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        transport, _ = mock_transport(handler)
        resolver = ImageSourceResolver(transport=transport)
        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(RemoteURL(url="https://cdn.example.com/a.png"))
        assert exc_info.value.stage is Stage.IMAGE_DOWNLOAD
        assert exc_info.value.upstream_status is None

    async def test_connection_error_is_download_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("name resolution failed", request=request)

        transport, _ = mock_transport(handler)
        resolver = ImageSourceResolver(transport=transport)
        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(RemoteURL(url="https://cdn.example.com/a.png"))
        assert exc_info.value.stage is Stage.IMAGE_DOWNLOAD
        assert "name resolution failed" in exc_info.value.message

    async def test_oversized_download_rejected(self):
        transport, _ = mock_transport(
            lambda request: httpx.Response(200, content=b"x" * 64)
        )
        resolver = ImageSourceResolver(transport=transport, max_image_bytes=16)
        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(RemoteURL(url="https://cdn.example.com/big.png"))
        assert exc_info.value.stage is Stage.IMAGE_DOWNLOAD
        assert "max size" in exc_info.value.message

    async def test_empty_download_rejected(self):
        transport, _ = mock_transport(lambda request: httpx.Response(200, content=b""))
        resolver = ImageSourceResolver(transport=transport)
        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(RemoteURL(url="https://cdn.example.com/a.png"))
        assert exc_info.value.stage is Stage.IMAGE_DOWNLOAD

    @pytest.mark.parametrize(
        "url", ["ftp://cdn.example.com/a.png", "/relative/a.png", "cdn.example.com"]
    )
    async def test_non_http_url_rejected_before_io(self, url):
        transport, seen = mock_transport(_no_network)
        resolver = ImageSourceResolver(transport=transport)
        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(RemoteURL(url=url))
        assert exc_info.value.stage is Stage.VALIDATION
        assert seen == []

    async def test_slow_body_hits_total_deadline(self):
        async def trickle():
            for _ in range(40):
                yield b"x" * 8
                await asyncio.sleep(0.05)

        transport, _ = mock_transport(
            lambda request: httpx.Response(200, content=trickle())
        )
        resolver = ImageSourceResolver(transport=transport, timeout_seconds=0.2)

        with pytest.raises(StageError) as exc_info:
            await resolver.resolve(RemoteURL(url="https://cdn.example.com/slow.png"))

        assert exc_info.value.stage is Stage.IMAGE_DOWNLOAD
        assert exc_info.value.message == "Timed out downloading image_url"
        assert exc_info.value.upstream_status is None
