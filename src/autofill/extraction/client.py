"""Inference service client."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Protocol

import httpx
import openai

from autofill.errors import ConfigError, Stage, StageError
from autofill.extraction.request import ExtractionRequest

logger = logging.getLogger(__name__)

DEFAULT_INFERENCE_TIMEOUT_SECONDS = 25.0


@dataclass(frozen=True, slots=True)
class RawUpstreamResponse:
    """Undecoded reply from the inference service."""

    status_code: int
    body: bytes

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class InferenceClient(Protocol):
    """Contract for sending one extraction request upstream."""

    @property
    def name(self) -> str:
        """Stable client name."""
        ...

    async def send(self, request: ExtractionRequest) -> RawUpstreamResponse:
        """Send the request once and return the raw reply."""
        ...


def _describe_connection_error(error: Exception) -> str:
    cause = error.__cause__
    if cause is not None and str(cause):
        return f"{error} ({cause.__class__.__name__}: {cause})"
    return str(error) or error.__class__.__name__


class OpenAIInferenceClient(InferenceClient):
    """OpenAI Responses API client with a hard client-side deadline.

    One attempt per call: SDK retries are disabled. Non-2xx replies are not
    failures here; their status and body are handed to the normalizer.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str | None = None,
        timeout_seconds: float = DEFAULT_INFERENCE_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ConfigError("Missing OPENAI_API_KEY")
        self._api_key = api_key.strip()
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def name(self) -> str:
        return "openai"

    async def send(self, request: ExtractionRequest) -> RawUpstreamResponse:
        started_at = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._post(request), timeout=self._timeout_seconds
            )
        except (TimeoutError, openai.APITimeoutError) as e:
            logger.warning(
                "Inference call timed out model=%s timeout_s=%s",
                request.model,
                self._timeout_seconds,
            )
            raise StageError(Stage.INFERENCE_CALL, "timeout") from e
        except openai.APIConnectionError as e:
            message = _describe_connection_error(e)
            logger.warning("Inference call failed model=%s: %s", request.model, message)
            raise StageError(Stage.INFERENCE_CALL, message) from e

        logger.info(
            "Inference call finished model=%s status=%d body_bytes=%d duration_ms=%d",
            request.model,
            response.status_code,
            len(response.body),
            int((time.monotonic() - started_at) * 1000),
        )
        return response

    async def _post(self, request: ExtractionRequest) -> RawUpstreamResponse:
        async with httpx.AsyncClient(
            transport=self._transport, timeout=self._timeout_seconds
        ) as http_client:
            client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                max_retries=0,
                timeout=self._timeout_seconds,
                http_client=http_client,
            )
            try:
                raw = await client.responses.with_raw_response.create(
                    **request.to_payload()
                )
            except openai.APIStatusError as e:
                return RawUpstreamResponse(
                    status_code=e.status_code, body=e.response.content
                )
            return RawUpstreamResponse(
                status_code=raw.http_response.status_code,
                body=raw.http_response.content,
            )
