"""Autofill pipeline orchestration.

Resolver -> request builder -> inference client -> normalizer, strictly in
that order. Each call builds its own network clients, so concurrent calls
share no mutable state.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from autofill.errors import Stage, StageError, StageFailure
from autofill.extraction.client import InferenceClient, OpenAIInferenceClient
from autofill.extraction.limits import enforce_text_limits
from autofill.extraction.normalizer import ExtractionResult, normalize
from autofill.extraction.request import (
    DEFAULT_PROMPT,
    build_request,
    default_instructions,
)
from autofill.extraction.schema import ExtractionSchema, get_schema
from autofill.images.resolver import ImageSourceResolver

if TYPE_CHECKING:
    import httpx

    from autofill.config import AutofillConfig
    from autofill.extraction.types import AutofillRequest

logger = logging.getLogger(__name__)


class AutofillPipeline:
    """Extracts catalog attributes from one product photo per call."""

    def __init__(
        self,
        *,
        config: AutofillConfig,
        resolver: ImageSourceResolver | None = None,
        client: InferenceClient | None = None,
        inference_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._schema: ExtractionSchema = get_schema(config.extraction.schema_version)
        self._resolver = resolver or ImageSourceResolver(
            default_mime=config.extraction.default_mime,
            timeout_seconds=config.download.timeout_seconds,
            max_image_bytes=config.download.max_image_bytes,
            headers=config.download.headers(),
        )
        self._client = client
        self._inference_transport = inference_transport

        inference = config.inference
        self._instructions = inference.instructions or default_instructions(
            self._schema, inference.language
        )
        self._prompt = inference.prompt or DEFAULT_PROMPT

    @property
    def schema(self) -> ExtractionSchema:
        return self._schema

    def _get_client(self) -> InferenceClient:
        if self._client is not None:
            return self._client
        # Raises ConfigError when no credential is configured.
        return OpenAIInferenceClient(
            self._config.require_api_key(),
            base_url=self._config.openai.base_url,
            timeout_seconds=self._config.inference.timeout_seconds,
            transport=self._inference_transport,
        )

    async def extract(self, request: AutofillRequest) -> ExtractionResult:
        """Run the pipeline for one request.

        Raises:
            ConfigError: If the inference credential is missing.
            StageError: If any stage cannot complete.
        """
        started_at = time.monotonic()
        client = self._get_client()
        reference = request.to_reference()

        try:
            image = await self._resolver.resolve(reference, request.image_mime)
        except StageError:
            raise
        except Exception as e:
            logger.exception("Unexpected error resolving image")
            raise StageError(Stage.IMAGE_DOWNLOAD, str(e)) from e

        extraction_request = build_request(
            image,
            self._schema,
            self._instructions,
            self._config.inference.model,
            prompt=self._prompt,
            layout=self._config.extraction.layout,
            temperature=self._config.inference.temperature,
        )
        logger.info(
            "Extraction request built model=%s mime=%s image_bytes=%d layout=%s",
            extraction_request.model,
            image.mime_type,
            image.approx_bytes,
            extraction_request.layout,
        )

        try:
            raw = await client.send(extraction_request)
        except StageError:
            raise
        except Exception as e:
            logger.exception("Unexpected error calling inference service")
            raise StageError(Stage.INFERENCE_CALL, str(e)) from e

        try:
            result = normalize(raw.body, raw.status_code)
        except StageError:
            raise
        except Exception as e:
            logger.exception("Unexpected error normalizing inference reply")
            raise StageError(
                Stage.RESPONSE_PARSE, str(e), upstream_status=raw.status_code
            ) from e

        if self._config.extraction.enforce_text_limits:
            result = enforce_text_limits(
                result, self._schema, self._config.extraction.layout
            )

        logger.info(
            "Extraction done status=%d kind=%s warnings=%d duration_ms=%d",
            result.upstream_status,
            result.kind,
            len(result.warnings),
            int((time.monotonic() - started_at) * 1000),
        )
        return result

    async def run(self, request: AutofillRequest) -> ExtractionResult | StageFailure:
        """Like ``extract`` but returns stage failures as values."""
        try:
            return await self.extract(request)
        except StageError as e:
            logger.warning("Extraction failed: %s", e)
            return e.failure
