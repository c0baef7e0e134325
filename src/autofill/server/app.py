"""FastAPI application for the autofill gateway."""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from autofill import __version__
from autofill.errors import ConfigError, Stage, StageError, StageFailure
from autofill.extraction.pipeline import AutofillPipeline
from autofill.server.routes import autofill, health

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from autofill.config import AutofillConfig

logger = logging.getLogger(__name__)

_STAGE_STATUS = {
    Stage.VALIDATION: 400,
    Stage.IMAGE_DOWNLOAD: 400,
    Stage.INFERENCE_CALL: 502,
    Stage.RESPONSE_PARSE: 502,
}


def http_status_for(failure: StageFailure) -> int:
    """Map a stage failure to the HTTP status returned to the caller."""
    if failure.stage is Stage.INFERENCE_CALL and failure.message == "timeout":
        return 504
    return _STAGE_STATUS[failure.stage]


class AutofillServer:
    """Owns the FastAPI app and the pipeline it serves."""

    def __init__(
        self,
        config: "AutofillConfig",
        pipeline: AutofillPipeline | None = None,
    ):
        self._config = config
        self._pipeline = pipeline or AutofillPipeline(config=config)
        self._app = self._create_app()

    @property
    def app(self) -> FastAPI:
        """Get the FastAPI application."""
        return self._app

    def _error_response(self, failure: StageFailure) -> JSONResponse:
        return JSONResponse(
            status_code=http_status_for(failure),
            content=failure.to_dict(diagnostic=self._config.server.diagnostic_errors),
        )

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI) -> "AsyncIterator[None]":
            logger.info(
                "Starting autofill server model=%s schema=%s layout=%s",
                self._config.inference.model,
                self._config.extraction.schema_version,
                self._config.extraction.layout,
            )
            if self._config.resolve_api_key() is None:
                logger.warning("OPENAI_API_KEY missing, extraction requests will fail")
            yield
            logger.info("Shutting down autofill server")

        app = FastAPI(
            title="Catalog Autofill",
            description="Extracts catalog attributes from product photos",
            version=__version__,
            lifespan=lifespan,
        )

        app.state.server = self
        app.state.config = self._config
        app.state.pipeline = self._pipeline

        @app.exception_handler(StageError)
        async def stage_error_handler(_: Request, exc: StageError) -> JSONResponse:
            logger.warning("Autofill request failed: %s", exc)
            return self._error_response(exc.failure)

        @app.exception_handler(RequestValidationError)
        async def request_validation_handler(
            _: Request, exc: RequestValidationError
        ) -> JSONResponse:
            errors = exc.errors()
            if any(error.get("type") == "json_invalid" for error in errors):
                message = "Invalid JSON body"
            else:
                message = "; ".join(
                    f"{'.'.join(str(p) for p in error.get('loc', ()))}: {error.get('msg')}"
                    for error in errors
                )
            return self._error_response(StageFailure(Stage.VALIDATION, message))

        @app.exception_handler(ConfigError)
        async def config_error_handler(_: Request, exc: ConfigError) -> JSONResponse:
            logger.error("Configuration error: %s", exc)
            if self._config.server.diagnostic_errors:
                content = {"error": "configuration", "message": str(exc)}
            else:
                content = {"error": str(exc)}
            return JSONResponse(status_code=500, content=content)

        app.include_router(health.router, tags=["health"])
        app.include_router(autofill.router, prefix="/api", tags=["autofill"])

        return app


def create_app(
    config: "AutofillConfig",
    pipeline: AutofillPipeline | None = None,
) -> FastAPI:
    """Create the FastAPI application."""
    return AutofillServer(config=config, pipeline=pipeline).app
