"""Autofill extraction route."""

import logging
import uuid

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import Response

from autofill.extraction.pipeline import AutofillPipeline
from autofill.extraction.types import AutofillRequest

logger = logging.getLogger(__name__)

router = APIRouter()

RESULT_KIND_HEADER = "X-Autofill-Result"


def get_pipeline(request: Request) -> AutofillPipeline:
    return request.app.state.pipeline


@router.post("/autofill")
async def autofill(
    body: AutofillRequest,
    pipeline: AutofillPipeline = Depends(get_pipeline),
    x_request_id: str | None = Header(default=None),
) -> Response:
    """Extract catalog attributes from one product photo.

    The response status mirrors the inference service. Structured results
    are JSON objects; degraded results (raw text or the upstream envelope)
    are passed through verbatim and flagged in the ``X-Autofill-Result``
    header.
    """
    request_id = x_request_id or str(uuid.uuid4())
    logger.info(
        "Autofill request accepted request_id=%s source=%s",
        request_id,
        "inline" if body.image_base64 else "url" if body.image_url else "none",
    )

    result = await pipeline.extract(body)

    headers = {RESULT_KIND_HEADER: result.kind.value, "X-Request-Id": request_id}
    if result.warnings:
        headers["X-Autofill-Warnings"] = str(len(result.warnings))
    return Response(
        content=result.to_body(),
        status_code=result.upstream_status,
        media_type="application/json",
        headers=headers,
    )
