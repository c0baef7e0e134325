"""Schema-constrained product attribute extraction."""

from autofill.extraction.client import (
    InferenceClient,
    OpenAIInferenceClient,
    RawUpstreamResponse,
)
from autofill.extraction.normalizer import ExtractionResult, ResultKind, normalize
from autofill.extraction.pipeline import AutofillPipeline
from autofill.extraction.request import (
    ExtractionRequest,
    build_request,
    default_instructions,
)
from autofill.extraction.schema import (
    ExtractionSchema,
    FieldSpec,
    FieldType,
    get_schema,
)
from autofill.extraction.types import AutofillRequest

__all__ = [
    "AutofillPipeline",
    "AutofillRequest",
    "ExtractionRequest",
    "ExtractionResult",
    "ExtractionSchema",
    "FieldSpec",
    "FieldType",
    "InferenceClient",
    "OpenAIInferenceClient",
    "RawUpstreamResponse",
    "ResultKind",
    "build_request",
    "default_instructions",
    "get_schema",
    "normalize",
]
