"""Reduce an inference reply envelope to one deterministic result.

Candidate text is located by an ordered list of extraction attempts, each
returning the text or None to let the next one try:

1. a top-level string ``output_text``
2. the first ``output_text`` part inside the ``output`` items

A candidate that parses as JSON yields a ``structured`` result; one that does
not is returned verbatim as ``raw_text``. When no attempt finds a candidate,
the whole envelope is returned as ``envelope``. Only an empty or undecodable
body is a ``response_parse`` failure.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from autofill.errors import Stage, StageError

logger = logging.getLogger(__name__)


class ResultKind(StrEnum):
    STRUCTURED = "structured"
    RAW_TEXT = "raw_text"
    ENVELOPE = "envelope"


@dataclass(slots=True)
class ExtractionResult:
    """What the caller receives on success, degraded or not."""

    kind: ResultKind
    value: Any
    upstream_status: int
    warnings: list[str] = field(default_factory=list)

    @property
    def is_structured(self) -> bool:
        return self.kind is ResultKind.STRUCTURED

    def to_body(self) -> str:
        """Serialize for the response body; degraded results go out verbatim."""
        if self.kind is ResultKind.STRUCTURED:
            return json.dumps(self.value, ensure_ascii=False)
        return str(self.value)


def _from_output_text(envelope: Any) -> str | None:
    if not isinstance(envelope, dict):
        return None
    text = envelope.get("output_text")
    return text if isinstance(text, str) else None


def _from_output_items(envelope: Any) -> str | None:
    if not isinstance(envelope, dict):
        return None
    items = envelope.get("output")
    if not isinstance(items, list):
        return None
    for item in items:
        if not isinstance(item, dict):
            continue
        if item.get("type") == "output_text" and isinstance(item.get("text"), str):
            return item["text"]
        for part in item.get("content") or []:
            if (
                isinstance(part, dict)
                and part.get("type") == "output_text"
                and isinstance(part.get("text"), str)
            ):
                return part["text"]
    return None


_ATTEMPTS: tuple[Callable[[Any], str | None], ...] = (
    _from_output_text,
    _from_output_items,
)


def find_candidate(envelope: Any) -> str | None:
    """Run the extraction attempts in order; blank text counts as missing.

    The first non-blank candidate is returned exactly as found.
    """
    for attempt in _ATTEMPTS:
        candidate = attempt(envelope)
        if candidate is not None and candidate.strip():
            return candidate
    return None


def _decode_body(body: bytes | str) -> str:
    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StageError(
                Stage.RESPONSE_PARSE, f"Upstream body is not valid UTF-8: {e.reason}"
            ) from e
    else:
        text = body
    if not text.strip():
        raise StageError(Stage.RESPONSE_PARSE, "Upstream body is empty")
    return text


def normalize(body: bytes | str, upstream_status: int) -> ExtractionResult:
    """Turn a raw inference reply into an ``ExtractionResult``.

    Raises:
        StageError: ``response_parse`` when the body is empty or undecodable.
    """
    text = _decode_body(body)

    try:
        envelope = json.loads(text)
    except json.JSONDecodeError:
        logger.warning(
            "Upstream body is not JSON status=%d, returning envelope verbatim",
            upstream_status,
        )
        return ExtractionResult(
            kind=ResultKind.ENVELOPE, value=text, upstream_status=upstream_status
        )

    candidate = find_candidate(envelope)
    if candidate is None:
        logger.warning(
            "No output text in upstream reply status=%d, returning envelope verbatim",
            upstream_status,
        )
        return ExtractionResult(
            kind=ResultKind.ENVELOPE, value=text, upstream_status=upstream_status
        )

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        logger.warning(
            "Output text is not JSON status=%d chars=%d, returning raw text",
            upstream_status,
            len(candidate),
        )
        return ExtractionResult(
            kind=ResultKind.RAW_TEXT, value=candidate, upstream_status=upstream_status
        )

    return ExtractionResult(
        kind=ResultKind.STRUCTURED, value=parsed, upstream_status=upstream_status
    )
