"""Local enforcement of per-field text limits on structured results."""

from __future__ import annotations

import copy
import dataclasses
import logging
import re
from typing import Any

from autofill.extraction.normalizer import ExtractionResult
from autofill.extraction.schema import ExtractionSchema, FieldSpec, SchemaLayout

logger = logging.getLogger(__name__)

_LINE_BREAK_RE = re.compile(r"\s*[\r\n]+\s*")


def _locate(value: Any, spec: FieldSpec, layout: SchemaLayout) -> tuple[dict, str] | None:
    """Return the container holding the field and its key, if present."""
    if not isinstance(value, dict):
        return None
    if layout == "flat":
        fields = value.get("fields")
        if isinstance(fields, dict) and spec.path in fields:
            return fields, spec.path
        return None

    node = value
    for part in spec.parts[:-1]:
        node = node.get(part)
        if not isinstance(node, dict):
            return None
    if spec.name not in node:
        return None
    return node, spec.name


def clamp_text(text: str, max_chars: int) -> str:
    """Collapse line breaks and cut to ``max_chars``."""
    text = _LINE_BREAK_RE.sub(" ", text).strip()
    if len(text) > max_chars:
        text = text[:max_chars].rstrip()
    return text


def enforce_text_limits(
    result: ExtractionResult,
    schema: ExtractionSchema,
    layout: SchemaLayout = "nested",
) -> ExtractionResult:
    """Clamp overlong or multi-line text fields of a structured result.

    Non-structured results, missing paths and non-string values are left
    untouched. A new result is returned with each change appended to its
    ``warnings``; the input result and its value are not modified.
    """
    if not result.is_structured:
        return result

    value = copy.deepcopy(result.value)
    warnings = list(result.warnings)
    for spec in schema.text_fields:
        located = _locate(value, spec, layout)
        if located is None:
            continue
        container, key = located
        original = container[key]
        if not isinstance(original, str) or spec.max_chars is None:
            continue
        clamped = clamp_text(original, spec.max_chars)
        if clamped != original:
            container[key] = clamped
            warning = (
                f"{spec.path} adjusted to {len(clamped)} chars "
                f"(was {len(original)}, limit {spec.max_chars})"
            )
            warnings.append(warning)
            logger.warning("Text limit enforced: %s", warning)

    return dataclasses.replace(result, value=value, warnings=warnings)
