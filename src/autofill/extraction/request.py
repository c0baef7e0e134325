"""Build schema-constrained inference requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from autofill.extraction.schema import ExtractionSchema, SchemaLayout
from autofill.images.types import EncodedImage

DEFAULT_MODEL = "gpt-4o-2024-08-06"
DEFAULT_PROMPT = "Complete the fields from the product image."
DEFAULT_LANGUAGE = "Spanish"


def default_instructions(
    schema: ExtractionSchema, language: str | None = DEFAULT_LANGUAGE
) -> str:
    """Render the constraints the JSON Schema cannot express structurally."""
    limits = ", ".join(f"{f.name}<={f.max_chars}" for f in schema.text_fields)
    lines = [
        "Return ONLY valid JSON that matches the schema exactly.",
        f"Write text values in {language}." if language else "",
        "Do not invent or guess.",
        "Strings: '' if the value cannot be determined without inference.",
        "Booleans: true only with clear, unambiguous visual evidence; otherwise false.",
        f"Character limits: {limits}.",
        "Count characters including spaces. Rephrase to fit instead of truncating.",
        "No line breaks in any string. No markdown. JSON only.",
    ]
    return " ".join(line for line in lines if line)


@dataclass(frozen=True, slots=True)
class ExtractionRequest:
    """One outbound inference request. Built per call and never reused."""

    model: str
    instructions: str
    schema: ExtractionSchema
    image: EncodedImage
    prompt: str = DEFAULT_PROMPT
    layout: SchemaLayout = "nested"
    temperature: float | None = None

    def to_payload(self) -> dict[str, Any]:
        """Render the Responses API request body."""
        payload: dict[str, Any] = {
            "model": self.model,
            "instructions": self.instructions,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": self.prompt},
                        {"type": "input_image", "image_url": self.image.data_url},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": self.schema.format_name(self.layout),
                    "strict": True,
                    "schema": self.schema.to_json_schema(self.layout),
                }
            },
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        return payload


def build_request(
    image: EncodedImage,
    schema: ExtractionSchema,
    instructions: str,
    model: str = DEFAULT_MODEL,
    *,
    prompt: str = DEFAULT_PROMPT,
    layout: SchemaLayout = "nested",
    temperature: float | None = None,
) -> ExtractionRequest:
    """Combine an image, the schema and instruction text into one request.

    Raises:
        ValueError: If the image payload is empty.
    """
    if not image.data_base64:
        raise ValueError("image payload is empty")
    if not model.strip():
        raise ValueError("model is required")
    return ExtractionRequest(
        model=model.strip(),
        instructions=instructions,
        schema=schema,
        image=image,
        prompt=prompt,
        layout=layout,
        temperature=temperature,
    )
