"""Structured-output contract for catalog autofill.

The schema is a process-lifetime constant. Each field has a dotted path into
the catalog form, a type and, for text fields, a character limit. The JSON
Schema sent upstream is derived from these fields in one of two layouts:

- ``nested``: ``{"schema_version", "step2": {...}, "step5": {...}}``
- ``flat``: ``{"schema_version", "fields": {"<dotted path>": value}}``

Every object is closed (``additionalProperties: false``) with all properties
required, which is what strict structured generation demands.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Literal

SCHEMA_VERSION = "1.0"

SchemaLayout = Literal["nested", "flat"]


class FieldType(StrEnum):
    TEXT = "text"
    BOOLEAN = "boolean"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One extractable catalog field."""

    path: str
    type: FieldType
    rule: str
    max_chars: int | None = None

    @property
    def name(self) -> str:
        return self.path.rsplit(".", 1)[-1]

    @property
    def parts(self) -> tuple[str, ...]:
        return tuple(self.path.split("."))

    def json_schema(self) -> dict[str, Any]:
        if self.type is FieldType.BOOLEAN:
            return {"type": "boolean", "description": self.rule}
        return {
            "type": "string",
            "description": f"Max {self.max_chars} characters. {self.rule}",
        }


@dataclass(frozen=True, slots=True)
class ExtractionSchema:
    """Immutable, versioned set of fields the extraction must fill."""

    version: str
    fields: tuple[FieldSpec, ...]

    @property
    def text_fields(self) -> tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if f.type is FieldType.TEXT)

    @property
    def boolean_fields(self) -> tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if f.type is FieldType.BOOLEAN)

    def field(self, path: str) -> FieldSpec:
        for spec in self.fields:
            if spec.path == path:
                return spec
        raise KeyError(path)

    def format_name(self, layout: SchemaLayout = "nested") -> str:
        major = self.version.split(".", 1)[0]
        if layout == "flat":
            return f"catalog_autofill_fields_v{major}"
        return f"catalog_autofill_v{major}"

    def to_json_schema(self, layout: SchemaLayout = "nested") -> dict[str, Any]:
        """Render the closed-world JSON Schema for the requested layout."""
        root = _closed_object(
            {"schema_version": {"type": "string", "enum": [self.version]}}
        )
        if layout == "flat":
            root["properties"]["fields"] = _closed_object(
                {spec.path: spec.json_schema() for spec in self.fields}
            )
        elif layout == "nested":
            for spec in self.fields:
                node = root
                for part in spec.parts[:-1]:
                    properties = node["properties"]
                    if part not in properties:
                        properties[part] = _closed_object({})
                    node = properties[part]
                node["properties"][spec.name] = spec.json_schema()
        else:
            raise ValueError(f"Unknown schema layout: {layout}")
        _fill_required(root)
        return root


def _closed_object(properties: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "required": [],
        "properties": properties,
    }


def _fill_required(node: dict[str, Any]) -> None:
    if node.get("type") != "object":
        return
    node["required"] = list(node["properties"])
    for child in node["properties"].values():
        _fill_required(child)


_GROUP1 = "step2.productInformation.group1"
_MATERIALS = "step2.productInformation.productMaterials"

_V1_FIELDS = (
    FieldSpec(
        path=f"{_GROUP1}.productDescription",
        type=FieldType.TEXT,
        max_chars=30,
        rule="Short product description. '' if it cannot be determined without guessing. No line breaks.",
    ),
    FieldSpec(
        path=f"{_GROUP1}.productName",
        type=FieldType.TEXT,
        max_chars=20,
        rule="Only if the name is visible in the image; otherwise ''.",
    ),
    FieldSpec(
        path=f"{_GROUP1}.productBrand",
        type=FieldType.TEXT,
        max_chars=20,
        rule="Only if the brand is visible in the image; otherwise ''.",
    ),
    FieldSpec(
        path=f"{_GROUP1}.productUseAndApplication",
        type=FieldType.TEXT,
        max_chars=100,
        rule="Brief, coherent intended use; '' when in doubt.",
    ),
    FieldSpec(
        path="step2.productInformation.detailedProductDescription.productDescriptionExtended",
        type=FieldType.TEXT,
        max_chars=600,
        rule="Detailed coherent description. Do not invent technical data or certifications. No line breaks.",
    ),
    FieldSpec(
        path="step2.productInformation.generalInformation.isElectric",
        type=FieldType.BOOLEAN,
        rule="true ONLY with visible evidence; otherwise false.",
    ),
    FieldSpec(
        path="step2.productInformation.productUses.foodContact",
        type=FieldType.BOOLEAN,
        rule="true ONLY if clearly meant for food or drinks; otherwise false.",
    ),
    FieldSpec(
        path=f"{_MATERIALS}.containsPaper",
        type=FieldType.BOOLEAN,
        rule="true ONLY if paper or cardboard is visible; false when in doubt.",
    ),
    FieldSpec(
        path=f"{_MATERIALS}.containsGlass",
        type=FieldType.BOOLEAN,
        rule="true ONLY if glass is visible; false when in doubt.",
    ),
    FieldSpec(
        path=f"{_MATERIALS}.containsMetal",
        type=FieldType.BOOLEAN,
        rule="true ONLY if metal is visible; false when in doubt.",
    ),
    FieldSpec(
        path=f"{_MATERIALS}.containsTextiles",
        type=FieldType.BOOLEAN,
        rule="true ONLY if textile is visible; false when in doubt.",
    ),
    FieldSpec(
        path=f"{_MATERIALS}.containsBiodegradableMaterial",
        type=FieldType.BOOLEAN,
        rule="true ONLY with clear evidence (visible or on a label); false when in doubt.",
    ),
    FieldSpec(
        path="step5.productInfo.productWarning.productWarning",
        type=FieldType.TEXT,
        max_chars=600,
        rule=(
            "Generic risks, prohibitions and care notes coherent with the product. "
            "Only if the product type is clearly identified; otherwise ''. No line breaks."
        ),
    ),
)

_REGISTRY: dict[str, ExtractionSchema] = {
    SCHEMA_VERSION: ExtractionSchema(version=SCHEMA_VERSION, fields=_V1_FIELDS),
}


def get_schema(version: str = SCHEMA_VERSION) -> ExtractionSchema:
    """Look up a registered schema.

    Raises:
        ValueError: If the version is not registered.
    """
    try:
        return _REGISTRY[version]
    except KeyError:
        available = ", ".join(sorted(_REGISTRY))
        raise ValueError(
            f"Unknown schema version '{version}'. Available: {available}"
        ) from None
