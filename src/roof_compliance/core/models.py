"""
Input data models for the Roof Compliance Engine.
Uses Pydantic for validation; field aliases accept the camelCase keys
emitted by the extraction collaborator.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic.fields import FieldInfo

SQUARE_FOOT_UNITS = {"SF", "SQFT", "SQ FT", "SQUARE_FEET"}
ROOFING_SQUARE_UNITS = {"SQ", "SQS", "SQUARE", "SQUARES"}

_QUANTITY_TEXT_PATTERN = re.compile(r"(-?\d+(?:,\d{3})*(?:\.\d+)?)\s*([A-Za-z][A-Za-z _]*)?")


def _input_keys(name: str, field: FieldInfo) -> set[str]:
    """Every key a field may be populated from."""
    keys = {name, to_camel(name)}
    if field.alias:
        keys.add(field.alias)
    if isinstance(field.validation_alias, str):
        keys.add(field.validation_alias)
    elif isinstance(field.validation_alias, AliasChoices):
        keys.update(choice for choice in field.validation_alias.choices if isinstance(choice, str))
    return keys


class ExtractionModel(BaseModel):
    """Base for models produced by extraction; immutable once built."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        """Treat explicit nulls as absent so that non-null defaults apply."""
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        for name, field in cls.model_fields.items():
            if field.is_required() or field.default is None:
                continue
            for key in _input_keys(name, field):
                if key in cleaned and cleaned[key] is None:
                    del cleaned[key]
        return cleaned


class RidgeCapQuality(str, Enum):
    """Ridge cap material quality as tagged during extraction."""

    PURPOSE_BUILT = "purpose-built"
    HIGH_PROFILE = "high-profile"
    CUT_FROM_3TAB = "cut-from-3tab"
    UNKNOWN = "unknown"


class MeasurementSource(str, Enum):
    """Origin of a roof measurement report."""

    EAGLEVIEW = "eagleview"
    MANUAL_REPORT = "manual_report"
    OTHER = "other"


class RoofType(str, Enum):
    """Shingle roof classification."""

    LAMINATED = "laminated"
    THREE_TAB = "3-tab"
    OTHER = "other"


ROOF_TYPE_SYNONYMS = {
    "3tab": "3-tab",
    "3 tab": "3-tab",
    "three-tab": "3-tab",
    "three tab": "3-tab",
    "architectural": "laminated",
    "dimensional": "laminated",
    "laminate": "laminated",
}


class Quantity(ExtractionModel):
    """Numeric quantity with its unit of measure."""

    value: float
    unit: str = "LF"
    unit_normalized: str | None = None

    def in_square_feet(self) -> float:
        """Quantity expressed in square feet (roofing squares are 100 SF)."""
        if self.unit.strip().upper() in ROOFING_SQUARE_UNITS:
            return self.value * 100
        return self.value


class SourceReference(ExtractionModel):
    """Where in the source document a value was read."""

    page: int | None = None
    snippet: str = Field(
        default="",
        validation_alias=AliasChoices("snippet", "markdownSnippet", "markdown_snippet"),
    )


class LineItem(ExtractionModel):
    """Individual line item from a carrier estimate."""

    code: str | None = None
    description: str = ""
    quantity: Quantity | None = None
    unit_price: float | None = None
    tax: float | None = None
    replacement_cost_value: float | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "replacement_cost_value", "replacementCostValue", "rcv"
        ),
    )
    depreciation: float | None = None
    actual_cash_value: float | None = Field(
        default=None,
        validation_alias=AliasChoices("actual_cash_value", "actualCashValue", "acv"),
    )
    confidence: float = Field(default=1.0, ge=0, le=1)
    source: SourceReference | None = Field(
        default=None,
        validation_alias=AliasChoices("source", "sourceReference", "source_reference"),
    )

    # Roofing-specific tags
    is_ridge_cap_item: bool = False
    ridge_cap_quality: RidgeCapQuality | None = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: Any) -> Any:
        """Accept bare numbers and strings such as "6 LF"."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return {"value": value}
        if isinstance(value, str):
            match = _QUANTITY_TEXT_PATTERN.search(value)
            if not match:
                return None
            parsed: dict[str, Any] = {"value": float(match.group(1).replace(",", ""))}
            if match.group(2):
                parsed["unit"] = match.group(2).strip().upper()
            return parsed
        if isinstance(value, dict) and value.get("value") is None:
            return None
        return value

    @property
    def quantity_value(self) -> float:
        """Quantity value, 0.0 when the quantity is missing."""
        return self.quantity.value if self.quantity else 0.0

    @property
    def unit(self) -> str:
        return self.quantity.unit if self.quantity else "LF"

    @property
    def page(self) -> int | None:
        return self.source.page if self.source else None

    @property
    def search_text(self) -> str:
        """Code and description combined for pattern matching."""
        return f"{self.code or ''} {self.description}".strip()


class RoofMeasurements(ExtractionModel):
    """
    Roof geometry for one job.

    Every numeric field is nullable: None means "not measured", which is
    different from a measured zero.
    """

    ridge_length: float | None = None
    hip_length: float | None = None
    total_ridge_hip: float | None = None

    eave_length: float | None = None
    total_eaves: float | None = None
    rake_length: float | None = None
    total_rakes: float | None = None
    valley_length: float | None = None

    total_roof_area: float | None = None
    squares: float | None = None
    predominant_pitch: str | None = None
    number_of_stories: int | None = None

    # Inches; usually absent from aerial reports
    soffit_depth: float | None = None
    wall_thickness: float | None = None

    confidence: float = Field(default=0.5, ge=0, le=1)
    source_pages: list[int] = Field(default_factory=list)
    extracted_from: MeasurementSource = MeasurementSource.OTHER

    @property
    def eaves(self) -> float | None:
        """Total eave length in LF, preferring the explicit total."""
        if self.total_eaves is not None:
            return self.total_eaves
        return self.eave_length

    @property
    def rakes(self) -> float | None:
        """Total rake length in LF, preferring the explicit total."""
        if self.total_rakes is not None:
            return self.total_rakes
        return self.rake_length


class RoofTypeClassification(ExtractionModel):
    """Roof type determined from the estimate text."""

    roof_type: RoofType | None = None
    confidence: float = Field(default=0.0, ge=0, le=1)
    reasoning: str = ""
    evidence: list[str] = Field(default_factory=list)

    @field_validator("roof_type", mode="before")
    @classmethod
    def _coerce_roof_type(cls, value: Any) -> Any:
        """Map unrecognised labels to OTHER."""
        if value is None or isinstance(value, RoofType):
            return value
        label = str(value).strip().lower()
        if not label:
            return None
        label = ROOF_TYPE_SYNONYMS.get(label, label)
        known = {member.value for member in RoofType}
        return label if label in known else RoofType.OTHER


class AnalysisInput(BaseModel):
    """Everything one analyzer run needs for a single job."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str = Field(min_length=1)
    line_items: list[LineItem] = Field(default_factory=list)
    ridge_cap_items: list[LineItem] | None = None
    roof_measurements: RoofMeasurements = Field(default_factory=RoofMeasurements)
    roof_type: RoofTypeClassification | None = None

    @field_validator("line_items", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("roof_measurements", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any) -> Any:
        return RoofMeasurements() if value is None else value

    def model_post_init(self, __context: Any) -> None:
        """Derive the ridge cap subset from tagged line items if not provided."""
        if self.ridge_cap_items is None:
            self.ridge_cap_items = [
                item for item in self.line_items if item.is_ridge_cap_item
            ]


class JobExtraction(AnalysisInput):
    """Latest extraction bundle stored for a job."""

    extraction_id: str | None = None
    extracted_at: datetime | None = None
