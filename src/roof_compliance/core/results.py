"""
Result, progress and persistence models for the Roof Compliance Engine.

Each rule returns its own result type; all of them share the
``AnalysisResult`` base and are discriminated on ``rule_type`` so
consumers can dispatch on the concrete class instead of probing fields.
"""

from collections.abc import Iterator
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..utils.precision import format_number
from .models import LineItem, RidgeCapQuality


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RuleType(str, Enum):
    """Business rules evaluated for every job."""

    HIP_RIDGE_CAP = "HIP_RIDGE_CAP"
    STARTER_STRIP = "STARTER_STRIP"
    DRIP_EDGE = "DRIP_EDGE"
    ICE_WATER_BARRIER = "ICE_WATER_BARRIER"


class RuleStatus(str, Enum):
    """Compliance verdict for a rule."""

    COMPLIANT = "COMPLIANT"
    SUPPLEMENT_NEEDED = "SUPPLEMENT_NEEDED"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    PARTIAL = "PARTIAL"  # Drip edge / gutter apron only


class VarianceType(str, Enum):
    SHORTAGE = "shortage"
    ADEQUATE = "adequate"
    EXCESS = "excess"


class MaterialStatus(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non-compliant"


class ProgressStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RidgeCapPath(str, Enum):
    """Branch of the ridge cap decision tree that produced the verdict."""

    LAMINATED_MISSING = "laminated_missing"
    LAMINATED_CUT_FROM_3TAB = "laminated_cut_from_3tab"
    LAMINATED_PURPOSE_BUILT = "laminated_purpose_built"
    THREE_TAB_MISSING = "3tab_missing"
    THREE_TAB_CUT_FROM_3TAB = "3tab_cut_from_3tab"
    THREE_TAB_FOUND = "3tab_found"
    UNKNOWN_ROOF_MISSING = "unknown_roof_missing"
    UNKNOWN_ROOF = "unknown_roof"


class StarterStripPath(str, Enum):
    """Branch of the starter strip decision tree."""

    STARTER_MISSING = "starter_missing"
    STARTER_CUT_FROM_WASTE = "starter_cut_from_waste"
    STARTER_UNIVERSAL = "starter_universal"
    STARTER_ANY_TYPE = "starter_any_type"
    STARTER_TYPE_UNCONFIRMED = "starter_type_unconfirmed"
    STARTER_UNVERIFIED = "starter_unverified"


class StarterType(str, Enum):
    UNIVERSAL = "universal"
    CUT_FROM_WASTE = "cut-from-waste"
    UNKNOWN = "unknown"


class EdgeComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    PARTIAL = "partial"
    NON_COMPLIANT = "non-compliant"


class CurrentSpecification(BaseModel):
    """Snapshot of the estimate line item a rule matched."""

    code: str | None = None
    description: str | None = None
    quantity: str | None = None
    rate: str | None = None
    total: str | None = None

    @classmethod
    def from_line_item(cls, item: LineItem) -> "CurrentSpecification":
        """Snapshot a line item for display in supplement paperwork."""
        unit = item.unit
        quantity = (
            f"{format_number(item.quantity.value)} {unit}" if item.quantity else None
        )
        rate = f"${item.unit_price:.2f}/{unit}" if item.unit_price is not None else None

        total_value = item.replacement_cost_value
        if total_value is None and item.unit_price is not None and item.quantity:
            total_value = item.quantity.value * item.unit_price
        total = f"${total_value:.2f}" if total_value is not None else None

        return cls(
            code=item.code,
            description=item.description or None,
            quantity=quantity,
            rate=rate,
            total=total,
        )


class EdgeSpecification(BaseModel):
    """Matched drip edge and gutter apron items, kept side by side."""

    drip_edge: CurrentSpecification | None = None
    gutter_apron: CurrentSpecification | None = None


class AnalysisResult(BaseModel):
    """Fields shared by every rule result."""

    rule_type: RuleType
    job_id: str
    status: RuleStatus
    confidence: float = Field(ge=0, le=1)
    reasoning: str

    estimate_quantity: float | None = None
    required_quantity: float | None = None
    unit: str = "LF"
    variance: str | None = None
    variance_amount: float | None = None  # Negative = shortage
    variance_type: VarianceType = VarianceType.ADEQUATE

    material_status: MaterialStatus = MaterialStatus.COMPLIANT
    cost_impact: float = Field(default=0.0, ge=0)
    unit_price: float | None = None

    current_specification: CurrentSpecification | None = None
    documentation_note: str = ""
    evidence_references: list[str] = Field(default_factory=list)
    supplement_recommendation: str | None = None

    analyzed_at: datetime = Field(default_factory=utc_now)

    @property
    def needs_supplement(self) -> bool:
        return self.status in (RuleStatus.SUPPLEMENT_NEEDED, RuleStatus.PARTIAL)


class RidgeCapResult(AnalysisResult):
    """Hip & ridge cap verdict."""

    rule_type: Literal[RuleType.HIP_RIDGE_CAP] = RuleType.HIP_RIDGE_CAP
    analysis_path: RidgeCapPath
    ridge_cap_quality: RidgeCapQuality | None = None
    measurement_basis: str | None = None


class EdgeComponentAnalysis(BaseModel):
    """One side of the drip edge / gutter apron rule."""

    component: Literal["drip_edge", "gutter_apron"]
    present: bool
    quantity: float = 0.0
    required_length: float | None = None
    shortfall: float = 0.0
    unit_rate: float
    cost_impact: float = 0.0
    material_status: MaterialStatus = MaterialStatus.COMPLIANT
    line_item: CurrentSpecification | None = None

    @property
    def verified(self) -> bool:
        """Whether the required length was known."""
        return self.required_length is not None


class DripEdgeResult(AnalysisResult):
    """Drip edge (rakes) and gutter apron (eaves) verdict."""

    rule_type: Literal[RuleType.DRIP_EDGE] = RuleType.DRIP_EDGE
    current_specification: EdgeSpecification | None = None  # type: ignore[assignment]
    drip_edge: EdgeComponentAnalysis
    gutter_apron: EdgeComponentAnalysis
    compliance_status: EdgeComplianceStatus

    @computed_field  # type: ignore[prop-decorator]
    @property
    def rake_shortfall(self) -> float:
        return self.drip_edge.shortfall

    @computed_field  # type: ignore[prop-decorator]
    @property
    def eave_shortfall(self) -> float:
        return self.gutter_apron.shortfall


class BarrierCalculation(BaseModel):
    """Inputs and outputs of the eave ice barrier coverage calculation."""

    total_eaves: float | None = None
    soffit_depth: float | None = None  # Inches
    wall_thickness: float | None = None  # Inches
    roof_pitch: str | None = None
    pitch_multiplier: float = 1.0
    required_width: float | None = None  # Inches from the eave edge
    calculated_coverage: float | None = None  # Square feet
    safety_margin: float = 5.0  # Percent
    defaults_applied: list[str] = Field(default_factory=list)


class IceWaterBarrierResult(AnalysisResult):
    """Ice & water barrier verdict."""

    rule_type: Literal[RuleType.ICE_WATER_BARRIER] = RuleType.ICE_WATER_BARRIER
    unit: str = "SF"
    calculation: BarrierCalculation = Field(default_factory=BarrierCalculation)
    barrier_type: Literal["ice-water-barrier", "modified-bitumen"] | None = None


class StarterStripResult(AnalysisResult):
    """Starter strip verdict."""

    rule_type: Literal[RuleType.STARTER_STRIP] = RuleType.STARTER_STRIP
    analysis_path: StarterStripPath
    starter_type: StarterType | None = None
    required_length: float | None = None


BusinessRuleResult = Annotated[
    Union[RidgeCapResult, DripEdgeResult, IceWaterBarrierResult, StarterStripResult],
    Field(discriminator="rule_type"),
]


class BusinessRuleResults(BaseModel):
    """Outcome of one orchestration run; a slot is None when its rule failed."""

    job_id: str
    run_id: str
    ridge_cap: RidgeCapResult | None = None
    starter_strip: StarterStripResult | None = None
    drip_edge: DripEdgeResult | None = None
    ice_and_water: IceWaterBarrierResult | None = None
    failed_rules: list[RuleType] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None

    def completed_results(self) -> Iterator[AnalysisResult]:
        """Iterate the results of rules that completed, in execution order."""
        for result in (self.ridge_cap, self.starter_strip, self.drip_edge, self.ice_and_water):
            if result is not None:
                yield result

    def get(self, rule_type: RuleType) -> AnalysisResult | None:
        """Get the result for a rule, if it completed."""
        for result in self.completed_results():
            if result.rule_type == rule_type:
                return result
        return None


class ProgressEvent(BaseModel):
    """Progress notification forwarded to observers; never persisted."""

    job_id: str
    rule_name: str
    status: ProgressStatus
    progress: int = Field(ge=0, le=100)
    message: str
    error: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class RuleAnalysisRecord(BaseModel):
    """Persisted, append-only rule analysis row."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    rule_type: RuleType
    run_id: str
    status: RuleStatus
    confidence: float
    reasoning: str
    cost_impact: float
    result: BusinessRuleResult
    analyzed_at: datetime

    @property
    def key(self) -> tuple[str, RuleType, str]:
        """Idempotency key for the record."""
        return (self.job_id, self.rule_type, self.run_id)


class RuleSnapshot(BaseModel):
    """Latest persisted state of one rule for a job."""

    rule_name: RuleType
    status: RuleStatus
    confidence: float
    cost_impact: float
    run_id: str
    analyzed_at: datetime
