"""
Ice & Water Barrier Module.
Calculates code-required eave barrier coverage (IRC R905.1.2) and audits
the estimate's ice & water line items against it.
"""

import logging
import math
import re

from ..config import DEFAULT_SETTINGS, RuleSettings
from ..core.item_matcher import ItemMatcher, RoofComponent, get_matcher
from ..core.models import ROOFING_SQUARE_UNITS, AnalysisInput, LineItem
from ..core.results import (
    BarrierCalculation,
    CurrentSpecification,
    IceWaterBarrierResult,
    MaterialStatus,
    RuleStatus,
    VarianceType,
)
from ..utils.precision import (
    format_currency,
    format_number,
    format_variance,
    round_to_precision,
    safe_multiply,
    safe_subtract,
)

logger = logging.getLogger(__name__)

PITCH_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*[/:]\s*(\d+(?:\.\d+)?)")

CODE_REFERENCE = "IRC R905.1.2"


def parse_pitch(pitch: str | None) -> tuple[float, float] | None:
    """Parse a pitch such as "6/12" or "6:12" into (rise, run)."""
    if not pitch:
        return None
    match = PITCH_PATTERN.search(pitch)
    if not match:
        return None
    rise, run = float(match.group(1)), float(match.group(2))
    if run == 0:
        return None
    return rise, run


def calculate_pitch_multiplier(pitch: str | None) -> float:
    """
    Slope length factor for a roof pitch: sqrt(1 + (rise/run)^2).

    Returns 1.0 when the pitch is missing or cannot be parsed.

    >>> calculate_pitch_multiplier("12/12")
    1.414
    """
    parsed = parse_pitch(pitch)
    if parsed is None:
        return 1.0
    rise, run = parsed
    return round(math.sqrt(1 + (rise / run) ** 2), 3)


class IceWaterBarrierAnalyzer:
    """Analyzes ice & water barrier coverage along the eaves."""

    COMPLIANT_CONFIDENCE = 0.9
    SUPPLEMENT_CONFIDENCE = 0.85
    INSUFFICIENT_DATA_CONFIDENCE = 0.1
    DEFAULT_PENALTY = 0.05  # Per defaulted calculation input

    def __init__(
        self,
        settings: RuleSettings | None = None,
        matcher: ItemMatcher | None = None,
    ) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.matcher = matcher or get_matcher()

    def analyze(self, data: AnalysisInput) -> IceWaterBarrierResult:
        """
        Analyze ice & water barrier compliance for one job.

        Args:
            data: Extraction bundle for the job

        Returns:
            Ice & water barrier result including the coverage calculation
        """
        measurements = data.roof_measurements
        eaves = (
            measurements.eave_length
            if measurements.eave_length is not None
            else measurements.total_eaves
        )

        if eaves is None:
            logger.info(
                "Ice & water analysis for job %s: no eave length, insufficient data",
                data.job_id,
            )
            return self._insufficient_data_result(
                data,
                BarrierCalculation(),
                "Eave length is required to calculate ice & water barrier coverage. "
                "Upload a roof measurement report with eave measurements.",
            )

        calculation = self.calculate_coverage(
            eaves,
            measurements.soffit_depth,
            measurements.wall_thickness,
            measurements.predominant_pitch,
        )
        items = self.matcher.find(data.line_items, RoofComponent.ICE_WATER_BARRIER)
        logger.debug(
            "Job %s: required coverage %s SF, %d barrier items, defaults %s",
            data.job_id,
            format_number(calculation.calculated_coverage or 0.0),
            len(items),
            calculation.defaults_applied,
        )

        if not items and not calculation.calculated_coverage:
            result = self._no_coverage_required_result(data, calculation)
        elif not items:
            result = self._missing_barrier_result(data, calculation)
        else:
            primary = self._primary_item(items)
            if primary.quantity is None:
                result = self._insufficient_data_result(
                    data,
                    calculation,
                    f'Ice & water barrier line item "{primary.description}" has no '
                    "quantity; coverage cannot be verified.",
                    primary,
                )
            else:
                result = self._quantity_check(data, calculation, primary)

        logger.info(
            "Ice & water analysis for job %s: %s (cost impact %s)",
            data.job_id,
            result.status.value,
            format_currency(result.cost_impact),
        )
        return result

    def calculate_coverage(
        self,
        eaves: float,
        soffit_depth: float | None,
        wall_thickness: float | None,
        pitch: str | None,
    ) -> BarrierCalculation:
        """
        Required barrier coverage in square feet.

        Width (in) = (soffit + wall + code minimum) x pitch multiplier x
        (1 + safety margin); coverage = eaves x width / 12.
        """
        defaults: list[str] = []

        if soffit_depth is None:
            soffit_depth = self.settings.default_soffit_depth
            defaults.append("soffit_depth")
        if wall_thickness is None:
            wall_thickness = self.settings.default_wall_thickness
            defaults.append("wall_thickness")
        if parse_pitch(pitch) is None:
            defaults.append("roof_pitch")

        multiplier = calculate_pitch_multiplier(pitch)
        base_width = soffit_depth + wall_thickness + self.settings.ice_barrier_code_minimum
        width = base_width * multiplier * (1 + self.settings.ice_water_safety_margin)
        coverage = round_to_precision(eaves * width / 12, 0)

        return BarrierCalculation(
            total_eaves=eaves,
            soffit_depth=soffit_depth,
            wall_thickness=wall_thickness,
            roof_pitch=pitch,
            pitch_multiplier=multiplier,
            required_width=round_to_precision(width, 2),
            calculated_coverage=coverage,
            safety_margin=self.settings.ice_water_safety_margin * 100,
            defaults_applied=defaults,
        )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _quantity_check(
        self,
        data: AnalysisInput,
        calculation: BarrierCalculation,
        primary: LineItem,
    ) -> IceWaterBarrierResult:
        required = calculation.calculated_coverage or 0.0
        current = primary.quantity.in_square_feet() if primary.quantity else 0.0
        variance_amount = safe_subtract(current, required)
        tolerance = self.settings.ice_water_tolerance_sf

        if variance_amount < -tolerance:
            shortfall = abs(variance_amount)
            unit_price = self._square_foot_price(primary)
            cost_impact = safe_multiply(shortfall, unit_price)
            return self._supplement_result(
                data,
                calculation,
                primary,
                estimate=current,
                variance_amount=variance_amount,
                cost_impact=cost_impact,
                unit_price=unit_price,
                reasoning=(
                    f"Current ice & water barrier ({format_number(current)} SF) is short of "
                    f"the {format_number(required)} SF required by {CODE_REFERENCE}. "
                    f"Additional {format_number(shortfall)} SF needed."
                ),
                recommendation=(
                    f"Add {format_number(shortfall)} SF ice & water barrier to meet "
                    f"{CODE_REFERENCE} requirements"
                ),
            )

        variance_type = (
            VarianceType.EXCESS if variance_amount > tolerance else VarianceType.ADEQUATE
        )
        if variance_amount >= 0:
            detail = f"exceeding the requirement by {format_number(variance_amount)} SF"
        else:
            detail = f"{format_number(abs(variance_amount))} SF short, within tolerance"

        return IceWaterBarrierResult(
            job_id=data.job_id,
            status=RuleStatus.COMPLIANT,
            confidence=self._confidence(self.COMPLIANT_CONFIDENCE, calculation),
            reasoning=(
                f"Ice & water barrier coverage ({format_number(current)} SF) meets "
                f"{CODE_REFERENCE} requirements ({format_number(required)} SF), {detail}."
            ),
            estimate_quantity=current,
            required_quantity=required,
            variance=format_variance(variance_amount, "SF"),
            variance_amount=variance_amount,
            variance_type=variance_type,
            material_status=MaterialStatus.COMPLIANT,
            cost_impact=0.0,
            unit_price=primary.unit_price,
            current_specification=CurrentSpecification.from_line_item(primary),
            calculation=calculation,
            barrier_type=self._barrier_type(primary),
            evidence_references=self._evidence_references(data, primary),
            documentation_note=(
                f"Current ice & water barrier specification meets {CODE_REFERENCE} "
                f"coverage requirements. {self._calculation_note(calculation)}"
            ),
            supplement_recommendation=None,
        )

    def _no_coverage_required_result(
        self, data: AnalysisInput, calculation: BarrierCalculation
    ) -> IceWaterBarrierResult:
        return IceWaterBarrierResult(
            job_id=data.job_id,
            status=RuleStatus.COMPLIANT,
            confidence=self._confidence(self.COMPLIANT_CONFIDENCE, calculation),
            reasoning=(
                "Roof report measures 0 LF of eaves; no ice & water barrier is required "
                f"by {CODE_REFERENCE}."
            ),
            estimate_quantity=0.0,
            required_quantity=0.0,
            variance=format_variance(0.0, "SF"),
            variance_amount=0.0,
            variance_type=VarianceType.ADEQUATE,
            material_status=MaterialStatus.COMPLIANT,
            cost_impact=0.0,
            calculation=calculation,
            evidence_references=self._evidence_references(data, None),
            documentation_note=self._calculation_note(calculation),
            supplement_recommendation=None,
        )

    def _missing_barrier_result(
        self, data: AnalysisInput, calculation: BarrierCalculation
    ) -> IceWaterBarrierResult:
        required = calculation.calculated_coverage or 0.0
        unit_price = self.settings.ice_water_unit_price
        return self._supplement_result(
            data,
            calculation,
            None,
            estimate=0.0,
            variance_amount=-required,
            cost_impact=safe_multiply(required, unit_price),
            unit_price=unit_price,
            reasoning=(
                "No ice & water barrier found in estimate. "
                f"{CODE_REFERENCE} requires {format_number(required)} SF of coverage "
                "along the eaves."
            ),
            recommendation=(
                f"Add {format_number(required)} SF ice & water barrier to meet "
                f"{CODE_REFERENCE} requirements"
            ),
        )

    def _supplement_result(
        self,
        data: AnalysisInput,
        calculation: BarrierCalculation,
        primary: LineItem | None,
        *,
        estimate: float,
        variance_amount: float,
        cost_impact: float,
        unit_price: float,
        reasoning: str,
        recommendation: str,
    ) -> IceWaterBarrierResult:
        return IceWaterBarrierResult(
            job_id=data.job_id,
            status=RuleStatus.SUPPLEMENT_NEEDED,
            confidence=self._confidence(self.SUPPLEMENT_CONFIDENCE, calculation),
            reasoning=reasoning,
            estimate_quantity=estimate,
            required_quantity=calculation.calculated_coverage,
            variance=format_variance(variance_amount, "SF"),
            variance_amount=variance_amount,
            variance_type=VarianceType.SHORTAGE,
            material_status=MaterialStatus.NON_COMPLIANT,
            cost_impact=cost_impact,
            unit_price=unit_price,
            current_specification=(
                CurrentSpecification.from_line_item(primary) if primary else None
            ),
            calculation=calculation,
            barrier_type=self._barrier_type(primary) if primary else None,
            evidence_references=self._evidence_references(data, primary),
            documentation_note=(
                f"{self._calculation_note(calculation)} Supplement: "
                f"{format_number(abs(variance_amount))} SF @ {format_currency(unit_price)}/SF = "
                f"{format_currency(cost_impact)}."
            ),
            supplement_recommendation=recommendation,
        )

    def _insufficient_data_result(
        self,
        data: AnalysisInput,
        calculation: BarrierCalculation,
        reasoning: str,
        primary: LineItem | None = None,
    ) -> IceWaterBarrierResult:
        return IceWaterBarrierResult(
            job_id=data.job_id,
            status=RuleStatus.INSUFFICIENT_DATA,
            confidence=self.INSUFFICIENT_DATA_CONFIDENCE,
            reasoning=reasoning,
            estimate_quantity=None,
            required_quantity=calculation.calculated_coverage,
            variance=None,
            variance_amount=None,
            cost_impact=0.0,
            current_specification=(
                CurrentSpecification.from_line_item(primary) if primary else None
            ),
            calculation=calculation,
            barrier_type=self._barrier_type(primary) if primary else None,
            evidence_references=self._evidence_references(data, primary),
            documentation_note="Unable to verify ice & water barrier coverage.",
            supplement_recommendation=None,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _primary_item(items: list[LineItem]) -> LineItem:
        """The barrier item with the largest quantity."""
        return max(
            items,
            key=lambda item: item.quantity.in_square_feet() if item.quantity else 0.0,
        )

    def _square_foot_price(self, item: LineItem) -> float:
        if not item.unit_price:
            return self.settings.ice_water_unit_price
        if item.unit.strip().upper() in ROOFING_SQUARE_UNITS:
            return round_to_precision(item.unit_price / 100, 4)
        return item.unit_price

    def _barrier_type(self, item: LineItem) -> str:
        if self.matcher.is_modified_bitumen(item):
            return "modified-bitumen"
        return "ice-water-barrier"

    def _confidence(self, base: float, calculation: BarrierCalculation) -> float:
        penalty = self.DEFAULT_PENALTY * len(calculation.defaults_applied)
        return round_to_precision(max(0.0, base - penalty), 2)

    @staticmethod
    def _calculation_note(calculation: BarrierCalculation) -> str:
        note = (
            f"{CODE_REFERENCE} requires ice barrier from the eave edge to 24 inches inside "
            f"the exterior wall. Calculation: {format_number(calculation.total_eaves or 0.0)} LF "
            f"eaves x {format_number(calculation.required_width or 0.0)} in width "
            f"(soffit {format_number(calculation.soffit_depth or 0.0)} in + wall "
            f"{format_number(calculation.wall_thickness or 0.0)} in + 24 in, pitch multiplier "
            f"{format_number(calculation.pitch_multiplier, 3)}, "
            f"{format_number(calculation.safety_margin)}% safety margin) = "
            f"{format_number(calculation.calculated_coverage or 0.0)} SF."
        )
        if calculation.defaults_applied:
            note += (
                " Default values used for: "
                f"{', '.join(name.replace('_', ' ') for name in calculation.defaults_applied)}."
            )
        return note

    @staticmethod
    def _evidence_references(data: AnalysisInput, primary: LineItem | None) -> list[str]:
        references: list[str] = []
        pages = data.roof_measurements.source_pages
        if pages:
            references.append(
                f"Eave measurements from page(s): {', '.join(str(p) for p in pages)}"
            )
        if primary is None:
            references.append("No ice & water barrier found in estimate")
        else:
            page = f"Page {primary.page} - " if primary.page is not None else ""
            references.append(
                f'Ice & water line item: {page}{primary.code or "N/A"} "{primary.description}"'
            )
        return references
