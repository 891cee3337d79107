"""
Hip & Ridge Cap Module.
Audits ridge cap material type against the roof's shingle type and
ridge cap quantity against measured ridge and hip lengths.
"""

import logging

from ..config import DEFAULT_SETTINGS, RuleSettings
from ..core.models import (
    AnalysisInput,
    LineItem,
    MeasurementSource,
    RidgeCapQuality,
    RoofMeasurements,
    RoofType,
)
from ..core.results import (
    CurrentSpecification,
    MaterialStatus,
    RidgeCapPath,
    RidgeCapResult,
    RuleStatus,
    VarianceType,
)
from ..utils.precision import (
    format_currency,
    format_number,
    format_variance,
    round_to_precision,
    safe_add,
    safe_multiply,
    safe_subtract,
)

logger = logging.getLogger(__name__)

# How the required quantity was derived
BASIS_TOTAL_RIDGE_HIP = "total_ridge_hip"
BASIS_RIDGE_PLUS_HIP = "ridge_plus_hip"
BASIS_RIDGE_ONLY = "ridge_only"
BASIS_HIP_ONLY = "hip_only"
BASIS_ROOF_AREA = "roof_area_estimate"
BASIS_FALLBACK = "fallback_default"

ASTM_NOTE = "ASTM D3161/D7158 wind resistance standards"


def _measured(value: float | None) -> bool:
    return value is not None and value > 0


class RidgeCapAnalyzer:
    """
    Analyzes ridge cap compliance.

    Routes on roof type (laminated, 3-tab, other/unknown), checks material
    quality on each route, and converges on a shared quantity check against
    the roof report's ridge and hip lengths.
    """

    BASE_CONFIDENCE = 0.8
    MATERIAL_PATH_CONFIDENCE = 0.9
    MIN_CONFIDENCE = 0.6
    MAX_CONFIDENCE = 0.99
    ROOF_TYPE_CONFIDENCE_THRESHOLD = 0.8

    def __init__(self, settings: RuleSettings | None = None) -> None:
        self.settings = settings or DEFAULT_SETTINGS

    def analyze(self, data: AnalysisInput) -> RidgeCapResult:
        """
        Analyze ridge cap compliance for one job.

        Args:
            data: Extraction bundle for the job

        Returns:
            Ridge cap result carrying the decision path taken
        """
        ridge_items = list(data.ridge_cap_items or [])
        roof_type = data.roof_type.roof_type if data.roof_type else None

        logger.info(
            "Analyzing ridge cap compliance for job %s: roof type %s, %d ridge cap items",
            data.job_id,
            roof_type.value if roof_type else "unknown",
            len(ridge_items),
        )

        if roof_type == RoofType.LAMINATED:
            result = self._analyze_laminated(data, ridge_items)
        elif roof_type == RoofType.THREE_TAB:
            result = self._analyze_three_tab(data, ridge_items)
        else:
            result = self._analyze_unknown_roof(data, ridge_items)

        logger.info(
            "Ridge cap analysis for job %s: %s via %s (cost impact %s)",
            data.job_id,
            result.status.value,
            result.analysis_path.value,
            format_currency(result.cost_impact),
        )
        return result

    # ------------------------------------------------------------------
    # Roof type routes
    # ------------------------------------------------------------------

    def _analyze_laminated(
        self, data: AnalysisInput, ridge_items: list[LineItem]
    ) -> RidgeCapResult:
        """Laminated shingles require purpose-built ridge caps."""
        logger.debug("Job %s: laminated composition shingle path", data.job_id)

        if not ridge_items:
            return self._missing_material_result(
                data, RidgeCapPath.LAMINATED_MISSING, "laminated"
            )

        cut_items = self._cut_from_3tab_items(ridge_items)
        if cut_items:
            descriptions = ", ".join(item.description for item in cut_items)
            reasoning = (
                "Laminated composition shingle roofs require purpose-built ridge caps "
                "for proper performance and warranty compliance. Found ridge cap items "
                f'that appear to be cut from 3-tab shingles: "{descriptions}". These '
                "should be upgraded to purpose-built ridge caps that match the "
                f"architectural shingle profile and meet {ASTM_NOTE}."
            )
            return self._cut_from_3tab_result(
                data,
                ridge_items,
                cut_items,
                RidgeCapPath.LAMINATED_CUT_FROM_3TAB,
                reasoning,
                "Adjust estimate to use purpose-built ridge cap shingles",
            )

        return self._quantity_check(data, ridge_items, RidgeCapPath.LAMINATED_PURPOSE_BUILT)

    def _analyze_three_tab(
        self, data: AnalysisInput, ridge_items: list[LineItem]
    ) -> RidgeCapResult:
        """3-tab roofs still need ridge coverage; cut caps get an upgrade recommendation."""
        logger.debug("Job %s: 3-tab shingle path", data.job_id)

        if not ridge_items:
            return self._missing_material_result(
                data, RidgeCapPath.THREE_TAB_MISSING, "3-tab"
            )

        cut_items = self._cut_from_3tab_items(ridge_items)
        if cut_items:
            descriptions = ", ".join(item.description for item in cut_items)
            reasoning = (
                "While 3-tab roofs traditionally used ridge caps cut from 3-tab shingles, "
                "current manufacturer guidance calls for purpose-built ridge caps for "
                f'improved wind resistance and longevity. Found: "{descriptions}". '
                "Upgrade to purpose-built ridge caps that meet "
                f"{ASTM_NOTE} for enhanced performance."
            )
            return self._cut_from_3tab_result(
                data,
                ridge_items,
                cut_items,
                RidgeCapPath.THREE_TAB_CUT_FROM_3TAB,
                reasoning,
                "Upgrade to purpose-built ridge cap shingles",
            )

        return self._quantity_check(data, ridge_items, RidgeCapPath.THREE_TAB_FOUND)

    def _analyze_unknown_roof(
        self, data: AnalysisInput, ridge_items: list[LineItem]
    ) -> RidgeCapResult:
        """Unknown roof type: assume purpose-built caps are required."""
        logger.debug("Job %s: unknown roof type, conservative path", data.job_id)

        if not ridge_items:
            return self._missing_material_result(
                data, RidgeCapPath.UNKNOWN_ROOF_MISSING, "roof"
            )

        return self._quantity_check(data, ridge_items, RidgeCapPath.UNKNOWN_ROOF)

    # ------------------------------------------------------------------
    # Terminal results
    # ------------------------------------------------------------------

    def _missing_material_result(
        self, data: AnalysisInput, path: RidgeCapPath, roof_label: str
    ) -> RidgeCapResult:
        """No ridge cap line items at all: the full requirement is a supplement."""
        measurements = data.roof_measurements
        required, basis = self.required_quantity(measurements)
        unit_price = self.settings.ridge_cap_unit_price
        variance_amount = safe_subtract(0, required)
        cost_impact = safe_multiply(required, unit_price)

        reasoning = (
            f"No ridge cap line items found in the {roof_label} estimate. "
            f"{self._basis_sentence(measurements, required, basis)} "
            f"All roof types require ridge cap coverage, so the full {format_number(required)} LF "
            "must be added."
        )
        documentation_note = (
            f"Ridge cap is missing from the estimate. {self._source_label(measurements)} "
            f"documents {format_number(required)} LF of ridge/hip coverage required"
            f"{self._measurement_detail(measurements)}. Purpose-built ridge cap meeting "
            f"{ASTM_NOTE} should be added: {format_number(required)} LF @ "
            f"{format_currency(unit_price)}/LF = {format_currency(cost_impact)}."
        )

        return RidgeCapResult(
            job_id=data.job_id,
            status=RuleStatus.SUPPLEMENT_NEEDED,
            confidence=self._confidence(data, self.MATERIAL_PATH_CONFIDENCE, basis),
            reasoning=reasoning,
            analysis_path=path,
            estimate_quantity=0.0,
            required_quantity=required,
            variance=format_variance(variance_amount, "LF"),
            variance_amount=variance_amount,
            variance_type=VarianceType.SHORTAGE,
            material_status=MaterialStatus.NON_COMPLIANT,
            ridge_cap_quality=None,
            measurement_basis=basis,
            cost_impact=cost_impact,
            unit_price=unit_price,
            current_specification=None,
            evidence_references=self._evidence_references(data, []),
            documentation_note=documentation_note,
            supplement_recommendation=(
                f"Add {format_number(required)} LF purpose-built ridge cap"
            ),
        )

    def _cut_from_3tab_result(
        self,
        data: AnalysisInput,
        ridge_items: list[LineItem],
        cut_items: list[LineItem],
        path: RidgeCapPath,
        reasoning: str,
        recommendation: str,
    ) -> RidgeCapResult:
        """Ridge cap cut from 3-tab shingles: the material is replaced in full."""
        measurements = data.roof_measurements
        required, basis = self.required_quantity(measurements)
        estimate = self._estimate_quantity(ridge_items)
        variance_amount = safe_subtract(estimate, required)
        variance_type = self._variance_type(variance_amount)

        # Replacement is priced at the purpose-built rate, not the cut-shingle rate
        unit_price = self.settings.ridge_cap_unit_price
        cost_impact = safe_multiply(required, unit_price)

        documentation_note = (
            f"{reasoning} Replacement coverage: {format_number(required)} LF @ "
            f"{format_currency(unit_price)}/LF = {format_currency(cost_impact)}."
        )

        return RidgeCapResult(
            job_id=data.job_id,
            status=RuleStatus.SUPPLEMENT_NEEDED,
            confidence=self._confidence(data, self.MATERIAL_PATH_CONFIDENCE, basis),
            reasoning=reasoning,
            analysis_path=path,
            estimate_quantity=estimate,
            required_quantity=required,
            variance=format_variance(variance_amount, "LF"),
            variance_amount=variance_amount,
            variance_type=variance_type,
            material_status=MaterialStatus.NON_COMPLIANT,
            ridge_cap_quality=RidgeCapQuality.CUT_FROM_3TAB,
            measurement_basis=basis,
            cost_impact=cost_impact,
            unit_price=unit_price,
            current_specification=CurrentSpecification.from_line_item(cut_items[0]),
            evidence_references=self._evidence_references(data, ridge_items),
            documentation_note=documentation_note,
            supplement_recommendation=recommendation,
        )

    def _quantity_check(
        self, data: AnalysisInput, ridge_items: list[LineItem], path: RidgeCapPath
    ) -> RidgeCapResult:
        """Compare estimated ridge cap against measured ridge and hip length."""
        measurements = data.roof_measurements
        primary = ridge_items[0]
        required, basis = self.required_quantity(measurements)
        estimate = self._estimate_quantity(ridge_items)
        variance_amount = safe_subtract(estimate, required)
        variance_type = self._variance_type(variance_amount)

        unit_price = self._unit_price(ridge_items)
        if variance_type == VarianceType.SHORTAGE:
            status = RuleStatus.SUPPLEMENT_NEEDED
            cost_impact = safe_multiply(abs(variance_amount), unit_price)
            recommendation: str | None = (
                f"Add {format_number(abs(variance_amount))} LF ridge cap coverage"
            )
        else:
            status = RuleStatus.COMPLIANT
            cost_impact = 0.0
            recommendation = None

        return RidgeCapResult(
            job_id=data.job_id,
            status=status,
            confidence=self._confidence(data, self.BASE_CONFIDENCE, basis),
            reasoning=self._quantity_reasoning(
                measurements, estimate, required, basis, variance_amount, variance_type
            ),
            analysis_path=path,
            estimate_quantity=estimate,
            required_quantity=required,
            variance=format_variance(variance_amount, "LF"),
            variance_amount=variance_amount,
            variance_type=variance_type,
            material_status=MaterialStatus.COMPLIANT,
            ridge_cap_quality=primary.ridge_cap_quality,
            measurement_basis=basis,
            cost_impact=cost_impact,
            unit_price=unit_price,
            current_specification=CurrentSpecification.from_line_item(primary),
            evidence_references=self._evidence_references(data, ridge_items),
            documentation_note=self._quantity_documentation(
                measurements, estimate, required, variance_amount, variance_type, unit_price
            ),
            supplement_recommendation=recommendation,
        )

    # ------------------------------------------------------------------
    # Calculations
    # ------------------------------------------------------------------

    def required_quantity(self, measurements: RoofMeasurements) -> tuple[float, str]:
        """
        Required ridge cap in LF and the measurement basis used.

        Priority: explicit ridge/hip total, ridge + hip, either one alone,
        an estimate from roof area, then the configured fallback.
        """
        ridge = measurements.ridge_length
        hip = measurements.hip_length

        if _measured(measurements.total_ridge_hip):
            return float(measurements.total_ridge_hip), BASIS_TOTAL_RIDGE_HIP  # type: ignore[arg-type]
        if _measured(ridge) and _measured(hip):
            return safe_add(ridge, hip), BASIS_RIDGE_PLUS_HIP  # type: ignore[arg-type]
        if _measured(ridge):
            return float(ridge), BASIS_RIDGE_ONLY  # type: ignore[arg-type]
        if _measured(hip):
            return float(hip), BASIS_HIP_ONLY  # type: ignore[arg-type]
        if _measured(measurements.total_roof_area):
            area = measurements.total_roof_area or 0.0
            return round_to_precision(area * self.settings.ridge_per_roof_area, 0), BASIS_ROOF_AREA
        return self.settings.fallback_ridge_hip_lf, BASIS_FALLBACK

    def _variance_type(self, variance_amount: float) -> VarianceType:
        """Tolerance bands; the shortage boundary itself counts as adequate."""
        if variance_amount < -self.settings.ridge_cap_shortage_tolerance:
            return VarianceType.SHORTAGE
        if variance_amount > self.settings.ridge_cap_excess_tolerance:
            return VarianceType.EXCESS
        return VarianceType.ADEQUATE

    @staticmethod
    def _estimate_quantity(ridge_items: list[LineItem]) -> float:
        total = 0.0
        for item in ridge_items:
            total = safe_add(total, item.quantity_value)
        return total

    def _unit_price(self, ridge_items: list[LineItem]) -> float:
        for item in ridge_items:
            if item.unit_price:
                return item.unit_price
        return self.settings.ridge_cap_unit_price

    @staticmethod
    def _cut_from_3tab_items(ridge_items: list[LineItem]) -> list[LineItem]:
        return [
            item
            for item in ridge_items
            if item.ridge_cap_quality == RidgeCapQuality.CUT_FROM_3TAB
        ]

    def _confidence(self, data: AnalysisInput, base: float, basis: str) -> float:
        """Adjust confidence for measurement completeness and source reliability."""
        measurements = data.roof_measurements
        confidence = base

        if _measured(measurements.ridge_length) and _measured(measurements.hip_length):
            confidence += 0.1
        if measurements.extracted_from == MeasurementSource.EAGLEVIEW:
            confidence += 0.05
        if data.ridge_cap_items:
            confidence += 0.05
        if data.roof_type is None or (
            data.roof_type.confidence < self.ROOF_TYPE_CONFIDENCE_THRESHOLD
        ):
            confidence -= 0.1
        if basis == BASIS_FALLBACK:
            confidence -= 0.1

        confidence = min(self.MAX_CONFIDENCE, max(self.MIN_CONFIDENCE, confidence))
        return round_to_precision(confidence, 2)

    # ------------------------------------------------------------------
    # Text generation
    # ------------------------------------------------------------------

    @staticmethod
    def _source_label(measurements: RoofMeasurements) -> str:
        if measurements.extracted_from == MeasurementSource.EAGLEVIEW:
            return "EagleView report"
        return "Roof report"

    @staticmethod
    def _measurement_detail(measurements: RoofMeasurements) -> str:
        if _measured(measurements.ridge_length) and _measured(measurements.hip_length):
            return (
                f" (Ridges: {format_number(measurements.ridge_length)} LF + "  # type: ignore[arg-type]
                f"Hips: {format_number(measurements.hip_length)} LF)"  # type: ignore[arg-type]
            )
        return ""

    def _basis_sentence(
        self, measurements: RoofMeasurements, required: float, basis: str
    ) -> str:
        required_text = format_number(required)
        if basis == BASIS_RIDGE_PLUS_HIP:
            return (
                f"Ridges ({format_number(measurements.ridge_length)} LF) + "  # type: ignore[arg-type]
                f"Hips ({format_number(measurements.hip_length)} LF) = "  # type: ignore[arg-type]
                f"{required_text} LF total required."
            )
        if basis == BASIS_TOTAL_RIDGE_HIP:
            return f"Total ridge/hip measurement: {required_text} LF required."
        if basis == BASIS_RIDGE_ONLY:
            return f"Ridge measurement only (no hips reported): {required_text} LF required."
        if basis == BASIS_HIP_ONLY:
            return f"Hip measurement only (no ridges reported): {required_text} LF required."
        if basis == BASIS_ROOF_AREA:
            return (
                f"No ridge or hip lengths reported; estimated {required_text} LF from "
                f"{format_number(measurements.total_roof_area)} SF of roof area."  # type: ignore[arg-type]
            )
        return (
            f"No ridge, hip or roof area measurements available; using the default "
            f"requirement of {required_text} LF."
        )

    def _quantity_reasoning(
        self,
        measurements: RoofMeasurements,
        estimate: float,
        required: float,
        basis: str,
        variance_amount: float,
        variance_type: VarianceType,
    ) -> str:
        reasoning = (
            "Ridge cap quantity analysis based on roof measurements: "
            f"{self._basis_sentence(measurements, required, basis)} "
            f"Current estimate includes {format_number(estimate)} LF. "
        )

        if variance_type == VarianceType.SHORTAGE:
            reasoning += (
                f"Shortage of {format_number(abs(variance_amount))} LF identified - "
                "supplement needed."
            )
        elif variance_type == VarianceType.EXCESS:
            reasoning += (
                f"Estimate includes {format_number(variance_amount)} LF overage - "
                "adequate with waste factor."
            )
        elif variance_amount < 0:
            reasoning += (
                f"Estimate is {format_number(abs(variance_amount))} LF short, within the "
                f"{format_number(self.settings.ridge_cap_shortage_tolerance)} LF "
                "measurement tolerance."
            )
        else:
            reasoning += "Quantity is adequate for documented roof geometry."

        return reasoning

    def _quantity_documentation(
        self,
        measurements: RoofMeasurements,
        estimate: float,
        required: float,
        variance_amount: float,
        variance_type: VarianceType,
        unit_price: float,
    ) -> str:
        if variance_type != VarianceType.SHORTAGE:
            overage_percent = (
                round(abs(variance_amount) / required * 100) if required > 0 else 0
            )
            direction = "overage" if variance_amount >= 0 else "shortfall"
            return (
                f"Ridge cap coverage verified as adequate. Estimate includes "
                f"{format_number(estimate)} LF while measurements show "
                f"{format_number(required)} LF required. The "
                f"{format_number(abs(variance_amount))} LF {direction} ({overage_percent}%) "
                "is within installation tolerance. Material specification is compliant "
                f"with {ASTM_NOTE}."
            )

        additional = abs(variance_amount)
        additional_cost = safe_multiply(additional, unit_price)
        return (
            f"Ridge cap shortage identified. {self._source_label(measurements)} documents "
            f"{format_number(required)} LF total ridge/hip coverage required"
            f"{self._measurement_detail(measurements)}. Current estimate includes only "
            f"{format_number(estimate)} LF, creating a shortage of "
            f"{format_number(additional)} LF. Material type is correctly specified and "
            "should be increased to match documented roof geometry. Additional coverage "
            f"required: {format_number(additional)} LF @ {format_currency(unit_price)}/LF = "
            f"{format_currency(additional_cost)}."
        )

    @staticmethod
    def _evidence_references(data: AnalysisInput, ridge_items: list[LineItem]) -> list[str]:
        """Audit trail pointing at the source pages used."""
        references: list[str] = []

        pages = data.roof_measurements.source_pages
        if pages:
            references.append(
                f"Roof measurements from page(s): {', '.join(str(p) for p in pages)}"
            )

        for item in ridge_items:
            if item.page is not None:
                references.append(
                    f'Ridge cap line item: Page {item.page} - "{item.description}"'
                )

        if data.roof_type and data.roof_type.roof_type:
            references.append(
                f"Roof type classification: {data.roof_type.roof_type.value} "
                f"({round(data.roof_type.confidence * 100)}% confidence)"
            )

        return references
