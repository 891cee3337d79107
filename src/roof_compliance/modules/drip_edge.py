"""
Drip Edge & Gutter Apron Module.
Audits edge protection: drip edge along the rakes and gutter apron along
the eaves, each measured against the roof report.
"""

import logging

from ..config import DEFAULT_SETTINGS, RuleSettings
from ..core.item_matcher import ItemMatcher, RoofComponent, get_matcher
from ..core.models import AnalysisInput, LineItem
from ..core.results import (
    CurrentSpecification,
    DripEdgeResult,
    EdgeComplianceStatus,
    EdgeComponentAnalysis,
    EdgeSpecification,
    MaterialStatus,
    RuleStatus,
    VarianceType,
)
from ..utils.precision import (
    format_currency,
    format_number,
    format_variance,
    safe_add,
    safe_multiply,
    safe_subtract,
)

logger = logging.getLogger(__name__)

COMPONENT_LABELS = {
    "drip_edge": ("drip edge", "rakes"),
    "gutter_apron": ("gutter apron", "eaves"),
}


class DripEdgeAnalyzer:
    """
    Analyzes drip edge and gutter apron coverage.

    The two sides are judged independently: one deficient side is a
    partial finding, both deficient is a full supplement.
    """

    VERIFIED_CONFIDENCE = 0.95
    PARTIAL_DATA_CONFIDENCE = 0.75
    INSUFFICIENT_DATA_CONFIDENCE = 0.2

    def __init__(
        self,
        settings: RuleSettings | None = None,
        matcher: ItemMatcher | None = None,
    ) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.matcher = matcher or get_matcher()

    def analyze(self, data: AnalysisInput) -> DripEdgeResult:
        """
        Analyze edge protection for one job.

        Args:
            data: Extraction bundle for the job

        Returns:
            Drip edge result with a breakdown per side
        """
        measurements = data.roof_measurements
        required_rakes = measurements.rakes
        required_eaves = measurements.eaves

        drip_items = self.matcher.find(data.line_items, RoofComponent.DRIP_EDGE)
        apron_items = self.matcher.find(data.line_items, RoofComponent.GUTTER_APRON)
        logger.debug(
            "Job %s: %d drip edge items, %d gutter apron items, rakes=%s eaves=%s",
            data.job_id,
            len(drip_items),
            len(apron_items),
            required_rakes,
            required_eaves,
        )

        drip_edge = self._analyze_component(
            "drip_edge", drip_items, required_rakes, self.settings.drip_edge_unit_price
        )
        gutter_apron = self._analyze_component(
            "gutter_apron", apron_items, required_eaves, self.settings.gutter_apron_unit_price
        )

        if required_rakes is None and required_eaves is None:
            result = self._insufficient_data_result(data, drip_edge, gutter_apron)
        else:
            result = self._build_result(data, drip_edge, gutter_apron)

        logger.info(
            "Drip edge analysis for job %s: %s (cost impact %s)",
            data.job_id,
            result.status.value,
            format_currency(result.cost_impact),
        )
        return result

    def _analyze_component(
        self,
        component: str,
        items: list[LineItem],
        required: float | None,
        unit_rate: float,
    ) -> EdgeComponentAnalysis:
        """Measure one side against its required length."""
        installed = 0.0
        for item in items:
            installed = safe_add(installed, item.quantity_value)

        shortfall = 0.0
        if required is not None:
            gap = max(0.0, safe_subtract(required, installed))
            if gap > self.settings.edge_tolerance_lf:
                shortfall = gap

        return EdgeComponentAnalysis(
            component=component,  # type: ignore[arg-type]
            present=bool(items),
            quantity=installed,
            required_length=required,
            shortfall=shortfall,
            unit_rate=unit_rate,
            cost_impact=safe_multiply(shortfall, unit_rate),
            material_status=(
                MaterialStatus.NON_COMPLIANT if shortfall > 0 else MaterialStatus.COMPLIANT
            ),
            line_item=CurrentSpecification.from_line_item(items[0]) if items else None,
        )

    def _build_result(
        self,
        data: AnalysisInput,
        drip_edge: EdgeComponentAnalysis,
        gutter_apron: EdgeComponentAnalysis,
    ) -> DripEdgeResult:
        sides = (drip_edge, gutter_apron)
        verified = [side for side in sides if side.verified]
        deficient = [side for side in sides if side.shortfall > 0]

        if not deficient:
            status = RuleStatus.COMPLIANT
            compliance_status = EdgeComplianceStatus.COMPLIANT
        elif len(deficient) == 1:
            status = RuleStatus.PARTIAL
            compliance_status = EdgeComplianceStatus.PARTIAL
        else:
            status = RuleStatus.SUPPLEMENT_NEEDED
            compliance_status = EdgeComplianceStatus.NON_COMPLIANT

        installed = 0.0
        required = 0.0
        for side in verified:
            installed = safe_add(installed, side.quantity)
            required = safe_add(required, side.required_length or 0.0)

        total_shortfall = safe_add(drip_edge.shortfall, gutter_apron.shortfall)
        if total_shortfall > 0:
            variance_amount = -total_shortfall
            variance_type = VarianceType.SHORTAGE
        else:
            variance_amount = safe_subtract(installed, required)
            if variance_amount > required * self.settings.edge_excess_ratio:
                variance_type = VarianceType.EXCESS
            else:
                variance_type = VarianceType.ADEQUATE

        cost_impact = safe_add(drip_edge.cost_impact, gutter_apron.cost_impact)
        confidence = (
            self.VERIFIED_CONFIDENCE
            if len(verified) == len(sides)
            else self.PARTIAL_DATA_CONFIDENCE
        )

        return DripEdgeResult(
            job_id=data.job_id,
            status=status,
            confidence=confidence,
            reasoning=self._reasoning(drip_edge, gutter_apron),
            estimate_quantity=installed,
            required_quantity=required,
            variance=format_variance(variance_amount, "LF"),
            variance_amount=variance_amount,
            variance_type=variance_type,
            material_status=(
                MaterialStatus.NON_COMPLIANT if deficient else MaterialStatus.COMPLIANT
            ),
            cost_impact=cost_impact,
            unit_price=None,
            current_specification=EdgeSpecification(
                drip_edge=drip_edge.line_item, gutter_apron=gutter_apron.line_item
            ),
            drip_edge=drip_edge,
            gutter_apron=gutter_apron,
            compliance_status=compliance_status,
            evidence_references=self._evidence_references(data),
            documentation_note=self._documentation_note(drip_edge, gutter_apron, cost_impact),
            supplement_recommendation=self._recommendation(deficient),
        )

    def _insufficient_data_result(
        self,
        data: AnalysisInput,
        drip_edge: EdgeComponentAnalysis,
        gutter_apron: EdgeComponentAnalysis,
    ) -> DripEdgeResult:
        return DripEdgeResult(
            job_id=data.job_id,
            status=RuleStatus.INSUFFICIENT_DATA,
            confidence=self.INSUFFICIENT_DATA_CONFIDENCE,
            reasoning=(
                "Rake and eave lengths are not available from the roof report; "
                "edge protection coverage cannot be verified."
            ),
            estimate_quantity=safe_add(drip_edge.quantity, gutter_apron.quantity),
            required_quantity=None,
            variance=None,
            variance_amount=None,
            variance_type=VarianceType.ADEQUATE,
            material_status=MaterialStatus.COMPLIANT,
            cost_impact=0.0,
            current_specification=EdgeSpecification(
                drip_edge=drip_edge.line_item, gutter_apron=gutter_apron.line_item
            ),
            drip_edge=drip_edge,
            gutter_apron=gutter_apron,
            compliance_status=EdgeComplianceStatus.COMPLIANT,
            evidence_references=self._evidence_references(data),
            documentation_note=(
                "Upload a roof measurement report with rake and eave lengths to "
                "verify drip edge and gutter apron coverage."
            ),
            supplement_recommendation=None,
        )

    @staticmethod
    def _side_sentence(side: EdgeComponentAnalysis) -> str:
        label, edge = COMPONENT_LABELS[side.component]
        if not side.verified:
            return f"{edge.capitalize()} length not reported; {label} unverified."
        if side.required_length == 0 and not side.present:
            return f"No {edge} measured; {label} not required."
        required = format_number(side.required_length)  # type: ignore[arg-type]
        if not side.present:
            return f"No {label} found for {required} LF of {edge}."
        installed = format_number(side.quantity)
        if side.shortfall > 0:
            return (
                f"{label.capitalize()} covers {installed} LF of {required} LF {edge}, "
                f"short {format_number(side.shortfall)} LF."
            )
        return f"{label.capitalize()} covers {installed} LF of {required} LF {edge}."

    def _reasoning(
        self, drip_edge: EdgeComponentAnalysis, gutter_apron: EdgeComponentAnalysis
    ) -> str:
        return (
            "Edge protection requires drip edge on the rakes and gutter apron on the eaves. "
            f"{self._side_sentence(drip_edge)} {self._side_sentence(gutter_apron)}"
        )

    @staticmethod
    def _documentation_note(
        drip_edge: EdgeComponentAnalysis,
        gutter_apron: EdgeComponentAnalysis,
        cost_impact: float,
    ) -> str:
        lines: list[str] = []
        for side in (drip_edge, gutter_apron):
            if side.shortfall <= 0:
                continue
            label, edge = COMPONENT_LABELS[side.component]
            lines.append(
                f"Add {format_number(side.shortfall)} LF {label} along the {edge} @ "
                f"{format_currency(side.unit_rate)}/LF = {format_currency(side.cost_impact)}."
            )
        if not lines:
            return "Drip edge and gutter apron coverage matches the documented roof edges."
        lines.append(f"Total edge protection supplement: {format_currency(cost_impact)}.")
        return " ".join(lines)

    @staticmethod
    def _recommendation(deficient: list[EdgeComponentAnalysis]) -> str | None:
        if not deficient:
            return None
        parts = []
        for side in deficient:
            label, edge = COMPONENT_LABELS[side.component]
            parts.append(f"{format_number(side.shortfall)} LF {label} ({edge})")
        return "Add " + " and ".join(parts)

    @staticmethod
    def _evidence_references(data: AnalysisInput) -> list[str]:
        references: list[str] = []
        pages = data.roof_measurements.source_pages
        if pages:
            references.append(
                f"Rake and eave measurements from page(s): {', '.join(str(p) for p in pages)}"
            )
        return references
