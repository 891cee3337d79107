"""
Starter Strip Module.
Audits the starter course along the eaves: presence, material type on
laminated roofs and coverage length.
"""

import logging

from ..config import DEFAULT_SETTINGS, RuleSettings
from ..core.item_matcher import ItemMatcher, RoofComponent, get_matcher
from ..core.models import AnalysisInput, LineItem, RoofType
from ..core.results import (
    CurrentSpecification,
    MaterialStatus,
    RuleStatus,
    StarterStripPath,
    StarterStripResult,
    StarterType,
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


class StarterStripAnalyzer:
    """
    Analyzes starter strip compliance.

    Laminated shingles need a universal starter product; starter cut from
    field shingles and "included in waste" starter do not qualify.
    """

    CONFIDENCE = 0.9
    UNCONFIRMED_TYPE_CONFIDENCE = 0.7
    INSUFFICIENT_DATA_CONFIDENCE = 0.2

    def __init__(
        self,
        settings: RuleSettings | None = None,
        matcher: ItemMatcher | None = None,
    ) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.matcher = matcher or get_matcher()

    def analyze(self, data: AnalysisInput) -> StarterStripResult:
        """Analyze starter strip compliance for one job."""
        eaves = data.roof_measurements.eaves
        items = self.matcher.find(data.line_items, RoofComponent.STARTER_STRIP)
        laminated = bool(data.roof_type and data.roof_type.roof_type == RoofType.LAMINATED)

        logger.debug(
            "Job %s: %d starter items, eaves=%s, laminated=%s",
            data.job_id,
            len(items),
            eaves,
            laminated,
        )

        if eaves is None:
            result = self._unverified_result(data, items)
        elif eaves <= 0:
            result = self._no_eaves_result(data, items)
        elif not items:
            result = self._missing_result(data, eaves)
        else:
            classified = [(item, self.matcher.classify_starter(item)) for item in items]
            has_universal = any(kind == StarterType.UNIVERSAL for _, kind in classified)
            waste_items = [
                item for item, kind in classified if kind == StarterType.CUT_FROM_WASTE
            ]
            if laminated and waste_items and not has_universal:
                result = self._cut_from_waste_result(data, eaves, items, waste_items[0])
            elif laminated and has_universal:
                result = self._quantity_check(
                    data, eaves, items, StarterStripPath.STARTER_UNIVERSAL, StarterType.UNIVERSAL
                )
            elif laminated:
                result = self._quantity_check(
                    data,
                    eaves,
                    items,
                    StarterStripPath.STARTER_TYPE_UNCONFIRMED,
                    StarterType.UNKNOWN,
                    confidence=self.UNCONFIRMED_TYPE_CONFIDENCE,
                )
            else:
                starter_type = StarterType.UNIVERSAL if has_universal else StarterType.UNKNOWN
                result = self._quantity_check(
                    data, eaves, items, StarterStripPath.STARTER_ANY_TYPE, starter_type
                )

        logger.info(
            "Starter strip analysis for job %s: %s via %s (cost impact %s)",
            data.job_id,
            result.status.value,
            result.analysis_path.value,
            format_currency(result.cost_impact),
        )
        return result

    def _quantity_check(
        self,
        data: AnalysisInput,
        eaves: float,
        items: list[LineItem],
        path: StarterStripPath,
        starter_type: StarterType,
        confidence: float | None = None,
    ) -> StarterStripResult:
        installed = self._total_quantity(items)
        variance_amount = safe_subtract(installed, eaves)
        rate = self._unit_price(items)

        if variance_amount < -self.settings.starter_strip_tolerance:
            shortfall = abs(variance_amount)
            cost_impact = safe_multiply(shortfall, rate)
            status = RuleStatus.SUPPLEMENT_NEEDED
            variance_type = VarianceType.SHORTAGE
            reasoning = (
                f"Starter strip ({format_number(installed)} LF) does not cover the "
                f"{format_number(eaves)} LF of eaves. Shortage of "
                f"{format_number(shortfall)} LF."
            )
            note = (
                f"Starter course is required along all eaves. Add {format_number(shortfall)} LF "
                f"@ {format_currency(rate)}/LF = {format_currency(cost_impact)}."
            )
            recommendation: str | None = f"Add {format_number(shortfall)} LF starter strip"
        else:
            cost_impact = 0.0
            status = RuleStatus.COMPLIANT
            variance_type = (
                VarianceType.EXCESS
                if variance_amount > self.settings.starter_strip_tolerance
                else VarianceType.ADEQUATE
            )
            reasoning = (
                f"Starter strip ({format_number(installed)} LF) covers the "
                f"{format_number(eaves)} LF of eaves."
            )
            note = "Starter course coverage matches the documented eave length."
            recommendation = None

        if path == StarterStripPath.STARTER_TYPE_UNCONFIRMED:
            reasoning += " Starter material could not be confirmed as a universal starter product."
            note += " Confirm the starter product type for the laminated roof."

        return StarterStripResult(
            job_id=data.job_id,
            status=status,
            confidence=confidence if confidence is not None else self.CONFIDENCE,
            reasoning=reasoning,
            analysis_path=path,
            starter_type=starter_type,
            required_length=eaves,
            estimate_quantity=installed,
            required_quantity=eaves,
            variance=format_variance(variance_amount, "LF"),
            variance_amount=variance_amount,
            variance_type=variance_type,
            material_status=MaterialStatus.COMPLIANT,
            cost_impact=cost_impact,
            unit_price=rate,
            current_specification=CurrentSpecification.from_line_item(items[0]),
            evidence_references=self._evidence_references(data, items),
            documentation_note=note,
            supplement_recommendation=recommendation,
        )

    def _missing_result(self, data: AnalysisInput, eaves: float) -> StarterStripResult:
        rate = self.settings.starter_strip_unit_price
        cost_impact = safe_multiply(eaves, rate)
        return StarterStripResult(
            job_id=data.job_id,
            status=RuleStatus.SUPPLEMENT_NEEDED,
            confidence=self.CONFIDENCE,
            reasoning=(
                f"No starter strip found in the estimate. A starter course is required "
                f"along all {format_number(eaves)} LF of eaves."
            ),
            analysis_path=StarterStripPath.STARTER_MISSING,
            starter_type=None,
            required_length=eaves,
            estimate_quantity=0.0,
            required_quantity=eaves,
            variance=format_variance(-eaves, "LF"),
            variance_amount=-eaves,
            variance_type=VarianceType.SHORTAGE,
            material_status=MaterialStatus.NON_COMPLIANT,
            cost_impact=cost_impact,
            unit_price=rate,
            evidence_references=self._evidence_references(data, []),
            documentation_note=(
                f"Add universal starter strip: {format_number(eaves)} LF @ "
                f"{format_currency(rate)}/LF = {format_currency(cost_impact)}."
            ),
            supplement_recommendation=f"Add {format_number(eaves)} LF universal starter strip",
        )

    def _cut_from_waste_result(
        self,
        data: AnalysisInput,
        eaves: float,
        items: list[LineItem],
        waste_item: LineItem,
    ) -> StarterStripResult:
        rate = self.settings.starter_strip_unit_price
        cost_impact = safe_multiply(eaves, rate)
        installed = self._total_quantity(items)
        variance_amount = safe_subtract(installed, eaves)
        return StarterStripResult(
            job_id=data.job_id,
            status=RuleStatus.SUPPLEMENT_NEEDED,
            confidence=self.CONFIDENCE,
            reasoning=(
                "Laminated shingles do not have a cuttable tab to serve as a starter "
                f'course. Estimate relies on starter cut from waste: "{waste_item.description}". '
                f"A universal starter strip is required along {format_number(eaves)} LF of eaves."
            ),
            analysis_path=StarterStripPath.STARTER_CUT_FROM_WASTE,
            starter_type=StarterType.CUT_FROM_WASTE,
            required_length=eaves,
            estimate_quantity=installed,
            required_quantity=eaves,
            variance=format_variance(variance_amount, "LF"),
            variance_amount=variance_amount,
            variance_type=(
                VarianceType.SHORTAGE
                if variance_amount < -self.settings.starter_strip_tolerance
                else VarianceType.ADEQUATE
            ),
            material_status=MaterialStatus.NON_COMPLIANT,
            cost_impact=cost_impact,
            unit_price=rate,
            current_specification=CurrentSpecification.from_line_item(waste_item),
            evidence_references=self._evidence_references(data, items),
            documentation_note=(
                "Manufacturer installation instructions for laminated shingles call for a "
                f"universal starter product. Add {format_number(eaves)} LF @ "
                f"{format_currency(rate)}/LF = {format_currency(cost_impact)}."
            ),
            supplement_recommendation=(
                f"Replace cut-from-waste starter with {format_number(eaves)} LF universal starter strip"
            ),
        )

    def _no_eaves_result(
        self, data: AnalysisInput, items: list[LineItem]
    ) -> StarterStripResult:
        installed = self._total_quantity(items)
        return StarterStripResult(
            job_id=data.job_id,
            status=RuleStatus.COMPLIANT,
            confidence=self.CONFIDENCE,
            reasoning="Roof report measures 0 LF of eaves; no starter course is required.",
            analysis_path=StarterStripPath.STARTER_ANY_TYPE,
            starter_type=None,
            required_length=0.0,
            estimate_quantity=installed,
            required_quantity=0.0,
            variance=format_variance(installed, "LF"),
            variance_amount=installed,
            variance_type=(
                VarianceType.EXCESS
                if installed > self.settings.starter_strip_tolerance
                else VarianceType.ADEQUATE
            ),
            material_status=MaterialStatus.COMPLIANT,
            cost_impact=0.0,
            current_specification=CurrentSpecification.from_line_item(items[0]) if items else None,
            evidence_references=self._evidence_references(data, items),
            documentation_note="No eaves documented; starter course not required.",
        )

    def _unverified_result(
        self, data: AnalysisInput, items: list[LineItem]
    ) -> StarterStripResult:
        return StarterStripResult(
            job_id=data.job_id,
            status=RuleStatus.INSUFFICIENT_DATA,
            confidence=self.INSUFFICIENT_DATA_CONFIDENCE,
            reasoning="Eave length is not available; starter strip coverage cannot be verified.",
            analysis_path=StarterStripPath.STARTER_UNVERIFIED,
            starter_type=None,
            required_length=None,
            estimate_quantity=self._total_quantity(items) if items else None,
            required_quantity=None,
            cost_impact=0.0,
            current_specification=CurrentSpecification.from_line_item(items[0]) if items else None,
            evidence_references=self._evidence_references(data, items),
            documentation_note="Upload a roof measurement report with eave lengths.",
        )

    @staticmethod
    def _total_quantity(items: list[LineItem]) -> float:
        total = 0.0
        for item in items:
            total = safe_add(total, item.quantity_value)
        return total

    def _unit_price(self, items: list[LineItem]) -> float:
        for item in items:
            if item.unit_price:
                return item.unit_price
        return self.settings.starter_strip_unit_price

    @staticmethod
    def _evidence_references(data: AnalysisInput, items: list[LineItem]) -> list[str]:
        references: list[str] = []
        pages = data.roof_measurements.source_pages
        if pages:
            references.append(
                f"Eave measurements from page(s): {', '.join(str(p) for p in pages)}"
            )
        for item in items:
            if item.page is not None:
                references.append(f'Starter line item: Page {item.page} - "{item.description}"')
        return references
