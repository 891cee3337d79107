"""
Tests for the hip & ridge cap analyzer.
"""

from typing import Any

import pytest

from roof_compliance.config import RuleSettings
from roof_compliance.core.models import (
    AnalysisInput,
    LineItem,
    MeasurementSource,
    RidgeCapQuality,
    RoofMeasurements,
    RoofTypeClassification,
)
from roof_compliance.core.results import (
    MaterialStatus,
    RidgeCapPath,
    RuleStatus,
    VarianceType,
)
from roof_compliance.modules.ridge_cap import (
    BASIS_FALLBACK,
    BASIS_HIP_ONLY,
    BASIS_RIDGE_ONLY,
    BASIS_RIDGE_PLUS_HIP,
    BASIS_ROOF_AREA,
    BASIS_TOTAL_RIDGE_HIP,
    RidgeCapAnalyzer,
)


def ridge_item(
    quantity: float,
    quality: RidgeCapQuality = RidgeCapQuality.PURPOSE_BUILT,
    unit_price: float | None = None,
    page: int | None = None,
) -> LineItem:
    return LineItem(
        code="RFG RIDGC",
        description="Hip / Ridge cap - Standard profile - composition shingles",
        quantity=quantity,
        unit_price=unit_price,
        is_ridge_cap_item=True,
        ridge_cap_quality=quality,
        source={"page": page} if page is not None else None,
    )


def make_input(
    roof_type: str | None = "laminated",
    items: list[LineItem] | None = None,
    roof_type_confidence: float = 0.9,
    **measurements: Any,
) -> AnalysisInput:
    if not measurements:
        measurements = {"ridge_length": 26, "hip_length": 93}
    return AnalysisInput(
        job_id="JOB-RC-1",
        line_items=items or [],
        roof_measurements=RoofMeasurements(**measurements),
        roof_type=(
            RoofTypeClassification(roof_type=roof_type, confidence=roof_type_confidence)
            if roof_type is not None
            else None
        ),
    )


@pytest.fixture
def analyzer() -> RidgeCapAnalyzer:
    return RidgeCapAnalyzer()


class TestLaminatedRoof:
    """Tests for the laminated shingle path."""

    def test_shortage_supplement(self, analyzer: RidgeCapAnalyzer) -> None:
        """6 LF estimated against 26 LF ridge + 93 LF hip."""
        result = analyzer.analyze(make_input(items=[ridge_item(6)]))

        assert result.analysis_path == RidgeCapPath.LAMINATED_PURPOSE_BUILT
        assert result.status == RuleStatus.SUPPLEMENT_NEEDED
        assert result.estimate_quantity == 6
        assert result.required_quantity == 119
        assert result.measurement_basis == BASIS_RIDGE_PLUS_HIP
        assert result.variance_amount == -113
        assert result.variance == "-113 LF"
        assert result.variance_type == VarianceType.SHORTAGE
        assert result.cost_impact == 4847.7
        assert result.unit_price == 42.9
        assert result.material_status == MaterialStatus.COMPLIANT
        assert "113 LF" in result.supplement_recommendation
        assert "$4847.7" in result.documentation_note

    def test_adequate(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input(items=[ridge_item(125)]))

        assert result.status == RuleStatus.COMPLIANT
        assert result.variance_type == VarianceType.ADEQUATE
        assert result.variance == "+6 LF"
        assert result.cost_impact == 0
        assert result.supplement_recommendation is None

    def test_missing(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input(items=[]))

        assert result.analysis_path == RidgeCapPath.LAMINATED_MISSING
        assert result.status == RuleStatus.SUPPLEMENT_NEEDED
        assert result.estimate_quantity == 0
        assert result.variance_amount == -119
        assert result.variance_type == VarianceType.SHORTAGE
        assert result.material_status == MaterialStatus.NON_COMPLIANT
        assert result.cost_impact == 5105.1
        assert result.current_specification is None

    def test_cut_from_3tab(self, analyzer: RidgeCapAnalyzer) -> None:
        item = ridge_item(119, RidgeCapQuality.CUT_FROM_3TAB, unit_price=8.5)
        result = analyzer.analyze(make_input(items=[item]))

        assert result.analysis_path == RidgeCapPath.LAMINATED_CUT_FROM_3TAB
        assert result.status == RuleStatus.SUPPLEMENT_NEEDED
        assert result.material_status == MaterialStatus.NON_COMPLIANT
        assert result.ridge_cap_quality == RidgeCapQuality.CUT_FROM_3TAB
        assert result.variance_type == VarianceType.ADEQUATE
        # Replacement is priced at the purpose-built rate
        assert result.unit_price == 42.9
        assert result.cost_impact == 5105.1
        assert "purpose-built" in result.reasoning

    def test_mixed_items_with_cut_caps(self, analyzer: RidgeCapAnalyzer) -> None:
        items = [ridge_item(60), ridge_item(59, RidgeCapQuality.CUT_FROM_3TAB)]
        result = analyzer.analyze(make_input(items=items))

        assert result.analysis_path == RidgeCapPath.LAMINATED_CUT_FROM_3TAB
        assert result.estimate_quantity == 119


class TestThreeTabRoof:
    """Tests for the 3-tab shingle path."""

    def test_found(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input("3-tab", items=[ridge_item(119)]))

        assert result.analysis_path == RidgeCapPath.THREE_TAB_FOUND
        assert result.status == RuleStatus.COMPLIANT

    def test_cut_from_3tab(self, analyzer: RidgeCapAnalyzer) -> None:
        item = ridge_item(119, RidgeCapQuality.CUT_FROM_3TAB)
        result = analyzer.analyze(make_input("3tab", items=[item]))

        assert result.analysis_path == RidgeCapPath.THREE_TAB_CUT_FROM_3TAB
        assert result.status == RuleStatus.SUPPLEMENT_NEEDED
        assert result.cost_impact > 0

    def test_missing(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input("3-tab", items=[]))

        assert result.analysis_path == RidgeCapPath.THREE_TAB_MISSING
        assert result.status == RuleStatus.SUPPLEMENT_NEEDED


class TestUnknownRoof:
    """Tests for other and unclassified roofs."""

    def test_no_classification(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input(None, items=[ridge_item(119)]))
        assert result.analysis_path == RidgeCapPath.UNKNOWN_ROOF
        assert result.status == RuleStatus.COMPLIANT

    def test_other_roof_type(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input("metal", items=[ridge_item(50)]))
        assert result.analysis_path == RidgeCapPath.UNKNOWN_ROOF
        assert result.status == RuleStatus.SUPPLEMENT_NEEDED

    def test_missing(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input(None, items=[]))
        assert result.analysis_path == RidgeCapPath.UNKNOWN_ROOF_MISSING
        assert result.status == RuleStatus.SUPPLEMENT_NEEDED


class TestToleranceBands:
    """Tests for the -5 LF / +20 LF variance bands."""

    def test_shortage_boundary_is_adequate(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input(items=[ridge_item(114)]))

        assert result.variance_amount == -5.0
        assert result.variance_type == VarianceType.ADEQUATE
        assert result.status == RuleStatus.COMPLIANT
        assert result.cost_impact == 0

    def test_just_past_shortage_boundary(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input(items=[ridge_item(113.99)]))

        assert result.variance_amount == -5.01
        assert result.variance_type == VarianceType.SHORTAGE
        assert result.status == RuleStatus.SUPPLEMENT_NEEDED
        assert result.cost_impact == 214.93

    def test_excess_boundary(self, analyzer: RidgeCapAnalyzer) -> None:
        at_boundary = analyzer.analyze(make_input(items=[ridge_item(139)]))
        past_boundary = analyzer.analyze(make_input(items=[ridge_item(140)]))

        assert at_boundary.variance_type == VarianceType.ADEQUATE
        assert past_boundary.variance_type == VarianceType.EXCESS
        assert past_boundary.status == RuleStatus.COMPLIANT
        assert past_boundary.cost_impact == 0

    def test_item_price_used_for_shortage(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input(items=[ridge_item(109, unit_price=40.0)]))
        assert result.cost_impact == 400.0


class TestRequiredQuantity:
    """Tests for the measurement fallback chain."""

    @pytest.mark.parametrize(
        "measurements, expected, basis",
        [
            ({"total_ridge_hip": 150, "ridge_length": 26, "hip_length": 93}, 150, BASIS_TOTAL_RIDGE_HIP),
            ({"ridge_length": 26, "hip_length": 93}, 119, BASIS_RIDGE_PLUS_HIP),
            ({"ridge_length": 40}, 40, BASIS_RIDGE_ONLY),
            ({"ridge_length": 0, "hip_length": 30}, 30, BASIS_HIP_ONLY),
            ({"total_roof_area": 2000}, 100, BASIS_ROOF_AREA),
            ({"total_ridge_hip": 0}, 119, BASIS_FALLBACK),
        ],
    )
    def test_basis(
        self,
        analyzer: RidgeCapAnalyzer,
        measurements: dict[str, float],
        expected: float,
        basis: str,
    ) -> None:
        required, used = analyzer.required_quantity(RoofMeasurements(**measurements))
        assert required == expected
        assert used == basis

    def test_fallback_from_settings(self) -> None:
        analyzer = RidgeCapAnalyzer(RuleSettings(fallback_ridge_hip_lf=80))
        assert analyzer.required_quantity(RoofMeasurements()) == (80, BASIS_FALLBACK)


class TestConfidence:
    """Tests for confidence adjustments."""

    def test_clamped_high(self, analyzer: RidgeCapAnalyzer) -> None:
        data = make_input(
            items=[ridge_item(119)],
            ridge_length=26,
            hip_length=93,
            extracted_from=MeasurementSource.EAGLEVIEW,
        )
        assert analyzer.analyze(data).confidence == 0.99

    def test_uncertain_inputs(self, analyzer: RidgeCapAnalyzer) -> None:
        data = make_input(
            items=[ridge_item(119)],
            roof_type_confidence=0.5,
            total_roof_area=0,
        )
        # 0.8 + 0.05 (items) - 0.1 (roof type) - 0.1 (fallback)
        assert analyzer.analyze(data).confidence == 0.65

    def test_missing_path_base(self, analyzer: RidgeCapAnalyzer) -> None:
        result = analyzer.analyze(make_input(items=[]))
        # 0.9 + 0.1 (ridge and hip), clamped
        assert result.confidence == 0.99


class TestResultInvariants:
    """Properties every ridge cap result must satisfy."""

    @pytest.mark.parametrize("quantity", [0.5, 6, 100, 113.99, 114, 119, 139, 140, 300])
    def test_shortage_implies_cost(self, analyzer: RidgeCapAnalyzer, quantity: float) -> None:
        result = analyzer.analyze(make_input(items=[ridge_item(quantity)]))

        if result.variance_type == VarianceType.SHORTAGE:
            assert result.variance_amount is not None and result.variance_amount < 0
            assert result.cost_impact > 0
        if result.status == RuleStatus.SUPPLEMENT_NEEDED:
            assert result.cost_impact > 0
        if result.status == RuleStatus.COMPLIANT:
            assert result.cost_impact == 0
        assert 0 <= result.confidence <= 1

    def test_evidence_references(self, analyzer: RidgeCapAnalyzer) -> None:
        data = make_input(
            items=[ridge_item(6, page=4)],
            ridge_length=26,
            hip_length=93,
            source_pages=[2, 3],
        )
        references = analyzer.analyze(data).evidence_references

        assert "Roof measurements from page(s): 2, 3" in references
        assert any("Page 4" in reference for reference in references)

    def test_custom_unit_price(self) -> None:
        analyzer = RidgeCapAnalyzer(RuleSettings(ridge_cap_unit_price=50))
        result = analyzer.analyze(make_input(items=[]))
        assert result.cost_impact == 5950.0
