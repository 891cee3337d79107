#!/usr/bin/env python3
"""
Sample Analysis Script.
Demonstrates usage of the Roof Compliance Engine.
"""

from roof_compliance import (
    AnalysisWorker,
    InMemoryJobDataSource,
    InMemoryRuleAnalysisStore,
    JobExtraction,
    LineItem,
    RoofMeasurements,
    RoofTypeClassification,
    SummaryBuilder,
)
from roof_compliance.core.models import MeasurementSource, RidgeCapQuality
from roof_compliance.core.results import ProgressEvent
from roof_compliance.utils import setup_logging


def create_sample_extraction() -> JobExtraction:
    """Create a sample laminated-roof job for demonstration."""
    return JobExtraction(
        job_id="JOB-2024-ROOF-001",
        line_items=[
            LineItem(
                code="RFG 300",
                description="Laminated - comp. shingle rfg. - w/out felt",
                quantity={"value": 29.67, "unit": "SQ"},
                unit_price=264.37,
            ),
            LineItem(
                code="RFG RIDGC",
                description="Hip / Ridge cap - Standard profile - composition shingles",
                quantity="6 LF",
                unit_price=42.90,
                is_ridge_cap_item=True,
                ridge_cap_quality=RidgeCapQuality.PURPOSE_BUILT,
                source={"page": 4, "snippet": "Hip / Ridge cap - Standard profile"},
            ),
            LineItem(
                code="RFG STRT",
                description="Asphalt starter - universal starter course",
                quantity="120 LF",
                unit_price=2.85,
            ),
            LineItem(
                code="RFG DRIP",
                description="Drip edge",
                quantity="180 LF",
                unit_price=2.85,
            ),
            LineItem(
                code="RFG IWS",
                description="Ice & water barrier",
                quantity={"value": 2, "unit": "SQ"},
                unit_price=185.00,
            ),
        ],
        roof_measurements=RoofMeasurements(
            ridge_length=26,
            hip_length=93,
            total_eaves=120,
            total_rakes=180,
            total_roof_area=2967,
            predominant_pitch="6/12",
            source_pages=[2, 3],
            extracted_from=MeasurementSource.EAGLEVIEW,
            confidence=0.9,
        ),
        roof_type=RoofTypeClassification(
            roof_type="laminated",
            confidence=0.92,
            reasoning="Estimate lists laminated comp. shingles",
        ),
    )


def print_progress(event: ProgressEvent) -> None:
    print(f"[{event.progress:3d}%] {event.rule_name:<14} {event.status.value:<10} {event.message}")


def main() -> None:
    """Run sample analysis."""
    setup_logging("WARNING")

    print("=" * 70)
    print("ROOF COMPLIANCE ENGINE - SAMPLE ANALYSIS")
    print("=" * 70)
    print()

    extraction = create_sample_extraction()
    data_source = InMemoryJobDataSource({extraction.job_id: extraction})
    store = InMemoryRuleAnalysisStore()

    worker = AnalysisWorker(
        extraction.job_id,
        data_source,
        store,
        on_progress=print_progress,
    )

    print("Running business rules...")
    results = worker.run_all_business_rules()

    print()
    formatter = SummaryBuilder(results).get_formatter()
    print(formatter.to_text())

    print()
    print("-" * 70)
    print("STORED PROGRESS")
    print("-" * 70)
    for snapshot in worker.get_analysis_progress():
        print(
            f"{snapshot.rule_name.value:<18} {snapshot.status.value:<18} "
            f"${snapshot.cost_impact:,.2f}"
        )
    print(f"Analysis complete: {worker.is_analysis_complete()}")

    print()
    print("-" * 70)
    print("JSON Output (first 500 chars):")
    print("-" * 70)
    json_output = formatter.to_json()
    print(json_output[:500] + "..." if len(json_output) > 500 else json_output)


if __name__ == "__main__":
    main()
