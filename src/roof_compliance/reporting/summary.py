"""
Analysis Summary Reporting Module.
Aggregates a run's rule results and renders them for people and machines.
"""

import json
from typing import Any

from pydantic import BaseModel, Field

from ..core.results import BusinessRuleResults, RuleStatus, RuleType
from ..utils.precision import (
    format_currency,
    format_number,
    round_to_precision,
    safe_add,
)

RULE_LABELS = {
    RuleType.HIP_RIDGE_CAP: "Hip & Ridge Cap",
    RuleType.STARTER_STRIP: "Starter Strip",
    RuleType.DRIP_EDGE: "Drip Edge & Gutter Apron",
    RuleType.ICE_WATER_BARRIER: "Ice & Water Barrier",
}


class AnalysisSummary(BaseModel):
    """Headline numbers for one run."""

    job_id: str
    run_id: str
    rules_analyzed: int = 0
    rules_failed: list[RuleType] = Field(default_factory=list)
    status_counts: dict[RuleStatus, int] = Field(default_factory=dict)
    supplements_needed: list[RuleType] = Field(default_factory=list)
    total_cost_impact: float = 0.0
    average_confidence: float | None = None


class SummaryBuilder:
    """
    Builder for run summaries.
    """

    def __init__(self, results: BusinessRuleResults) -> None:
        self.results = results

    def build(self) -> AnalysisSummary:
        """Build the summary for the results bundle."""
        summary = AnalysisSummary(
            job_id=self.results.job_id,
            run_id=self.results.run_id,
            rules_failed=list(self.results.failed_rules),
        )

        confidence_total = 0.0
        for result in self.results.completed_results():
            summary.rules_analyzed += 1
            summary.status_counts[result.status] = summary.status_counts.get(result.status, 0) + 1
            summary.total_cost_impact = safe_add(summary.total_cost_impact, result.cost_impact)
            confidence_total = safe_add(confidence_total, result.confidence)
            if result.needs_supplement:
                summary.supplements_needed.append(result.rule_type)

        if summary.rules_analyzed:
            summary.average_confidence = round_to_precision(
                confidence_total / summary.rules_analyzed, 2
            )
        return summary

    def get_formatter(self) -> "ResultsFormatter":
        """Get a formatter for the results bundle."""
        return ResultsFormatter(self.results, self.build())


class ResultsFormatter:
    """
    Formats a run's results for various output formats.
    """

    STATUS_ICONS = {
        RuleStatus.COMPLIANT: "✅",
        RuleStatus.SUPPLEMENT_NEEDED: "❌",
        RuleStatus.PARTIAL: "⚠️",
        RuleStatus.INSUFFICIENT_DATA: "❔",
    }

    def __init__(
        self, results: BusinessRuleResults, summary: AnalysisSummary | None = None
    ) -> None:
        self.results = results
        self.summary = summary or SummaryBuilder(results).build()

    def to_text(self, include_details: bool = True) -> str:
        """
        Format results as a plain text report.

        Args:
            include_details: Whether to include per-rule reasoning

        Returns:
            Formatted text report
        """
        lines: list[str] = []

        lines.append("=" * 70)
        lines.append("ROOF COMPLIANCE ANALYSIS")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Job ID: {self.results.job_id}")
        lines.append(f"Run ID: {self.results.run_id}")
        lines.append(
            f"Started: {self.results.started_at.strftime('%Y-%m-%d %H:%M:%S UTC')}"
        )
        lines.append("")

        lines.append("-" * 70)
        lines.append("SUMMARY")
        lines.append("-" * 70)
        lines.append(f"Rules Analyzed: {self.summary.rules_analyzed}")
        for status, count in self.summary.status_counts.items():
            lines.append(f"  - {status.value}: {count}")
        if self.summary.rules_failed:
            failed = ", ".join(RULE_LABELS[rule] for rule in self.summary.rules_failed)
            lines.append(f"Failed Rules: {failed}")
        lines.append(f"Total Supplement Value: {format_currency(self.summary.total_cost_impact)}")
        if self.summary.average_confidence is not None:
            lines.append(f"Average Confidence: {round(self.summary.average_confidence * 100)}%")
        lines.append("")

        if include_details:
            for result in self.results.completed_results():
                lines.append("-" * 70)
                lines.append(
                    f"{self.STATUS_ICONS.get(result.status, '•')} "
                    f"{RULE_LABELS[result.rule_type].upper()} [{result.status.value}]"
                )
                lines.append("-" * 70)
                if result.required_quantity is not None:
                    lines.append(
                        f"   Required: {format_number(result.required_quantity)} {result.unit}"
                    )
                if result.estimate_quantity is not None:
                    lines.append(
                        f"   Estimate: {format_number(result.estimate_quantity)} {result.unit}"
                    )
                if result.variance:
                    lines.append(f"   Variance: {result.variance} ({result.variance_type.value})")
                if result.cost_impact:
                    lines.append(f"   Cost Impact: {format_currency(result.cost_impact)}")
                lines.append(f"   {result.reasoning}")
                if result.supplement_recommendation:
                    lines.append(f"   Recommendation: {result.supplement_recommendation}")
                lines.append("")

        lines.append("=" * 70)
        lines.append("END OF REPORT")
        lines.append("=" * 70)

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert results to dictionary format.

        Returns:
            JSON-safe dictionary with the summary and every completed result
        """
        return {
            "job_id": self.results.job_id,
            "run_id": self.results.run_id,
            "started_at": self.results.started_at.isoformat(),
            "completed_at": (
                self.results.completed_at.isoformat() if self.results.completed_at else None
            ),
            "summary": self.summary.model_dump(mode="json"),
            "results": {
                result.rule_type.value: result.model_dump(mode="json")
                for result in self.results.completed_results()
            },
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert results to JSON format."""
        return json.dumps(self.to_dict(), indent=indent)

    def print_summary(self) -> None:
        """Print a brief summary to stdout."""
        print(self.to_text(include_details=False))
