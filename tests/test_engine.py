"""
Tests for the compliance engine and the analysis worker.
"""

from datetime import timedelta
from typing import Any

import pytest

from roof_compliance import (
    AnalysisWorker,
    ComplianceEngine,
    InMemoryJobDataSource,
    InMemoryRuleAnalysisStore,
    JobExtraction,
    MissingInputError,
    analyze,
    run_business_rules,
)
from roof_compliance.core.errors import PersistenceError
from roof_compliance.core.results import (
    BusinessRuleResult,
    ProgressEvent,
    ProgressStatus,
    RuleAnalysisRecord,
    RuleStatus,
    RuleType,
    utc_now,
)

JOB_ID = "JOB-2024-001"

EXTRACTION: dict[str, Any] = {
    "jobId": JOB_ID,
    "lineItems": [
        {
            "code": "RFG RIDGC",
            "description": "Hip / Ridge cap - Standard profile - composition shingles",
            "quantity": "6 LF",
            "unitPrice": 42.90,
            "isRidgeCapItem": True,
            "ridgeCapQuality": "purpose-built",
        },
        {"description": "Asphalt starter - universal starter course", "quantity": "120 LF"},
        {"code": "RFGDRIP", "description": "Drip edge", "quantity": "180 LF"},
        {"description": "Gutter apron", "quantity": "120 LF"},
        {"description": "Ice & water barrier", "quantity": {"value": 7, "unit": "SQ"}},
    ],
    "roofMeasurements": {
        "ridgeLength": 26,
        "hipLength": 93,
        "totalEaves": 120,
        "totalRakes": 180,
        "soffitDepth": 24,
        "wallThickness": 6,
        "predominantPitch": "6/12",
        "extractedFrom": "eagleview",
    },
    "roofType": {"roofType": "laminated", "confidence": 0.9},
}

EXPECTED_EVENTS = [
    ("data_loading", ProgressStatus.RUNNING, 10),
    ("data_loading", ProgressStatus.COMPLETED, 20),
    ("ridge_cap", ProgressStatus.RUNNING, 30),
    ("ridge_cap", ProgressStatus.COMPLETED, 50),
    ("starter_strip", ProgressStatus.RUNNING, 60),
    ("starter_strip", ProgressStatus.COMPLETED, 70),
    ("drip_edge", ProgressStatus.RUNNING, 80),
    ("drip_edge", ProgressStatus.COMPLETED, 90),
    ("ice_water", ProgressStatus.RUNNING, 95),
    ("ice_water", ProgressStatus.COMPLETED, 100),
]


class FailingStore(InMemoryRuleAnalysisStore):
    """Store that rejects writes for one rule."""

    def __init__(self, failing_rule: RuleType) -> None:
        super().__init__()
        self.failing_rule = failing_rule

    def save_rule_analysis(
        self,
        job_id: str,
        rule_type: RuleType,
        result: BusinessRuleResult,
        run_id: str,
    ) -> RuleAnalysisRecord:
        if rule_type == self.failing_rule:
            raise PersistenceError("disk full")
        return super().save_rule_analysis(job_id, rule_type, result, run_id)


class BrokenDataSource:
    def load_job_extraction(self, job_id: str) -> JobExtraction | None:
        raise ConnectionError("database unavailable")


@pytest.fixture
def data_source() -> InMemoryJobDataSource:
    return InMemoryJobDataSource({JOB_ID: JobExtraction.model_validate(EXTRACTION)})


@pytest.fixture
def store() -> InMemoryRuleAnalysisStore:
    return InMemoryRuleAnalysisStore()


@pytest.fixture
def events() -> list[ProgressEvent]:
    return []


@pytest.fixture
def worker(
    data_source: InMemoryJobDataSource,
    store: InMemoryRuleAnalysisStore,
    events: list[ProgressEvent],
) -> AnalysisWorker:
    return AnalysisWorker(JOB_ID, data_source, store, on_progress=events.append)


class TestComplianceEngine:
    """Tests for ComplianceEngine."""

    def test_lazy_analyzers(self) -> None:
        engine = ComplianceEngine()
        assert engine.ridge_cap_analyzer is engine.ridge_cap_analyzer
        assert engine.ice_water_analyzer.settings is engine.settings

    def test_analyze_dict(self) -> None:
        """The 6 LF vs 119 LF ridge cap scenario end to end."""
        results = analyze(EXTRACTION)

        assert results.job_id == JOB_ID
        assert results.ridge_cap is not None
        assert results.ridge_cap.variance_amount == -113
        assert results.ridge_cap.cost_impact == 4847.7
        assert results.starter_strip is not None
        assert results.starter_strip.status == RuleStatus.COMPLIANT
        assert results.drip_edge is not None
        assert results.drip_edge.status == RuleStatus.COMPLIANT
        assert results.ice_and_water is not None
        assert results.ice_and_water.status == RuleStatus.COMPLIANT
        assert results.failed_rules == []
        assert results.completed_at is not None


class TestAnalysisWorker:
    """Tests for AnalysisWorker."""

    def test_runs_all_rules(
        self, worker: AnalysisWorker, store: InMemoryRuleAnalysisStore
    ) -> None:
        results = worker.run_all_business_rules()

        assert len(list(results.completed_results())) == 4
        assert results.failed_rules == []
        records = store.list_rule_analyses(JOB_ID)
        assert [record.rule_type for record in records] == [
            RuleType.HIP_RIDGE_CAP,
            RuleType.STARTER_STRIP,
            RuleType.DRIP_EDGE,
            RuleType.ICE_WATER_BARRIER,
        ]
        assert {record.run_id for record in records} == {results.run_id}

    def test_progress_events(
        self, worker: AnalysisWorker, events: list[ProgressEvent]
    ) -> None:
        worker.run_all_business_rules()

        assert [(e.rule_name, e.status, e.progress) for e in events] == EXPECTED_EVENTS
        progress = [event.progress for event in events]
        assert progress == sorted(progress)
        assert all(event.job_id == JOB_ID for event in events)

    def test_missing_job(
        self, store: InMemoryRuleAnalysisStore, events: list[ProgressEvent]
    ) -> None:
        worker = AnalysisWorker("JOB-MISSING", InMemoryJobDataSource(), store, on_progress=events.append)

        with pytest.raises(MissingInputError) as exc_info:
            worker.run_all_business_rules()

        assert exc_info.value.job_id == "JOB-MISSING"
        assert events[-1].rule_name == "data_loading"
        assert events[-1].status == ProgressStatus.FAILED
        assert events[-1].error is not None
        assert len(store) == 0

    def test_data_source_error(self, store: InMemoryRuleAnalysisStore) -> None:
        worker = AnalysisWorker(JOB_ID, BrokenDataSource(), store)

        with pytest.raises(MissingInputError) as exc_info:
            worker.run_all_business_rules()

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_stage_failure_is_isolated(
        self, data_source: InMemoryJobDataSource, events: list[ProgressEvent]
    ) -> None:
        store = FailingStore(RuleType.DRIP_EDGE)
        worker = AnalysisWorker(JOB_ID, data_source, store, on_progress=events.append)

        results = worker.run_all_business_rules()

        assert results.drip_edge is None
        assert results.failed_rules == [RuleType.DRIP_EDGE]
        assert results.ridge_cap is not None
        assert results.ice_and_water is not None
        failed = [event for event in events if event.status == ProgressStatus.FAILED]
        assert len(failed) == 1
        assert failed[0].rule_name == "drip_edge"
        assert failed[0].progress == 90
        assert "disk full" in (failed[0].error or "")
        assert events[-1].progress == 100
        assert len(store) == 3

    def test_analyzer_exception_is_isolated(
        self,
        worker: AnalysisWorker,
        store: InMemoryRuleAnalysisStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def explode(data: Any) -> Any:
            raise ValueError("bad pitch")

        monkeypatch.setattr(worker.engine.starter_strip_analyzer, "analyze", explode)

        results = worker.run_all_business_rules()

        assert results.failed_rules == [RuleType.STARTER_STRIP]
        assert results.starter_strip is None
        assert len(store) == 3

    def test_drip_edge_exception_is_isolated(
        self,
        worker: AnalysisWorker,
        store: InMemoryRuleAnalysisStore,
        events: list[ProgressEvent],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def explode(data: Any) -> Any:
            raise ZeroDivisionError("rake length")

        monkeypatch.setattr(worker.engine.drip_edge_analyzer, "analyze", explode)

        results = worker.run_all_business_rules()

        assert results.failed_rules == [RuleType.DRIP_EDGE]
        assert results.drip_edge is None
        assert results.starter_strip is not None
        assert results.ice_and_water is not None
        stored = {record.rule_type for record in store.list_rule_analyses(JOB_ID)}
        assert stored == {
            RuleType.HIP_RIDGE_CAP,
            RuleType.STARTER_STRIP,
            RuleType.ICE_WATER_BARRIER,
        }
        completed = [event.rule_name for event in events if event.status == ProgressStatus.COMPLETED]
        assert completed == ["data_loading", "ridge_cap", "starter_strip", "ice_water"]

    def test_callback_errors_ignored(
        self, data_source: InMemoryJobDataSource, store: InMemoryRuleAnalysisStore
    ) -> None:
        def callback(event: ProgressEvent) -> None:
            raise RuntimeError("socket closed")

        worker = AnalysisWorker(JOB_ID, data_source, store, on_progress=callback)
        results = worker.run_all_business_rules()

        assert results.failed_rules == []
        assert len(store) == 4

    def test_without_callback(
        self, data_source: InMemoryJobDataSource, store: InMemoryRuleAnalysisStore
    ) -> None:
        results = run_business_rules(JOB_ID, data_source, store)
        assert results.ridge_cap is not None
        assert len(store) == 4


class TestQueries:
    """Tests for completion and progress queries."""

    def test_is_analysis_complete(self, worker: AnalysisWorker) -> None:
        assert worker.is_analysis_complete() is False
        worker.run_all_business_rules()
        assert worker.is_analysis_complete() is True
        assert worker.is_analysis_complete("JOB-OTHER") is False

    def test_progress_uses_latest_run(
        self, worker: AnalysisWorker, store: InMemoryRuleAnalysisStore
    ) -> None:
        worker.run_all_business_rules()
        second = worker.run_all_business_rules()

        snapshots = worker.get_analysis_progress()

        assert len(store) == 8
        assert [snapshot.rule_name for snapshot in snapshots] == [
            RuleType.HIP_RIDGE_CAP,
            RuleType.DRIP_EDGE,
            RuleType.STARTER_STRIP,
            RuleType.ICE_WATER_BARRIER,
        ]
        assert {snapshot.run_id for snapshot in snapshots} == {second.run_id}
        ridge = snapshots[0]
        assert ridge.status == RuleStatus.SUPPLEMENT_NEEDED
        assert ridge.cost_impact == 4847.7

    def test_progress_prefers_latest_analyzed_at(
        self, worker: AnalysisWorker, store: InMemoryRuleAnalysisStore
    ) -> None:
        result = analyze(EXTRACTION).ridge_cap
        assert result is not None
        now = utc_now()
        newer = result.model_copy(update={"analyzed_at": now})
        older = result.model_copy(update={"analyzed_at": now - timedelta(minutes=5)})

        store.save_rule_analysis(JOB_ID, RuleType.HIP_RIDGE_CAP, newer, "run-b")
        store.save_rule_analysis(JOB_ID, RuleType.HIP_RIDGE_CAP, older, "run-a")

        snapshots = worker.get_analysis_progress()

        assert len(snapshots) == 1
        assert snapshots[0].run_id == "run-b"
        assert snapshots[0].analyzed_at == now

    def test_progress_empty(self, worker: AnalysisWorker) -> None:
        assert worker.get_analysis_progress() == []


class TestRuleAnalysisStore:
    """Tests for the in-memory store."""

    def test_duplicate_save_is_noop(self, store: InMemoryRuleAnalysisStore) -> None:
        result = analyze(EXTRACTION).ridge_cap
        assert result is not None

        first = store.save_rule_analysis(JOB_ID, RuleType.HIP_RIDGE_CAP, result, "run-1")
        second = store.save_rule_analysis(JOB_ID, RuleType.HIP_RIDGE_CAP, result, "run-1")

        assert second is first
        assert len(store) == 1

    def test_rejects_mismatched_rule(self, store: InMemoryRuleAnalysisStore) -> None:
        result = analyze(EXTRACTION).ridge_cap
        assert result is not None

        with pytest.raises(PersistenceError):
            store.save_rule_analysis(JOB_ID, RuleType.DRIP_EDGE, result, "run-1")
