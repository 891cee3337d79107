"""
Roof Compliance Engine - Main Orchestrator.
Runs the business rule analyzers for a job, persists each verdict and
reports progress as it goes.
"""

import logging
import uuid
from collections.abc import Callable
from typing import Any

from .config import DEFAULT_SETTINGS, RuleSettings
from .core.errors import AnalysisError, MissingInputError
from .core.models import AnalysisInput
from .core.results import (
    BusinessRuleResult,
    BusinessRuleResults,
    ProgressEvent,
    ProgressStatus,
    RuleAnalysisRecord,
    RuleSnapshot,
    RuleType,
    utc_now,
)
from .core.rule_registry import (
    DATA_LOADING_COMPLETED,
    DATA_LOADING_RUNNING,
    DATA_LOADING_STAGE,
    RuleDefinition,
    RuleRegistry,
    create_default_registry,
)
from .modules.drip_edge import DripEdgeAnalyzer
from .modules.ice_water_barrier import IceWaterBarrierAnalyzer
from .modules.ridge_cap import RidgeCapAnalyzer
from .modules.starter_strip import StarterStripAnalyzer
from .storage import JobDataSource, RuleAnalysisStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class ComplianceEngine:
    """
    Holds one analyzer per business rule.

    Analyzers are stateless, so a single engine can serve any number of jobs.
    """

    def __init__(self, settings: RuleSettings | None = None) -> None:
        """
        Initialize the engine.

        Args:
            settings: Rates and tolerances; defaults when omitted
        """
        self.settings = settings or DEFAULT_SETTINGS

        # Initialize analyzers lazily
        self._ridge_cap_analyzer: RidgeCapAnalyzer | None = None
        self._starter_strip_analyzer: StarterStripAnalyzer | None = None
        self._drip_edge_analyzer: DripEdgeAnalyzer | None = None
        self._ice_water_analyzer: IceWaterBarrierAnalyzer | None = None

    @property
    def ridge_cap_analyzer(self) -> RidgeCapAnalyzer:
        """Get or create the ridge cap analyzer."""
        if self._ridge_cap_analyzer is None:
            self._ridge_cap_analyzer = RidgeCapAnalyzer(self.settings)
        return self._ridge_cap_analyzer

    @property
    def starter_strip_analyzer(self) -> StarterStripAnalyzer:
        """Get or create the starter strip analyzer."""
        if self._starter_strip_analyzer is None:
            self._starter_strip_analyzer = StarterStripAnalyzer(self.settings)
        return self._starter_strip_analyzer

    @property
    def drip_edge_analyzer(self) -> DripEdgeAnalyzer:
        """Get or create the drip edge analyzer."""
        if self._drip_edge_analyzer is None:
            self._drip_edge_analyzer = DripEdgeAnalyzer(self.settings)
        return self._drip_edge_analyzer

    @property
    def ice_water_analyzer(self) -> IceWaterBarrierAnalyzer:
        """Get or create the ice & water barrier analyzer."""
        if self._ice_water_analyzer is None:
            self._ice_water_analyzer = IceWaterBarrierAnalyzer(self.settings)
        return self._ice_water_analyzer

    def run_rule(self, rule_type: RuleType, data: AnalysisInput) -> BusinessRuleResult:
        """Run the analyzer for a single rule."""
        if rule_type == RuleType.HIP_RIDGE_CAP:
            return self.ridge_cap_analyzer.analyze(data)
        if rule_type == RuleType.STARTER_STRIP:
            return self.starter_strip_analyzer.analyze(data)
        if rule_type == RuleType.DRIP_EDGE:
            return self.drip_edge_analyzer.analyze(data)
        if rule_type == RuleType.ICE_WATER_BARRIER:
            return self.ice_water_analyzer.analyze(data)
        raise ValueError(f"No analyzer registered for {rule_type}")

    def analyze(
        self,
        data: AnalysisInput | dict[str, Any],
        registry: RuleRegistry | None = None,
    ) -> BusinessRuleResults:
        """
        Run every enabled rule in-process without persisting anything.

        Args:
            data: Extraction bundle (AnalysisInput or dict)
            registry: Rules to run; the four standard rules when omitted

        Returns:
            Results bundle for the run
        """
        if isinstance(data, dict):
            data = AnalysisInput.model_validate(data)

        registry = registry or create_default_registry()
        results = BusinessRuleResults(job_id=data.job_id, run_id=str(uuid.uuid4()))
        for rule in registry.execution_order():
            setattr(results, rule.result_key, self.run_rule(rule.rule_type, data))
        results.completed_at = utc_now()
        return results


class AnalysisWorker:
    """
    Runs the business rules for one job.

    Stages run sequentially in registry order. A failing stage is logged,
    reported and skipped; the remaining stages still run.
    """

    def __init__(
        self,
        job_id: str,
        data_source: JobDataSource,
        store: RuleAnalysisStore,
        on_progress: ProgressCallback | None = None,
        settings: RuleSettings | None = None,
        registry: RuleRegistry | None = None,
    ) -> None:
        self.job_id = job_id
        self.data_source = data_source
        self.store = store
        self.on_progress = on_progress
        self.engine = ComplianceEngine(settings)
        self.registry = registry or create_default_registry()

    def run_all_business_rules(self) -> BusinessRuleResults:
        """
        Load the job's extraction, run every enabled rule and persist each result.

        Returns:
            Results bundle; a rule's slot is None when its stage failed

        Raises:
            MissingInputError: If the job or its extraction cannot be loaded
        """
        run_id = str(uuid.uuid4())
        logger.info("Starting business rule analysis for job %s (run %s)", self.job_id, run_id)

        data = self._load_data()
        results = BusinessRuleResults(job_id=self.job_id, run_id=run_id)

        for rule in self.registry.execution_order():
            result = self._run_stage(rule, data, run_id)
            if result is None:
                results.failed_rules.append(rule.rule_type)
            else:
                setattr(results, rule.result_key, result)

        results.completed_at = utc_now()
        logger.info(
            "Finished business rule analysis for job %s: %d completed, %d failed",
            self.job_id,
            sum(1 for _ in results.completed_results()),
            len(results.failed_rules),
        )
        return results

    def is_analysis_complete(self, job_id: str | None = None) -> bool:
        """Whether a ridge cap analysis has been stored for the job."""
        records = self.store.list_rule_analyses(job_id or self.job_id)
        return any(record.rule_type == RuleType.HIP_RIDGE_CAP for record in records)

    def get_analysis_progress(self, job_id: str | None = None) -> list[RuleSnapshot]:
        """Latest stored state of each rule, in display priority order."""
        latest: dict[RuleType, RuleAnalysisRecord] = {}
        for record in self.store.list_rule_analyses(job_id or self.job_id):
            current = latest.get(record.rule_type)
            # Ties go to the later save
            if current is None or record.analyzed_at >= current.analyzed_at:
                latest[record.rule_type] = record

        def priority(rule_type: RuleType) -> int:
            rule = self.registry.get_rule(rule_type)
            return rule.priority if rule else len(RuleType) + 1

        return [
            RuleSnapshot(
                rule_name=record.rule_type,
                status=record.status,
                confidence=record.confidence,
                cost_impact=record.cost_impact,
                run_id=record.run_id,
                analyzed_at=record.analyzed_at,
            )
            for record in (latest[rule_type] for rule_type in sorted(latest, key=priority))
        ]

    def _load_data(self) -> AnalysisInput:
        self._emit(
            DATA_LOADING_STAGE,
            ProgressStatus.RUNNING,
            DATA_LOADING_RUNNING,
            "Loading job data and extraction",
        )

        try:
            extraction = self.data_source.load_job_extraction(self.job_id)
        except Exception as exc:
            logger.exception("Failed to load extraction for job %s", self.job_id)
            error = MissingInputError(self.job_id, f"extraction could not be loaded: {exc}")
            self._emit(
                DATA_LOADING_STAGE,
                ProgressStatus.FAILED,
                DATA_LOADING_COMPLETED,
                "Failed to load job data",
                error=error.message,
            )
            raise error from exc

        if extraction is None:
            error = MissingInputError(self.job_id, "no extraction data found")
            logger.error(error.message)
            self._emit(
                DATA_LOADING_STAGE,
                ProgressStatus.FAILED,
                DATA_LOADING_COMPLETED,
                "Failed to load job data",
                error=error.message,
            )
            raise error

        self._emit(
            DATA_LOADING_STAGE,
            ProgressStatus.COMPLETED,
            DATA_LOADING_COMPLETED,
            f"Loaded {len(extraction.line_items)} line items",
        )
        return extraction

    def _run_stage(
        self, rule: RuleDefinition, data: AnalysisInput, run_id: str
    ) -> BusinessRuleResult | None:
        self._emit(rule.stage, ProgressStatus.RUNNING, rule.running_progress, f"Analyzing {rule.name}")

        try:
            result = self.engine.run_rule(rule.rule_type, data)
            self.store.save_rule_analysis(self.job_id, rule.rule_type, result, run_id)
        except Exception as exc:
            logger.exception("%s analysis failed for job %s", rule.name, self.job_id)
            error = AnalysisError(rule.rule_type.value, exc)
            self._emit(
                rule.stage,
                ProgressStatus.FAILED,
                rule.completed_progress,
                f"{rule.name} failed",
                error=error.message,
            )
            return None

        logger.debug("Persisted %s result for job %s", rule.rule_type.value, self.job_id)
        self._emit(
            rule.stage,
            ProgressStatus.COMPLETED,
            rule.completed_progress,
            f"{rule.name}: {result.status.value}",
        )
        return result

    def _emit(
        self,
        stage: str,
        status: ProgressStatus,
        progress: int,
        message: str,
        error: str | None = None,
    ) -> None:
        event = ProgressEvent(
            job_id=self.job_id,
            rule_name=stage,
            status=status,
            progress=progress,
            message=message,
            error=error,
        )
        logger.debug("Job %s %s %s (%d%%)", self.job_id, stage, status.value, progress)

        if self.on_progress is None:
            return
        try:
            self.on_progress(event)
        except Exception:
            logger.exception("Progress callback failed for job %s", self.job_id)


# Convenience functions
def run_business_rules(
    job_id: str,
    data_source: JobDataSource,
    store: RuleAnalysisStore,
    on_progress: ProgressCallback | None = None,
    settings: RuleSettings | None = None,
) -> BusinessRuleResults:
    """
    Run and persist every business rule for a job.

    Args:
        job_id: Job to analyze
        data_source: Where the job's extraction is read from
        store: Where rule results are written
        on_progress: Optional observer for progress events
        settings: Optional rate and tolerance overrides

    Returns:
        Results bundle for the run
    """
    worker = AnalysisWorker(job_id, data_source, store, on_progress=on_progress, settings=settings)
    return worker.run_all_business_rules()


def analyze(
    data: AnalysisInput | dict[str, Any],
    settings: RuleSettings | None = None,
) -> BusinessRuleResults:
    """Run all four analyzers in-process without persistence."""
    return ComplianceEngine(settings).analyze(data)
