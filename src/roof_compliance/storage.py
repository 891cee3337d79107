"""
Job data and rule analysis persistence for the Roof Compliance Engine.

The worker talks to storage through two protocols; the in-memory
implementations back the tests and the example script.
"""

import logging
import threading
from typing import Protocol

from .core.errors import PersistenceError
from .core.models import JobExtraction
from .core.results import BusinessRuleResult, RuleAnalysisRecord, RuleType

logger = logging.getLogger(__name__)


class JobDataSource(Protocol):
    """Read side: the latest extraction bundle for a job."""

    def load_job_extraction(self, job_id: str) -> JobExtraction | None:
        ...


class RuleAnalysisStore(Protocol):
    """Write side: append-only rule analysis records."""

    def save_rule_analysis(
        self,
        job_id: str,
        rule_type: RuleType,
        result: BusinessRuleResult,
        run_id: str,
    ) -> RuleAnalysisRecord:
        ...

    def list_rule_analyses(self, job_id: str) -> list[RuleAnalysisRecord]:
        ...


class InMemoryJobDataSource:
    """Extraction bundles held in a dict keyed by job id."""

    def __init__(self, extractions: dict[str, JobExtraction] | None = None) -> None:
        self._extractions: dict[str, JobExtraction] = dict(extractions or {})

    def add(self, extraction: JobExtraction) -> None:
        self._extractions[extraction.job_id] = extraction

    def load_job_extraction(self, job_id: str) -> JobExtraction | None:
        return self._extractions.get(job_id)


class InMemoryRuleAnalysisStore:
    """
    Append-only record list shared between runs.

    A save whose (job_id, rule_type, run_id) key already exists returns the
    stored record unchanged.
    """

    def __init__(self) -> None:
        self._records: list[RuleAnalysisRecord] = []
        self._keys: dict[tuple[str, RuleType, str], RuleAnalysisRecord] = {}
        self._lock = threading.Lock()

    def save_rule_analysis(
        self,
        job_id: str,
        rule_type: RuleType,
        result: BusinessRuleResult,
        run_id: str,
    ) -> RuleAnalysisRecord:
        if result.rule_type != rule_type:
            raise PersistenceError(
                f"Result for {result.rule_type.value} cannot be stored as {rule_type.value}",
                details={"job_id": job_id, "run_id": run_id},
            )

        record = RuleAnalysisRecord(
            job_id=job_id,
            rule_type=rule_type,
            run_id=run_id,
            status=result.status,
            confidence=result.confidence,
            reasoning=result.reasoning,
            cost_impact=result.cost_impact,
            result=result,
            analyzed_at=result.analyzed_at,
        )

        with self._lock:
            existing = self._keys.get(record.key)
            if existing is not None:
                logger.debug("Duplicate save ignored for %s", record.key)
                return existing
            self._records.append(record)
            self._keys[record.key] = record

        logger.debug("Stored %s analysis for job %s (run %s)", rule_type.value, job_id, run_id)
        return record

    def list_rule_analyses(self, job_id: str) -> list[RuleAnalysisRecord]:
        """Records for a job in insertion order."""
        with self._lock:
            return [record for record in self._records if record.job_id == job_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
