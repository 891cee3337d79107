"""
Roof Compliance Engine.

Deterministic business rule analysis for roofing insurance estimates:
hip & ridge cap, starter strip, drip edge / gutter apron and ice & water
barrier, each checked against the roof measurement report.
"""

from .config import RuleSettings, load_settings
from .core.errors import MissingInputError, RoofComplianceError
from .core.models import (
    AnalysisInput,
    JobExtraction,
    LineItem,
    RoofMeasurements,
    RoofType,
    RoofTypeClassification,
)
from .core.results import BusinessRuleResults, RuleStatus, RuleType
from .engine import AnalysisWorker, ComplianceEngine, analyze, run_business_rules
from .reporting.summary import ResultsFormatter, SummaryBuilder
from .storage import InMemoryJobDataSource, InMemoryRuleAnalysisStore

__version__ = "0.1.0"

__all__ = [
    # Main Engine
    "AnalysisWorker",
    "ComplianceEngine",
    "analyze",
    "run_business_rules",
    # Configuration
    "RuleSettings",
    "load_settings",
    # Models
    "AnalysisInput",
    "BusinessRuleResults",
    "JobExtraction",
    "LineItem",
    "RoofMeasurements",
    "RoofType",
    "RoofTypeClassification",
    "RuleStatus",
    "RuleType",
    # Errors
    "MissingInputError",
    "RoofComplianceError",
    # Storage
    "InMemoryJobDataSource",
    "InMemoryRuleAnalysisStore",
    # Reporting
    "ResultsFormatter",
    "SummaryBuilder",
]
