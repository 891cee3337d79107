"""
Core components for the Roof Compliance Engine.
"""

from .errors import (
    AnalysisError,
    MissingInputError,
    PersistenceError,
    RoofComplianceError,
)
from .item_matcher import ItemMatcher, RoofComponent, get_matcher
from .models import (
    AnalysisInput,
    JobExtraction,
    LineItem,
    MeasurementSource,
    Quantity,
    RidgeCapQuality,
    RoofMeasurements,
    RoofType,
    RoofTypeClassification,
    SourceReference,
)
from .results import (
    AnalysisResult,
    BarrierCalculation,
    BusinessRuleResult,
    BusinessRuleResults,
    CurrentSpecification,
    DripEdgeResult,
    EdgeComplianceStatus,
    EdgeComponentAnalysis,
    IceWaterBarrierResult,
    MaterialStatus,
    ProgressEvent,
    ProgressStatus,
    RidgeCapPath,
    RidgeCapResult,
    RuleAnalysisRecord,
    RuleSnapshot,
    RuleStatus,
    RuleType,
    StarterStripPath,
    StarterStripResult,
    StarterType,
    VarianceType,
)
from .rule_registry import (
    RuleDefinition,
    RuleRegistry,
    create_default_registry,
)

__all__ = [
    # Errors
    "AnalysisError",
    "MissingInputError",
    "PersistenceError",
    "RoofComplianceError",
    # Item Matcher
    "ItemMatcher",
    "RoofComponent",
    "get_matcher",
    # Input Models
    "AnalysisInput",
    "JobExtraction",
    "LineItem",
    "MeasurementSource",
    "Quantity",
    "RidgeCapQuality",
    "RoofMeasurements",
    "RoofType",
    "RoofTypeClassification",
    "SourceReference",
    # Results
    "AnalysisResult",
    "BarrierCalculation",
    "BusinessRuleResult",
    "BusinessRuleResults",
    "CurrentSpecification",
    "DripEdgeResult",
    "EdgeComplianceStatus",
    "EdgeComponentAnalysis",
    "IceWaterBarrierResult",
    "MaterialStatus",
    "ProgressEvent",
    "ProgressStatus",
    "RidgeCapPath",
    "RidgeCapResult",
    "RuleAnalysisRecord",
    "RuleSnapshot",
    "RuleStatus",
    "RuleType",
    "StarterStripPath",
    "StarterStripResult",
    "StarterType",
    "VarianceType",
    # Rule Registry
    "RuleDefinition",
    "RuleRegistry",
    "create_default_registry",
]
