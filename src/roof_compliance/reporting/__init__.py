"""
Reporting modules for the Roof Compliance Engine.
"""

from .summary import AnalysisSummary, ResultsFormatter, SummaryBuilder

__all__ = [
    "AnalysisSummary",
    "ResultsFormatter",
    "SummaryBuilder",
]
