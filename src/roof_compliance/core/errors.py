"""
Error taxonomy for the Roof Compliance Engine.

Insufficient data is not an error: analyzers report it as a result status.
These exceptions cover the cases that cannot produce a result at all.
"""

from typing import Any


class RoofComplianceError(Exception):
    """Base class for engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for logs and API responses."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class MissingInputError(RoofComplianceError):
    """Required upstream data (job or extraction) is absent; the run aborts."""

    def __init__(self, job_id: str, reason: str) -> None:
        super().__init__(
            f"Job {job_id} cannot be analyzed: {reason}",
            details={"job_id": job_id, "reason": reason},
        )
        self.job_id = job_id


class AnalysisError(RoofComplianceError):
    """A single rule failed; the run continues with the next rule."""

    def __init__(self, rule_type: str, cause: Exception) -> None:
        super().__init__(
            f"{rule_type} analysis failed: {cause}",
            details={"rule_type": rule_type, "cause_type": type(cause).__name__},
        )
        self.rule_type = rule_type
        self.cause = cause


class PersistenceError(RoofComplianceError):
    """The result store rejected a write."""
