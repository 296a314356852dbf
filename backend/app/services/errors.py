"""
Pipeline Errors
===============
Typed failures raised by the mood analysis pipeline. Every error carries a
machine-readable ``code`` (returned to retry callers) and a human-readable
message.

    ValidationError      bad or missing input, entry not found
    AuthorizationError   caller not signed in, or not the entry's owner
    AnalysisError        classifier call failed: propagated
    RecommendationError  recommendation call failed: always absorbed
    PersistenceError     storage write failed: propagated
"""

from __future__ import annotations

# HTTP status returned for each code on the retry endpoint.
STATUS_BY_CODE: dict[str, int] = {
    "invalid-argument": 400,
    "unauthenticated": 401,
    "permission-denied": 403,
    "not-found": 404,
    "internal": 500,
}


class PipelineError(Exception):
    """Base class for every error the pipeline raises."""

    default_code = "internal"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.code = code or self.default_code
        self.message = message
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE.get(self.code, 500)


class ValidationError(PipelineError):
    """Empty text, missing entry id, or entry not found."""

    default_code = "invalid-argument"


class AuthorizationError(PipelineError):
    """Caller is not authenticated or does not own the entry."""

    default_code = "unauthenticated"


class AnalysisError(PipelineError):
    """The emotion classifier call failed or returned unusable data."""


class RecommendationError(PipelineError):
    """The recommendation call failed or returned malformed data."""


class PersistenceError(PipelineError):
    """Writing analysis results to the mood entry failed."""
