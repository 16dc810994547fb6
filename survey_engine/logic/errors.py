"""Domain error taxonomy for the survey engine.

Every error carries a machine-readable `code`. The HTTP layer maps each
class to a problem+json status in `survey_engine/http/error_mapping.py`;
logic modules raise these and never build HTTP responses themselves.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SurveyEngineError(Exception):
    """Base class for all engine errors."""

    code = "SURVEY_ENGINE_ERROR"

    def __init__(self, message: str, *, code: str | None = None, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.context}


class ResponseValidationError(SurveyEngineError, ValueError):
    """Missing required answer or malformed answer shape.

    Always recoverable; nothing has been applied when this is raised.
    """

    code = "VALIDATION_FAILED"

    def __init__(self, message: str, *, question_id: Optional[str] = None, code: str | None = None, **context: Any) -> None:
        super().__init__(message, code=code, question_id=question_id, **context)
        self.question_id = question_id


# Short alias used across logic modules and tests
ValidationError = ResponseValidationError


class DefinitionError(ResponseValidationError):
    """A survey definition that cannot be accepted (authoring time)."""

    code = "DEFINITION_INVALID"


class PolicyError(SurveyEngineError):
    """A rejected lifecycle transition; the stored state is left untouched."""

    code = "POLICY_REJECTED"


class NotFoundError(SurveyEngineError):
    code = "NOT_FOUND"


class InconsistencyError(SurveyEngineError):
    """Submission row persisted but its response set could not be replaced.

    Not locally recoverable. Callers repair by re-running the response
    replacement against `submission_id` instead of submitting again.
    """

    code = "RESPONSES_INCOMPLETE"

    def __init__(self, message: str, *, submission_id: str, **context: Any) -> None:
        super().__init__(message, submission_id=submission_id, **context)
        self.submission_id = submission_id


__all__ = [
    "SurveyEngineError",
    "ResponseValidationError",
    "ValidationError",
    "DefinitionError",
    "PolicyError",
    "NotFoundError",
    "InconsistencyError",
]
