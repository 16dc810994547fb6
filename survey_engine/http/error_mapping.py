"""Central error mapping for domain errors.

Single source of truth for the HTTP status and problem title of each
domain error class. Handlers must import from here instead of hardcoding
numbers. Lookup walks the exception's MRO, so subclasses inherit the
mapping of their nearest mapped base.
"""

from __future__ import annotations

from typing import Dict, Tuple, Type

from survey_engine.logic.errors import (
    DefinitionError,
    InconsistencyError,
    NotFoundError,
    PolicyError,
    ResponseValidationError,
    SurveyEngineError,
)

DOMAIN_ERROR_MAP: Dict[Type[SurveyEngineError], Tuple[int, str]] = {
    DefinitionError: (422, "Invalid Survey Definition"),
    ResponseValidationError: (422, "Invalid Responses"),
    NotFoundError: (404, "Not Found"),
    PolicyError: (409, "Conflict"),
    InconsistencyError: (500, "Responses Incomplete"),
}

_FALLBACK = (500, "Internal Server Error")


def status_for(exc: SurveyEngineError) -> Tuple[int, str]:
    for cls in type(exc).__mro__:
        if cls in DOMAIN_ERROR_MAP:
            return DOMAIN_ERROR_MAP[cls]
    return _FALLBACK


__all__ = ["DOMAIN_ERROR_MAP", "status_for"]
