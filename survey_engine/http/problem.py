"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that produce
application/problem+json responses for domain errors, HTTP errors,
request validation failures and unexpected exceptions.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from survey_engine.http.error_mapping import status_for
from survey_engine.logic.errors import InconsistencyError, SurveyEngineError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_response(status: int, title: str, **fields) -> JSONResponse:
    body = {"title": title, "status": status, **fields}
    return JSONResponse(jsonable_encoder(body), status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_domain_error(request: Request, exc: SurveyEngineError) -> JSONResponse:
    status, title = status_for(exc)
    fields = {"detail": exc.message, **exc.to_dict()}
    if isinstance(exc, InconsistencyError):
        fields["repair"] = f"/api/v1/submissions/{exc.submission_id}/repair"
        logger.error("submission_inconsistent submission_id=%s path=%s", exc.submission_id, request.url.path)
    else:
        logger.info("domain_error code=%s status=%s path=%s", exc.code, status, request.url.path)
    return problem_response(status, title, **fields)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    status = int(exc.status_code or 500)
    if isinstance(exc.detail, dict):
        body = {"status": status, **exc.detail}
        return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=exc.headers)
    return JSONResponse(
        {"title": "Error", "status": status, "detail": str(exc.detail or "")},
        status_code=status,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=exc.headers,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return problem_response(
        422,
        "Invalid Request",
        detail="Request validation failed",
        code="REQUEST_INVALID",
        errors=exc.errors(),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem_response(500, "Internal Server Error")


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_response",
    "handle_domain_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
