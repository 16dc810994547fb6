"""APIRouter registration for the Survey Engine."""

from __future__ import annotations

from fastapi import APIRouter

from survey_engine.routes.analytics import router as analytics_router
from survey_engine.routes.submissions import router as submissions_router
from survey_engine.routes.surveys import router as surveys_router

api_router = APIRouter()
api_router.include_router(surveys_router, tags=["Surveys", "Authoring"])
api_router.include_router(submissions_router, tags=["Submissions"])
api_router.include_router(analytics_router, tags=["Analytics"])

__all__ = ["api_router"]
