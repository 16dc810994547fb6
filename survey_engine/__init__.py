"""FastAPI application package init for the Survey Engine.

This package exposes a small FastAPI application factory for the
questionnaire engine: question-graph visibility, response validation,
dual-mode scoring, the submission lifecycle and analytics aggregation.
Business logic lives in `survey_engine/logic/` and route handlers in
`survey_engine/routes/`.
"""

from __future__ import annotations

from survey_engine.main import create_app

__all__ = ["create_app"]
