"""Survey authoring: definition checks, question-set saves and status changes.

Client payloads identify questions by a local key (`question_id`, or the
list position when absent) so that conditional links can be expressed before
any id exists. The server assigns fresh ids on every save and remaps
`parent_question_id` accordingly; order is taken from list position.
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Optional, Sequence

from survey_engine.db.base import transaction
from survey_engine.logic import events
from survey_engine.logic.errors import DefinitionError, NotFoundError, PolicyError
from survey_engine.logic.repository_questions import list_questions, replace_questions
from survey_engine.logic.repository_submissions import count_submissions
from survey_engine.logic.repository_surveys import (
    delete_survey as _delete_survey_rows,
    get_survey,
    insert_survey,
    update_survey_settings,
    update_survey_status,
)
from survey_engine.logic.visibility import check_question_graph
from survey_engine.models.question_types import YES_NO_VALUES, QuestionType, ScoringMode, SurveyStatus
from survey_engine.models.survey import (
    Question,
    QuestionIn,
    ShowIfAnswer,
    SurveyCreate,
    SurveyDetail,
    SurveySettings,
)

logger = logging.getLogger(__name__)

# Allowed status transitions; closed surveys may be reopened
_TRANSITIONS: Dict[str, frozenset] = {
    SurveyStatus.DRAFT: frozenset({SurveyStatus.ACTIVE, SurveyStatus.CLOSED}),
    SurveyStatus.ACTIVE: frozenset({SurveyStatus.CLOSED}),
    SurveyStatus.CLOSED: frozenset({SurveyStatus.ACTIVE}),
}


def _answer_tokens(question: Question) -> List[str]:
    """Values a respondent can give to `question` that conditions may test."""
    if question.question_type == QuestionType.YES_NO:
        return list(YES_NO_VALUES)
    if question.question_type in QuestionType.CHOICE:
        return question.option_ids
    return []


def _check_condition_compatible(child: Question, parent: Question, condition: ShowIfAnswer) -> None:
    """Reject conditions that can never match the parent's answer kind."""
    tokens = _answer_tokens(parent)
    if not tokens:
        # Free-form parents (text, number, ...) accept any literal condition
        return
    wanted = [condition.value] if condition.value else list(condition.values or [])
    bad = [w for w in wanted if w not in tokens]
    if bad:
        raise DefinitionError(
            "show_if_answer is incompatible with the parent question's answers",
            question_id=child.question_id,
            code="QUESTION_CONDITION_INCOMPATIBLE",
            invalid=bad,
        )


def _check_question(question: Question, scoring_mode: str) -> None:
    qid = question.question_id
    if not question.question_text.strip():
        raise DefinitionError("question text must not be empty", question_id=qid, code="QUESTION_TEXT_EMPTY")

    option_ids = question.option_ids
    if question.question_type in QuestionType.CHOICE:
        if not option_ids:
            raise DefinitionError("choice questions need at least one option", question_id=qid, code="QUESTION_OPTIONS_MISSING")
        if len(set(option_ids)) != len(option_ids) or any(not o.strip() for o in option_ids):
            raise DefinitionError("option ids must be unique and non-empty", question_id=qid, code="QUESTION_OPTIONS_INVALID")
    elif option_ids:
        raise DefinitionError("only choice questions carry options", question_id=qid, code="QUESTION_OPTIONS_UNEXPECTED")

    config = question.points_config
    if config is None:
        return
    if scoring_mode != ScoringMode.MANUAL_POINTS:
        raise DefinitionError(
            "points_config is only used by manual_points surveys",
            question_id=qid,
            code="QUESTION_POINTS_UNEXPECTED",
        )
    if question.question_type not in QuestionType.POINTED:
        raise DefinitionError(
            "points_config is only supported on yes/no and choice questions",
            question_id=qid,
            code="QUESTION_POINTS_UNEXPECTED",
        )
    valid_keys = _answer_tokens(question)
    unknown = sorted(k for k in config.options if k not in valid_keys)
    if unknown:
        raise DefinitionError(
            "points_config references unknown options",
            question_id=qid,
            code="QUESTION_POINTS_UNKNOWN_OPTION",
            unknown=unknown,
        )


def build_questions(survey_id: Optional[str], items: Sequence[QuestionIn]) -> List[Question]:
    """Assign ids and order to authoring payloads and remap parent links."""
    keys: List[str] = []
    for idx, item in enumerate(items):
        key = item.question_id or f"#{idx}"
        if key in keys:
            raise DefinitionError("duplicate question key in payload", question_id=key, code="QUESTION_DUPLICATE")
        keys.append(key)
    id_map = {key: str(uuid.uuid4()) for key in keys}

    questions: List[Question] = []
    for idx, (key, item) in enumerate(zip(keys, items)):
        parent_id = None
        if item.parent_question_id is not None:
            parent_id = id_map.get(item.parent_question_id)
            if parent_id is None:
                raise DefinitionError(
                    "parent question is not part of this survey",
                    question_id=key,
                    code="QUESTION_PARENT_UNKNOWN",
                )
        questions.append(
            Question(
                **item.model_dump(exclude={"question_id", "parent_question_id"}),
                question_id=id_map[key],
                survey_id=survey_id,
                order_index=idx,
                parent_question_id=parent_id,
            )
        )
    return questions


def validate_survey_definition(settings: SurveySettings, questions: Sequence[Question]) -> None:
    """Raise DefinitionError when the survey cannot be accepted as defined."""
    if settings.start_date and settings.end_date and settings.end_date <= settings.start_date:
        raise DefinitionError("end_date must be after start_date", code="SURVEY_WINDOW_INVALID")
    if not questions:
        raise DefinitionError("a survey needs at least one question", code="SURVEY_QUESTIONS_MISSING")
    for question in questions:
        _check_question(question, settings.scoring_mode)
    check_question_graph(questions)
    by_id = {q.question_id: q for q in questions}
    for question in questions:
        if question.parent_question_id and question.show_if_answer is not None:
            _check_condition_compatible(question, by_id[question.parent_question_id], question.show_if_answer)


def _require_survey(survey_id: str):
    survey = get_survey(survey_id)
    if survey is None:
        raise NotFoundError("survey not found", code="SURVEY_NOT_FOUND", survey_id=survey_id)
    return survey


def get_survey_detail(survey_id: str) -> SurveyDetail:
    survey = _require_survey(survey_id)
    return SurveyDetail(**survey.model_dump(), questions=list_questions(survey_id))


def create_survey(payload: SurveyCreate) -> SurveyDetail:
    """Validate and persist a new draft survey with its questions."""
    survey_id = str(uuid.uuid4())
    settings = SurveySettings(**payload.model_dump(exclude={"created_by", "questions"}))
    questions = build_questions(survey_id, payload.questions)
    validate_survey_definition(settings, questions)
    with transaction() as conn:
        insert_survey(survey_id, settings, status=SurveyStatus.DRAFT, created_by=payload.created_by, conn=conn)
        replace_questions(survey_id, questions, conn=conn)
        events.publish(
            survey_id,
            events.SURVEY_CREATED,
            performed_by=payload.created_by,
            details={"questions_count": len(questions)},
            conn=conn,
        )
    logger.info("survey_created survey_id=%s questions=%s", survey_id, len(questions))
    return get_survey_detail(survey_id)


def _refuse_if_answered(survey_id: str, action: str) -> None:
    if count_submissions(survey_id) > 0:
        raise PolicyError(
            f"cannot {action} a survey that already has submissions",
            code="SURVEY_HAS_SUBMISSIONS",
            survey_id=survey_id,
        )


def replace_survey_questions(survey_id: str, items: Sequence[QuestionIn], performed_by: Optional[str] = None) -> SurveyDetail:
    """Replace the question set of a survey nobody has answered yet."""
    survey = _require_survey(survey_id)
    _refuse_if_answered(survey_id, "edit the questions of")
    questions = build_questions(survey_id, items)
    validate_survey_definition(survey, questions)
    with transaction() as conn:
        replace_questions(survey_id, questions, conn=conn)
        events.publish(
            survey_id,
            events.SURVEY_EDITED,
            performed_by=performed_by,
            details={"questions_count": len(questions)},
            conn=conn,
        )
    return get_survey_detail(survey_id)


def update_settings(survey_id: str, settings: SurveySettings, performed_by: Optional[str] = None) -> SurveyDetail:
    """Apply policy changes (edit window, scoring flags, activity window)."""
    _require_survey(survey_id)
    validate_survey_definition(settings, list_questions(survey_id))
    with transaction() as conn:
        update_survey_settings(survey_id, settings, conn=conn)
        events.publish(
            survey_id,
            events.SURVEY_EDITED,
            performed_by=performed_by,
            details={"settings": settings.model_dump(mode="json")},
            conn=conn,
        )
    return get_survey_detail(survey_id)


def change_status(survey_id: str, new_status: str, performed_by: Optional[str] = None) -> SurveyDetail:
    """Move a survey through draft -> active -> closed (closed may reopen)."""
    survey = _require_survey(survey_id)
    if survey.status == new_status:
        return get_survey_detail(survey_id)
    if new_status not in _TRANSITIONS.get(survey.status, frozenset()):
        raise PolicyError(
            f"cannot move a survey from {survey.status} to {new_status}",
            code="SURVEY_STATUS_TRANSITION_INVALID",
            survey_id=survey_id,
        )
    action = events.SURVEY_PUBLISHED if new_status == SurveyStatus.ACTIVE else events.SURVEY_CLOSED
    with transaction() as conn:
        update_survey_status(survey_id, new_status, conn=conn)
        events.publish(
            survey_id,
            action,
            performed_by=performed_by,
            details={"new_status": new_status},
            conn=conn,
        )
    if new_status == SurveyStatus.ACTIVE:
        # Respondent notification is delivered by an external service
        logger.info("survey_published survey_id=%s title=%s", survey_id, survey.title)
    return get_survey_detail(survey_id)


def delete_survey(survey_id: str) -> None:
    """Delete a survey that has no submissions; otherwise close it instead."""
    _require_survey(survey_id)
    _refuse_if_answered(survey_id, "delete")
    with transaction() as conn:
        _delete_survey_rows(survey_id, conn=conn)


__all__ = [
    "build_questions",
    "validate_survey_definition",
    "get_survey_detail",
    "create_survey",
    "replace_survey_questions",
    "update_settings",
    "change_status",
    "delete_survey",
]
