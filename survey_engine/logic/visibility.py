"""Conditional visibility resolution over a survey's question graph.

A question without a parent is always visible. A child is visible only when
its parent is visible, has a well-formed answer, and that answer satisfies
the child's `show_if_answer`. Visibility therefore composes by conjunction
up the parent chain; each question is resolved once per pass and memoized.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from survey_engine.logic.answers import is_answered
from survey_engine.logic.errors import DefinitionError
from survey_engine.models.answers import AnswerMap
from survey_engine.models.survey import Question

logger = logging.getLogger(__name__)


def is_child_visible(question: Question, parent_answer) -> bool:
    """Return True if the parent's answer satisfies the child's condition.

    Only the single hop is evaluated here; the caller is responsible for
    checking the parent's own visibility.
    """
    if not is_answered(parent_answer):
        return False
    if question.show_if_answer is None:
        return True
    return question.show_if_answer.accepts(parent_answer.selected())


def resolve_visibility(questions: Sequence[Question], answers: AnswerMap) -> Dict[str, bool]:
    """Compute a question_id -> visible mapping for one evaluation pass."""
    by_id: Dict[str, Question] = {q.question_id: q for q in questions}
    memo: Dict[str, bool] = {}

    def _visit(qid: str) -> bool:
        if qid in memo:
            return memo[qid]
        # Walk up to the first resolved ancestor (or a root), then resolve downward
        chain: List[Question] = []
        cursor: Optional[str] = qid
        seen: set[str] = set()
        while cursor is not None and cursor not in memo:
            if cursor in seen:
                raise DefinitionError("question parent chain contains a cycle", question_id=cursor, code="QUESTION_PARENT_CYCLE")
            seen.add(cursor)
            question = by_id.get(cursor)
            if question is None:
                # Dangling parent reference: nothing below it can be shown
                memo[cursor] = False
                break
            chain.append(question)
            cursor = question.parent_question_id
        for question in reversed(chain):
            parent_id = question.parent_question_id
            if parent_id is None:
                memo[question.question_id] = True
            else:
                memo[question.question_id] = bool(memo.get(parent_id)) and is_child_visible(
                    question, answers.get(parent_id)
                )
        return memo[qid]

    return {q.question_id: _visit(q.question_id) for q in questions}


def visible_questions(questions: Sequence[Question], answers: AnswerMap) -> List[Question]:
    """Return the visible subset of `questions`, preserving order."""
    visibility = resolve_visibility(questions, answers)
    return [q for q in questions if visibility.get(q.question_id)]


def check_question_graph(questions: Iterable[Question]) -> None:
    """Reject parent links that point forward, outside the survey, or in a cycle.

    Raises DefinitionError naming the offending question.
    """
    ordered = sorted(questions, key=lambda q: q.order_index)
    by_id = {q.question_id: q for q in ordered}
    for question in ordered:
        parent_id = question.parent_question_id
        if parent_id is None:
            if question.show_if_answer is not None:
                raise DefinitionError(
                    "show_if_answer requires a parent question",
                    question_id=question.question_id,
                    code="QUESTION_CONDITION_WITHOUT_PARENT",
                )
            continue
        parent = by_id.get(parent_id)
        if parent is None:
            raise DefinitionError(
                "parent question is not part of this survey",
                question_id=question.question_id,
                code="QUESTION_PARENT_UNKNOWN",
            )
        if parent.order_index >= question.order_index:
            raise DefinitionError(
                "parent question must come earlier in the survey",
                question_id=question.question_id,
                code="QUESTION_PARENT_FORWARD",
            )
        seen = {question.question_id}
        cursor: Optional[str] = parent_id
        while cursor is not None:
            if cursor in seen:
                raise DefinitionError(
                    "question parent chain contains a cycle",
                    question_id=question.question_id,
                    code="QUESTION_PARENT_CYCLE",
                )
            seen.add(cursor)
            cursor = by_id[cursor].parent_question_id if cursor in by_id else None
    logger.debug("question_graph_ok count=%s", len(ordered))


__all__ = [
    "is_child_visible",
    "resolve_visibility",
    "visible_questions",
    "check_question_graph",
]
