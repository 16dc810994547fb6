"""Functional tests for answer parsing and conditional visibility.

Covers the answer variants produced by `parse_answer`, single-hop
condition matching, conjunction up the parent chain, and the definition
time graph checks (forward references, unknown parents, cycles).
"""

from __future__ import annotations

import pytest

from survey_engine.logic.answers import is_answered, parse_answer, parse_answers, stored_values
from survey_engine.logic.errors import DefinitionError, ValidationError
from survey_engine.logic.visibility import check_question_graph, resolve_visibility, visible_questions
from survey_engine.models.answers import MultiChoiceAnswer, ScalarAnswer

from survey_factories import q


CHOICES = [{"id": "a", "text": "A"}, {"id": "b", "text": "B"}, {"id": "c", "text": "C"}]


def _chain():
    return [
        q("p", "yes_no", 0),
        q("c", "single_choice", 1, options=CHOICES, parent_question_id="p", show_if_answer={"value": "yes"}),
        q("g", "text", 2, parent_question_id="c", show_if_answer={"values": ["a", "b"]}),
    ]


# -----------------------------
# Answer parsing
# -----------------------------


def test_scalar_payload_shapes_parse_to_scalar_answer():
    question = q("p", "yes_no")
    assert parse_answer(question, {"value": "yes"}) == ScalarAnswer(value="yes")
    assert parse_answer(question, "no") == ScalarAnswer(value="no")
    assert parse_answer(question, True) == ScalarAnswer(value="yes")


def test_multiple_choice_accepts_lone_value_and_dedupes():
    question = q("m", "multiple_choice", options=CHOICES)
    assert parse_answer(question, {"value": "a"}) == MultiChoiceAnswer(values=["a"])
    assert parse_answer(question, {"values": ["b", "a", "b"]}) == MultiChoiceAnswer(values=["b", "a"])


def test_multiple_choice_rejects_unknown_option():
    question = q("m", "multiple_choice", options=CHOICES)
    with pytest.raises(ValidationError) as info:
        parse_answer(question, {"values": ["a", "z"]})
    assert info.value.code == "ANSWER_INVALID_CHOICE"
    assert info.value.question_id == "m"


def test_values_shape_is_rejected_for_scalar_types():
    with pytest.raises(ValidationError) as info:
        parse_answer(q("p", "yes_no"), {"values": ["yes"]})
    assert info.value.code == "ANSWER_SHAPE_INVALID"


@pytest.mark.parametrize(
    "qtype,raw,code",
    [
        ("rating", "6", "ANSWER_OUT_OF_RANGE"),
        ("scale", 0, "ANSWER_OUT_OF_RANGE"),
        ("number", "twelve", "ANSWER_NOT_NUMERIC"),
        ("date", "19/10/2026", "ANSWER_INVALID_DATE"),
        ("date", "2024-01-01garbage", "ANSWER_INVALID_DATE"),
        ("date", "20240101", "ANSWER_INVALID_DATE"),
        ("yes_no", "maybe", "ANSWER_INVALID_CHOICE"),
    ],
)
def test_type_specific_value_checks(qtype, raw, code):
    with pytest.raises(ValidationError) as info:
        parse_answer(q("x", qtype), {"value": raw})
    assert info.value.code == code


@pytest.mark.parametrize("raw", ["inf", "-inf", "1e400", "nan"])
def test_number_answers_must_be_finite(raw):
    with pytest.raises(ValidationError) as info:
        parse_answer(q("n", "number"), {"value": raw})
    assert info.value.code == "ANSWER_NOT_NUMERIC"


def test_number_and_date_answers_accept_plain_values():
    assert parse_answer(q("n", "number"), {"value": "-2.5"}).value == "-2.5"
    assert parse_answer(q("d", "date"), {"value": "2024-02-29"}).value == "2024-02-29"


def test_empty_answers_parse_but_are_not_answered():
    assert not is_answered(parse_answer(q("t", "text"), {"value": "   "}))
    assert not is_answered(parse_answer(q("m", "multiple_choice", options=CHOICES), {"values": []}))
    assert is_answered(parse_answer(q("r", "rating"), {"value": 4.0}))


def test_answers_for_unknown_questions_are_rejected():
    with pytest.raises(ValidationError) as info:
        parse_answers([q("p", "yes_no")], {"nope": {"value": "yes"}})
    assert info.value.code == "QUESTION_UNKNOWN"


def test_stored_values_never_raises_on_malformed_input():
    assert stored_values({"values": "a"}) is None
    assert stored_values({"value": {"nested": True}}) is None
    assert stored_values(None) == []
    assert stored_values({"values": ["a", "", "b"]}) == ["a", "b"]


# -----------------------------
# Visibility resolution
# -----------------------------


def test_child_of_unanswered_parent_is_hidden():
    visibility = resolve_visibility(_chain(), {})
    assert visibility == {"p": True, "c": False, "g": False}


def test_child_visible_when_parent_answer_matches():
    questions = _chain()
    answers = parse_answers(questions, {"p": {"value": "yes"}})
    assert resolve_visibility(questions, answers) == {"p": True, "c": True, "g": False}


def test_visibility_composes_up_the_chain():
    questions = _chain()
    # c carries a matching answer but its own parent says "no", so g stays hidden
    answers = parse_answers(questions, {"p": {"value": "no"}, "c": {"value": "a"}})
    assert resolve_visibility(questions, answers) == {"p": True, "c": False, "g": False}

    answers = parse_answers(questions, {"p": {"value": "yes"}, "c": {"value": "b"}})
    assert [x.question_id for x in visible_questions(questions, answers)] == ["p", "c", "g"]


def test_condition_without_value_only_needs_parent_answered():
    questions = [q("p", "number", 0), q("c", "text", 1, parent_question_id="p")]
    assert resolve_visibility(questions, {})["c"] is False
    answers = parse_answers(questions, {"p": {"value": "3"}})
    assert resolve_visibility(questions, answers)["c"] is True


def test_multiple_choice_parent_matches_any_selected_value():
    questions = [
        q("m", "multiple_choice", 0, options=CHOICES),
        q("c", "text", 1, parent_question_id="m", show_if_answer={"value": "c"}),
    ]
    answers = parse_answers(questions, {"m": {"values": ["a", "c"]}})
    assert resolve_visibility(questions, answers)["c"] is True
    answers = parse_answers(questions, {"m": {"values": ["a", "b"]}})
    assert resolve_visibility(questions, answers)["c"] is False


def test_value_takes_precedence_over_values():
    questions = [
        q("p", "yes_no", 0),
        q("c", "text", 1, parent_question_id="p", show_if_answer={"value": "yes", "values": ["no"]}),
    ]
    answers = parse_answers(questions, {"p": {"value": "no"}})
    assert resolve_visibility(questions, answers)["c"] is False


def test_dangling_parent_hides_the_child():
    questions = [q("c", "text", 1, parent_question_id="gone")]
    assert resolve_visibility(questions, {}) == {"c": False}


def test_runtime_cycle_is_reported_as_definition_error():
    questions = [
        q("a", "yes_no", 0, parent_question_id="b"),
        q("b", "yes_no", 1, parent_question_id="a"),
    ]
    with pytest.raises(DefinitionError) as info:
        resolve_visibility(questions, {})
    assert info.value.code == "QUESTION_PARENT_CYCLE"


# -----------------------------
# Definition-time graph checks
# -----------------------------


def test_graph_check_accepts_a_valid_chain():
    check_question_graph(_chain())


def test_graph_check_rejects_forward_reference():
    questions = [
        q("a", "text", 0, parent_question_id="b"),
        q("b", "yes_no", 1),
    ]
    with pytest.raises(DefinitionError) as info:
        check_question_graph(questions)
    assert info.value.code == "QUESTION_PARENT_FORWARD"
    assert info.value.question_id == "a"


def test_graph_check_rejects_unknown_parent_and_orphan_condition():
    with pytest.raises(DefinitionError) as info:
        check_question_graph([q("a", "text", 0, parent_question_id="zzz")])
    assert info.value.code == "QUESTION_PARENT_UNKNOWN"

    with pytest.raises(DefinitionError) as info:
        check_question_graph([q("a", "text", 0, show_if_answer={"value": "yes"})])
    assert info.value.code == "QUESTION_CONDITION_WITHOUT_PARENT"
