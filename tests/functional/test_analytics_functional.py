"""Functional tests for analytics aggregation.

Malformed stored values are skipped and counted, never raised; the
per-type statistics and the survey summary are checked on their own and
over a persisted submission set.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text as sql_text

from survey_engine.db.base import transaction
from survey_engine.logic import lifecycle
from survey_engine.logic.analytics import aggregate_question, analyze_survey, percent_int
from survey_engine.logic.errors import NotFoundError
from survey_engine.models.survey import Question

from survey_factories import create_active_survey, q, question_ids


T0 = datetime(2026, 5, 30, 12, 0, tzinfo=timezone.utc)
CHOICES = [{"id": "a"}, {"id": "b"}, {"id": "c"}]


def test_yes_no_counts_and_percentages():
    stats = aggregate_question(q("p", "yes_no"), [{"value": "yes"}] * 3 + [{"value": "no"}])
    assert stats == {"total": 4, "yes": 3, "no": 1, "yesPercent": 75, "noPercent": 25, "skipped": 0}


def test_yes_no_skips_malformed_values():
    stats = aggregate_question(q("p", "yes_no"), [{"value": "yes"}, {"value": "perhaps"}, None, {"values": "x"}])
    assert (stats["yes"], stats["no"], stats["total"], stats["skipped"]) == (1, 0, 4, 3)
    assert stats["yesPercent"] == 100


def test_multiple_choice_counts_each_selected_option_once():
    question = q("m", "multiple_choice", options=CHOICES)
    stats = aggregate_question(
        question,
        [{"values": ["a", "b"]}, {"values": ["b", "b"]}, {"values": ["zz"]}],
    )
    assert stats["counts"] == {"a": 1, "b": 2, "c": 0, "zz": 1}
    assert list(stats["counts"]) == ["a", "b", "c", "zz"]
    assert stats["skipped"] == 0


def test_single_choice_rejects_multi_value_records():
    question = q("s", "single_choice", options=CHOICES)
    stats = aggregate_question(question, [{"value": "c"}, {"values": ["a", "b"]}, {"value": ""}])
    assert stats["counts"] == {"a": 0, "b": 0, "c": 1}
    assert (stats["total"], stats["skipped"]) == (3, 2)


def test_rating_mean_excludes_non_numeric_and_zero():
    stats = aggregate_question(
        q("r", "rating"),
        [{"value": "5"}, {"value": "4"}, {"value": "abc"}, None, {"value": "0"}],
    )
    assert stats["average"] == 4.5
    assert stats["count"] == 2
    assert stats["total"] == 5
    assert stats["skipped"] == 3
    assert stats["distribution"] == {"1": 0, "2": 0, "3": 0, "4": 1, "5": 1}


def test_scale_mean_over_one_to_ten():
    stats = aggregate_question(q("s", "scale"), [{"value": "10"}, {"value": "7"}, {"value": "11"}])
    assert (stats["average"], stats["count"], stats["skipped"]) == (8.5, 2, 1)


def test_number_sum_mean_min_max():
    stats = aggregate_question(q("n", "number"), [{"value": "10"}, {"value": "2.5"}, {"value": "x"}])
    assert stats["sum"] == 12.5
    assert stats["average"] == 6.25
    assert (stats["min"], stats["max"]) == (2.5, 10.0)
    assert stats["skipped"] == 1


@pytest.mark.parametrize("raw", ["inf", "1e400", "nan"])
def test_number_skips_non_finite_stored_values(raw):
    stats = aggregate_question(q("n", "number"), [{"value": "3"}, {"value": raw}])
    assert (stats["sum"], stats["average"], stats["min"], stats["max"]) == (3.0, 3.0, 3.0, 3.0)
    assert (stats["count"], stats["skipped"], stats["total"]) == (1, 1, 2)
    json.dumps(stats, allow_nan=False)


def test_number_without_data():
    stats = aggregate_question(q("n", "number"), [])
    assert stats == {"total": 0, "sum": 0, "average": 0.0, "min": None, "max": None, "count": 0, "skipped": 0}


@pytest.mark.parametrize("qtype", ["text", "paragraph", "date"])
def test_free_form_types_collect_raw_strings(qtype):
    stats = aggregate_question(q("t", qtype), ["2026-01-01", {"value": ""}, {"value": "2026-02-02"}])
    assert stats["responses"] == ["2026-01-01", "2026-02-02"]
    assert stats["skipped"] == 1


def test_unsupported_type_reports_count_only():
    question = Question.model_construct(question_id="x", question_text="Matrix", question_type="matrix", options=[])
    assert aggregate_question(question, [{"value": "1"}, {"value": "2"}]) == {"total": 2, "skipped": 0}


def test_percent_int_rounds_half_up():
    assert percent_int(1, 8) == 13
    assert percent_int(0, 0) == 0


def _submit_batch(detail, answers):
    ok, why, _ = question_ids(detail)
    for i, value in enumerate(answers):
        payload = {ok: {"value": value}}
        if value == "no":
            payload[why] = {"value": f"reason {i}"}
        lifecycle.submit(detail.survey_id, f"staff-{i}", payload, now=T0 + timedelta(days=i))


def test_analyze_survey_summary(db_url):
    detail = create_active_survey()
    _submit_batch(detail, ["yes", "yes", "yes", "no"])
    ok, why, note = question_ids(detail)

    report = analyze_survey(detail.survey_id, expected_respondents=8)

    assert report.total_responses == 4
    assert report.completion_rate == 50.0
    assert report.responses_by_month == [{"month": "2026-05", "count": 2}, {"month": "2026-06", "count": 2}]
    assert report.average_score_percentage == 75.0
    by_id = {s.question_id: s.stats for s in report.questions}
    assert by_id[ok]["yesPercent"] == 75
    assert by_id[why]["responses"] == ["reason 3"]
    assert by_id[note] == {"total": 0, "responses": [], "skipped": 0}


def test_analyze_is_idempotent(db_url):
    detail = create_active_survey()
    _submit_batch(detail, ["yes", "no"])
    assert analyze_survey(detail.survey_id).model_dump() == analyze_survey(detail.survey_id).model_dump()


def test_analyze_survives_corrupt_stored_values(db_url):
    detail = create_active_survey()
    _submit_batch(detail, ["yes", "no"])
    ok = question_ids(detail)[0]
    with transaction() as conn:
        conn.execute(
            sql_text("UPDATE survey_responses SET response_value_json = :bad WHERE question_id = :qid"),
            {"bad": "{not json", "qid": ok},
        )

    report = analyze_survey(detail.survey_id)
    stats = {s.question_id: s.stats for s in report.questions}[ok]
    assert (stats["total"], stats["skipped"], stats["yes"], stats["no"]) == (2, 2, 0, 0)


def test_analyze_unknown_survey(db_url):
    with pytest.raises(NotFoundError):
        analyze_survey("missing")
