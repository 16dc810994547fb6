"""Functional HTTP contract tests via FastAPI TestClient.

Checks routing under /api/v1, problem+json error shapes and status codes
for each domain error class, and request-id propagation.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.exc import OperationalError

from survey_engine.logic import lifecycle

from survey_factories import wellbeing_payload

PROBLEM = "application/problem+json"


def _create(client, **overrides) -> Dict[str, Any]:
    resp = client.post("/api/v1/surveys", json=wellbeing_payload(**overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()


def _publish(client, survey_id: str) -> None:
    resp = client.post(f"/api/v1/surveys/{survey_id}/status", json={"status": "active", "performed_by": "admin-1"})
    assert resp.status_code == 200, resp.text


def _ok_id(survey: Dict[str, Any]) -> str:
    return survey["questions"][0]["question_id"]


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "db": True}


def test_request_id_is_generated_and_propagated(client):
    assert client.get("/health").headers.get("X-Request-Id")
    resp = client.get("/health", headers={"X-Request-Id": "req-123"})
    assert resp.headers["X-Request-Id"] == "req-123"


def test_survey_round_trip(client):
    survey = _create(client)
    sid = survey["survey_id"]

    fetched = client.get(f"/api/v1/surveys/{sid}").json()
    assert [q["question_text"] for q in fetched["questions"]] == [q["question_text"] for q in survey["questions"]]

    listed = client.get("/api/v1/surveys").json()
    assert [(s["survey_id"], s["questions_count"]) for s in listed] == [(sid, 2)]

    _publish(client, sid)
    actions = [e["action"] for e in client.get(f"/api/v1/surveys/{sid}/activity").json()]
    assert actions == ["created", "published"]


def test_submit_view_and_analytics(client):
    survey = _create(client, allow_edits=True, edit_limit_hours=24)
    sid = survey["survey_id"]
    _publish(client, sid)
    ok = _ok_id(survey)

    resp = client.post(f"/api/v1/surveys/{sid}/submissions", json={"respondent_id": "t-1", "responses": {ok: "yes"}})
    assert resp.status_code == 201
    body = resp.json()
    assert (body["score_raw"], body["score_max"], body["score_percentage"]) == (2, 2, 100.0)

    view = client.get(f"/api/v1/submissions/{body['submission_id']}").json()
    assert view["editable"] is True
    assert view["responses"] == {ok: {"value": "yes"}}

    edited = client.put(f"/api/v1/submissions/{body['submission_id']}", json={"responses": {ok: {"value": "yes"}}})
    assert edited.status_code == 200
    assert edited.json()["edited"] is True

    listed = client.get(f"/api/v1/surveys/{sid}/submissions").json()
    assert [s["submission_id"] for s in listed] == [body["submission_id"]]

    report = client.get(f"/api/v1/surveys/{sid}/analytics", params={"expected_respondents": 4}).json()
    assert report["total_responses"] == 1
    assert report["completion_rate"] == 25.0
    assert report["questions"][0]["stats"]["yes"] == 1


def test_list_submissions_month_filter(client):
    survey = _create(client)
    sid = survey["survey_id"]
    _publish(client, sid)
    client.post(f"/api/v1/surveys/{sid}/submissions", json={"respondent_id": "t-1", "responses": {_ok_id(survey): "yes"}})

    assert client.get(f"/api/v1/surveys/{sid}/submissions", params={"month": "1999-01"}).json() == []
    resp = client.get(f"/api/v1/surveys/{sid}/submissions", params={"month": "January"})
    assert resp.status_code == 422
    assert resp.json()["code"] == "MONTH_INVALID"


def test_visibility_preview(client):
    survey = _create(client)
    ok, why, note = (q["question_id"] for q in survey["questions"])
    resp = client.post(f"/api/v1/surveys/{survey['survey_id']}/visibility", json={"responses": {ok: {"value": "no"}}})
    assert resp.json() == {"visible": [ok, why, note], "hidden": []}


def test_missing_required_answer_is_422_problem(client):
    survey = _create(client)
    _publish(client, survey["survey_id"])

    resp = client.post(f"/api/v1/surveys/{survey['survey_id']}/submissions", json={"respondent_id": "t-1", "responses": {}})

    assert resp.status_code == 422
    assert resp.headers["content-type"].startswith(PROBLEM)
    problem = resp.json()
    assert problem["code"] == "REQUIRED_ANSWER_MISSING"
    assert problem["question_id"] == _ok_id(survey)


def test_invalid_definition_is_422_problem(client):
    resp = client.post("/api/v1/surveys", json=wellbeing_payload(questions=[]))
    assert resp.status_code == 422
    assert resp.json()["code"] == "SURVEY_QUESTIONS_MISSING"


def test_request_schema_errors_are_422_problem(client):
    resp = client.post("/api/v1/surveys", json={"title": "No questions key", "scoring_mode": "guesswork"})
    assert resp.status_code == 422
    assert resp.headers["content-type"].startswith(PROBLEM)
    assert resp.json()["code"] == "REQUEST_INVALID"


def test_unknown_survey_is_404_problem(client):
    resp = client.get("/api/v1/surveys/does-not-exist")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith(PROBLEM)
    assert resp.json()["code"] == "SURVEY_NOT_FOUND"


def test_duplicate_submission_is_409_problem(client):
    survey = _create(client)
    sid = survey["survey_id"]
    _publish(client, sid)
    payload = {"respondent_id": "t-1", "responses": {_ok_id(survey): {"value": "yes"}}}

    assert client.post(f"/api/v1/surveys/{sid}/submissions", json=payload).status_code == 201
    resp = client.post(f"/api/v1/surveys/{sid}/submissions", json=payload)

    assert resp.status_code == 409
    assert resp.json()["code"] == "DUPLICATE_SUBMISSION"


def test_submit_to_draft_survey_is_409(client):
    survey = _create(client)
    resp = client.post(
        f"/api/v1/surveys/{survey['survey_id']}/submissions",
        json={"respondent_id": "t-1", "responses": {_ok_id(survey): "yes"}},
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "SURVEY_NOT_OPEN"


def test_inconsistency_is_500_with_repair_link(client, monkeypatch):
    survey = _create(client)
    sid = survey["survey_id"]
    _publish(client, sid)
    payload = {_ok_id(survey): {"value": "yes"}}

    def _broken(submission_id, records, conn=None):
        raise OperationalError("INSERT INTO survey_responses", {}, Exception("database is locked"))

    with monkeypatch.context() as m:
        m.setattr(lifecycle, "replace_responses", _broken)
        resp = client.post(f"/api/v1/surveys/{sid}/submissions", json={"respondent_id": "t-1", "responses": payload})

    assert resp.status_code == 500
    problem = resp.json()
    assert problem["code"] == "RESPONSES_INCOMPLETE"
    assert problem["repair"] == f"/api/v1/submissions/{problem['submission_id']}/repair"

    repaired = client.post(problem["repair"], json={"responses": payload})
    assert repaired.status_code == 200
    assert repaired.json()["submission_id"] == problem["submission_id"]
    assert client.get(f"/api/v1/submissions/{problem['submission_id']}").json()["responses_complete"] is True


def test_delete_survey(client):
    survey = _create(client)
    assert client.delete(f"/api/v1/surveys/{survey['survey_id']}").status_code == 204
    assert client.get(f"/api/v1/surveys/{survey['survey_id']}").status_code == 404


def test_update_settings(client):
    survey = _create(client)
    resp = client.put(
        f"/api/v1/surveys/{survey['survey_id']}",
        json={"title": "Termly check", "allow_edits": True, "edit_limit_hours": 12},
    )
    assert resp.status_code == 200
    assert resp.json()["title"] == "Termly check"
    assert resp.json()["edit_limit_hours"] == 12.0


def test_replace_questions_route(client):
    survey = _create(client)
    resp = client.put(
        f"/api/v1/surveys/{survey['survey_id']}/questions",
        json={"questions": [{"question_text": "Rate the term", "question_type": "rating"}]},
    )
    assert resp.status_code == 200
    assert [q["question_type"] for q in resp.json()["questions"]] == ["rating"]
