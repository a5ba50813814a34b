"""End-to-end enrollment lifecycles, driven through the HTTP API."""

from __future__ import annotations

from decimal import Decimal

from fastapi.testclient import TestClient

from academy.db.unit_of_work import InMemoryStore
from academy.models.course import (
    Course,
    CourseModule,
    Material,
    MaterialKind,
    Question,
    Quiz,
)
from academy.services.course_rules import CourseOutline, ModuleOutline
from tests.conftest import OWNER_ID, build_outline, seed


def _material(module: CourseModule, position: int) -> Material:
    return Material.new(
        module_id=module.id,
        position=position,
        kind=MaterialKind.DOCUMENT,
        title=f"Reading {position}",
        content_ref=f"https://cdn.example.com/{module.id}/{position}.pdf",
    )


def _scenario_a_outline() -> CourseOutline:
    """Module 1: two materials.  Module 2: one material and a 70% quiz
    worth 5 + 3 + 2 points."""
    course = Course.new(
        slug="scenario-a", title="Scenario A", owner_id=OWNER_ID, price=Decimal("0")
    )
    m1 = CourseModule.new(course_id=course.id, position=1, title="Basics")
    m2 = CourseModule.new(course_id=course.id, position=2, title="Assessment")
    quiz = Quiz.new(module_id=m2.id, title="Final check", passing_threshold_percent=70)
    questions = tuple(
        Question.new(
            quiz_id=quiz.id,
            position=i,
            prompt=f"Question {i}",
            choices=[("right", True), ("wrong", False)],
            points=points,
        )
        for i, points in enumerate((5, 3, 2), start=1)
    )
    return CourseOutline(
        course=course,
        modules=(
            ModuleOutline(module=m1, materials=(_material(m1, 1), _material(m1, 2))),
            ModuleOutline(
                module=m2, materials=(_material(m2, 1),), quiz=quiz, questions=questions
            ),
        ),
    )


def _answer(question: Question, correct: bool) -> dict:
    option = next(o for o in question.options if o.is_correct == correct)
    return {"question_id": str(question.id), "option_id": str(option.id)}


def _complete(client: TestClient, enrollment_id: str, entry: ModuleOutline, i: int, headers):
    return client.post(
        f"/v1/enrollments/{enrollment_id}/completions",
        json={
            "module_id": str(entry.module.id),
            "material_id": str(entry.materials[i].id),
        },
        headers=headers,
    )


def test_scenario_a_quiz_retry_completes_course(
    client: TestClient, store: InMemoryStore, learner_headers: dict
) -> None:
    outline = seed(store, _scenario_a_outline())
    m1, m2 = outline.modules
    enrollment_id = client.post(
        "/v1/enrollments", json={"course_id": str(outline.course.id)}, headers=learner_headers
    ).json()["id"]

    _complete(client, enrollment_id, m1, 0, learner_headers)
    result = _complete(client, enrollment_id, m1, 1, learner_headers).json()
    assert result["module_complete"] is True
    assert result["next_module_id"] == str(m2.module.id)
    assert _complete(client, enrollment_id, m2, 0, learner_headers).json()["quiz_required"]

    attempts_url = f"/v1/enrollments/{enrollment_id}/quizzes/{m2.quiz.id}/attempts"
    q1, q2, q3 = m2.questions

    first = client.post(attempts_url, headers=learner_headers).json()["attempt"]
    half = [_answer(q1, True), _answer(q2, False), _answer(q3, False)]
    body = client.post(
        f"/v1/attempts/{first['id']}/submit", json={"answers": half}, headers=learner_headers
    ).json()
    assert body["attempt"]["score_percent"] == "50.00"
    assert body["module_complete"] is False
    assert body["course_complete"] is False
    assert body["certificate_id"] is None

    second = client.post(attempts_url, headers=learner_headers).json()["attempt"]
    eighty = [_answer(q1, True), _answer(q2, True), _answer(q3, False)]
    body = client.post(
        f"/v1/attempts/{second['id']}/submit", json={"answers": eighty}, headers=learner_headers
    ).json()
    assert body["attempt"]["score_percent"] == "80.00"
    assert body["module_complete"] is True
    assert body["course_complete"] is True
    assert body["certificate_id"] is not None

    enrollment = client.get(f"/v1/enrollments/{enrollment_id}", headers=learner_headers)
    assert enrollment.json()["status"] == "completed"
    issued = [
        c for c in store.certificates.snapshot().values()
        if str(c.enrollment_id) == enrollment_id
    ]
    assert len(issued) == 1


def test_scenario_b_reject_resubmit_approve(
    client: TestClient,
    store: InMemoryStore,
    learner_headers: dict,
    owner_headers: dict,
) -> None:
    outline = seed(store, build_outline(price="500.00"))
    enrollment_id = client.post(
        "/v1/enrollments", json={"course_id": str(outline.course.id)}, headers=learner_headers
    ).json()["id"]
    payments_url = f"/v1/enrollments/{enrollment_id}/payments"
    proof = {
        "proof_ref": "https://files.example.com/comprovante.jpg",
        "method": "mpesa",
        "amount": "500",
    }

    first = client.post(payments_url, json=proof, headers=learner_headers).json()
    resp = client.post(
        f"/v1/payments/{first['id']}/decision",
        json={"outcome": "reject", "reason": "comprovante ilegível"},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    status = client.get(f"/v1/enrollments/{enrollment_id}", headers=learner_headers)
    assert status.json()["status"] == "pending_payment"

    second = client.post(payments_url, json=proof, headers=learner_headers).json()
    decision_url = f"/v1/payments/{second['id']}/decision"
    assert client.post(
        decision_url, json={"outcome": "approve"}, headers=owner_headers
    ).status_code == 200
    status = client.get(f"/v1/enrollments/{enrollment_id}", headers=learner_headers)
    assert status.json()["status"] == "active"

    again = client.post(decision_url, json={"outcome": "approve"}, headers=owner_headers)
    assert again.status_code == 409
    assert again.json()["code"] == "invalid_state"


def test_scenario_c_free_course_skips_review(
    client: TestClient, store: InMemoryStore, learner_headers: dict
) -> None:
    outline = seed(store, build_outline(price="0"))
    resp = client.post(
        "/v1/enrollments", json={"course_id": str(outline.course.id)}, headers=learner_headers
    )
    assert resp.status_code == 201
    assert resp.json()["status"] == "active"
    history = client.get(
        f"/v1/enrollments/{resp.json()['id']}/payments", headers=learner_headers
    ).json()
    assert [p["status"] for p in history] == ["approved"]


def test_scenario_d_module_three_locked_behind_module_two(
    client: TestClient, store: InMemoryStore, learner_headers: dict
) -> None:
    outline = seed(store, build_outline(price="0", modules=3, materials=1))
    m1, _, m3 = outline.modules
    enrollment_id = client.post(
        "/v1/enrollments", json={"course_id": str(outline.course.id)}, headers=learner_headers
    ).json()["id"]
    _complete(client, enrollment_id, m1, 0, learner_headers)

    resp = _complete(client, enrollment_id, m3, 0, learner_headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "not_accessible"
