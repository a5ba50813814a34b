"""Tests for enrollment, payment-proof and review endpoints."""

from __future__ import annotations

import uuid

from fastapi.testclient import TestClient

from academy.db.unit_of_work import InMemoryStore
from tests.conftest import LEARNER_ID, OWNER_ID, auth, build_outline, seed

PROOF = {
    "proof_ref": "https://files.example.com/receipts/1234.png",
    "method": "mpesa",
    "amount": "1500.00",
    "notes": "paid from 84 123 4567",
}


def _enroll(client: TestClient, course_id, headers) -> dict:
    resp = client.post("/v1/enrollments", json={"course_id": str(course_id)}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---- 401: unauthenticated ----


def test_create_enrollment_rejects_missing_token(client: TestClient) -> None:
    resp = client.post("/v1/enrollments", json={"course_id": str(uuid.uuid4())})
    assert resp.status_code == 401


def test_token_with_non_uuid_subject_is_rejected(client: TestClient) -> None:
    resp = client.get(
        f"/v1/enrollments/{uuid.uuid4()}",
        headers=auth("not-a-uuid"),  # type: ignore[arg-type]
    )
    assert resp.status_code == 401


# ---- 201: create ----


def test_create_enrollment_paid_course(
    client: TestClient, store: InMemoryStore, learner_headers: dict
) -> None:
    course = seed(store, build_outline(price="1500.00")).course
    body = _enroll(client, course.id, learner_headers)
    assert body["status"] == "pending_payment"
    assert body["learner_id"] == str(LEARNER_ID)
    assert body["course_id"] == str(course.id)
    assert body["activated_at"] is None


def test_create_enrollment_free_course_is_active(
    client: TestClient, store: InMemoryStore, learner_headers: dict
) -> None:
    course = seed(store, build_outline(price="0")).course
    body = _enroll(client, course.id, learner_headers)
    assert body["status"] == "active"

    payments = client.get(f"/v1/enrollments/{body['id']}/payments", headers=learner_headers)
    assert payments.status_code == 200
    assert [p["method"] for p in payments.json()] == ["free"]


def test_duplicate_enrollment_is_conflict(
    client: TestClient, store: InMemoryStore, learner_headers: dict
) -> None:
    course = seed(store, build_outline()).course
    _enroll(client, course.id, learner_headers)
    resp = client.post(
        "/v1/enrollments", json={"course_id": str(course.id)}, headers=learner_headers
    )
    assert resp.status_code == 409
    assert resp.json() == {
        "detail": "learner already has an enrollment for this course",
        "code": "already_enrolled",
    }


def test_enrollment_for_unknown_course_is_404(
    client: TestClient, learner_headers: dict
) -> None:
    resp = client.post(
        "/v1/enrollments", json={"course_id": str(uuid.uuid4())}, headers=learner_headers
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


# ---- payment proof + review ----


def test_submit_proof_then_owner_approves(
    client: TestClient,
    store: InMemoryStore,
    learner_headers: dict,
    owner_headers: dict,
) -> None:
    course = seed(store, build_outline()).course
    enrollment = _enroll(client, course.id, learner_headers)

    resp = client.post(
        f"/v1/enrollments/{enrollment['id']}/payments", json=PROOF, headers=learner_headers
    )
    assert resp.status_code == 201
    payment = resp.json()
    assert payment["status"] == "pending_review"
    assert payment["amount"] == "1500.00"
    assert payment["currency"] == "MZN"
    assert payment["reference_code"].startswith("PAY-")

    resp = client.post(
        f"/v1/payments/{payment['id']}/decision",
        json={"outcome": "approve"},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"
    assert resp.json()["decided_by"] == str(OWNER_ID)

    resp = client.get(f"/v1/enrollments/{enrollment['id']}", headers=learner_headers)
    assert resp.json()["status"] == "active"


def test_second_proof_while_under_review_is_conflict(
    client: TestClient, store: InMemoryStore, learner_headers: dict
) -> None:
    course = seed(store, build_outline()).course
    enrollment = _enroll(client, course.id, learner_headers)
    url = f"/v1/enrollments/{enrollment['id']}/payments"
    assert client.post(url, json=PROOF, headers=learner_headers).status_code == 201
    resp = client.post(url, json=PROOF, headers=learner_headers)
    assert resp.status_code == 409
    assert resp.json()["code"] == "duplicate_submission"


def test_invalid_payment_method_is_422(
    client: TestClient, store: InMemoryStore, learner_headers: dict
) -> None:
    course = seed(store, build_outline()).course
    enrollment = _enroll(client, course.id, learner_headers)
    resp = client.post(
        f"/v1/enrollments/{enrollment['id']}/payments",
        json={**PROOF, "method": "free"},
        headers=learner_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "invalid_argument"


def test_missing_proof_fields_fail_request_validation(
    client: TestClient, learner_headers: dict
) -> None:
    resp = client.post(
        f"/v1/enrollments/{uuid.uuid4()}/payments",
        json={"method": "mpesa"},
        headers=learner_headers,
    )
    assert resp.status_code == 422


def test_reject_requires_reason_then_learner_resubmits(
    client: TestClient,
    store: InMemoryStore,
    learner_headers: dict,
    owner_headers: dict,
) -> None:
    course = seed(store, build_outline()).course
    enrollment = _enroll(client, course.id, learner_headers)
    url = f"/v1/enrollments/{enrollment['id']}/payments"
    payment = client.post(url, json=PROOF, headers=learner_headers).json()

    decision_url = f"/v1/payments/{payment['id']}/decision"
    resp = client.post(decision_url, json={"outcome": "reject"}, headers=owner_headers)
    assert resp.status_code == 422
    assert resp.json()["code"] == "invalid_argument"

    resp = client.post(
        decision_url,
        json={"outcome": "reject", "reason": "receipt is for a different amount"},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"

    assert client.post(url, json=PROOF, headers=learner_headers).status_code == 201
    history = client.get(url, headers=owner_headers).json()
    assert [p["status"] for p in history] == ["rejected", "pending_review"]


def test_learner_cannot_decide_own_payment(
    client: TestClient, store: InMemoryStore, learner_headers: dict
) -> None:
    course = seed(store, build_outline()).course
    enrollment = _enroll(client, course.id, learner_headers)
    payment = client.post(
        f"/v1/enrollments/{enrollment['id']}/payments", json=PROOF, headers=learner_headers
    ).json()
    resp = client.post(
        f"/v1/payments/{payment['id']}/decision",
        json={"outcome": "approve"},
        headers=learner_headers,
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "not_authorized"


# ---- visibility + suspension ----


def test_stranger_cannot_read_enrollment(
    client: TestClient, store: InMemoryStore, learner_headers: dict
) -> None:
    course = seed(store, build_outline()).course
    enrollment = _enroll(client, course.id, learner_headers)
    resp = client.get(f"/v1/enrollments/{enrollment['id']}", headers=auth(uuid.uuid4()))
    assert resp.status_code == 403


def test_admin_suspends_pending_enrollment(
    client: TestClient,
    store: InMemoryStore,
    learner_headers: dict,
    admin_headers: dict,
) -> None:
    course = seed(store, build_outline()).course
    enrollment = _enroll(client, course.id, learner_headers)
    url = f"/v1/enrollments/{enrollment['id']}/suspend"

    resp = client.post(url, json={"reason": "fraud"}, headers=learner_headers)
    assert resp.status_code == 403

    resp = client.post(url, json={"reason": "fraud"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "suspended"

    again = client.post(url, json={"reason": "fraud"}, headers=admin_headers)
    assert again.status_code == 409
    assert again.json()["code"] == "invalid_transition"


# ---- review queue ----


def test_owner_review_queue_lists_pending_proofs(
    client: TestClient,
    store: InMemoryStore,
    learner_headers: dict,
    owner_headers: dict,
) -> None:
    mine = seed(store, build_outline()).course
    enrollment = _enroll(client, mine.id, learner_headers)
    payment = client.post(
        f"/v1/enrollments/{enrollment['id']}/payments", json=PROOF, headers=learner_headers
    ).json()

    elsewhere = seed(store, build_outline(owner_id=uuid.uuid4())).course
    other = _enroll(client, elsewhere.id, learner_headers)
    client.post(f"/v1/enrollments/{other['id']}/payments", json=PROOF, headers=learner_headers)

    resp = client.get("/v1/payments", headers=owner_headers)
    assert resp.status_code == 200
    assert [p["id"] for p in resp.json()] == [payment["id"]]

    resp = client.get("/v1/payments", params={"status": "approved"}, headers=owner_headers)
    assert resp.json() == []


def test_review_queue_unknown_status_is_422(
    client: TestClient, owner_headers: dict
) -> None:
    resp = client.get("/v1/payments", params={"status": "refunded"}, headers=owner_headers)
    assert resp.status_code == 422
    assert resp.json()["code"] == "invalid_argument"


def test_suspending_under_review_closes_the_proof(
    client: TestClient,
    store: InMemoryStore,
    learner_headers: dict,
    owner_headers: dict,
    admin_headers: dict,
) -> None:
    course = seed(store, build_outline()).course
    enrollment = _enroll(client, course.id, learner_headers)
    client.post(
        f"/v1/enrollments/{enrollment['id']}/payments", json=PROOF, headers=learner_headers
    )
    resp = client.post(
        f"/v1/enrollments/{enrollment['id']}/suspend",
        json={"reason": "chargeback fraud"},
        headers=admin_headers,
    )
    assert resp.status_code == 200

    assert client.get("/v1/payments", headers=owner_headers).json() == []
    history = client.get(
        f"/v1/enrollments/{enrollment['id']}/payments", headers=owner_headers
    ).json()
    assert [(p["status"], p["decision_reason"]) for p in history] == [
        ("rejected", "chargeback fraud")
    ]
