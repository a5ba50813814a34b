"""Demo: walk a paid enrollment from proof of payment to certificate.

Uses FastAPI TestClient against the in-memory store, so no database is
needed.  Tokens are minted locally, which only works while
JWT_PUBLIC_KEY_PEM is unset.

Run with:
    python scripts/demo_enrollment_flow.py
"""

from __future__ import annotations

import asyncio
import uuid

from fastapi.testclient import TestClient

from academy.db import unit_of_work
from academy.db.seed import SAMPLE_OWNER_ID, sample_outlines
from academy.main import app
from academy.services import token_service
from academy.services.course_rules import import_course


def _headers(user_id: uuid.UUID, role: str) -> dict[str, str]:
    token = token_service.create_access_token(sub=str(user_id), roles=[role])
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)
    store = unit_of_work.store

    # ── Seed data ───────────────────────────────────────────────────
    outline = sample_outlines()[0]
    asyncio.run(import_course(store, outline))
    learner = _headers(uuid.uuid4(), "learner")
    owner = _headers(SAMPLE_OWNER_ID, "instructor")

    # ── Step 1: enroll ──────────────────────────────────────────────
    r = client.post("/v1/enrollments", json={"course_id": str(outline.course.id)}, headers=learner)
    enrollment_id = r.json()["id"]
    print(f"1. POST /v1/enrollments          → {r.status_code}  ({r.json()['status']})")

    # ── Step 2: submit proof ────────────────────────────────────────
    r = client.post(
        f"/v1/enrollments/{enrollment_id}/payments",
        json={
            "proof_ref": "https://files.example.com/receipt.jpg",
            "method": "mpesa",
            "amount": str(outline.course.price),
        },
        headers=learner,
    )
    payment = r.json()
    print(f"2. POST .../payments             → {r.status_code}  ({payment['reference_code']})")

    # ── Step 3: owner approves ──────────────────────────────────────
    r = client.post(
        f"/v1/payments/{payment['id']}/decision", json={"outcome": "approve"}, headers=owner
    )
    print(f"3. POST .../decision (approve)   → {r.status_code}  ({r.json()['status']})")

    # ── Step 4: work through every module ───────────────────────────
    certificate_id = None
    for entry in outline.modules:
        for material in entry.materials:
            client.post(
                f"/v1/enrollments/{enrollment_id}/completions",
                json={"module_id": str(entry.module.id), "material_id": str(material.id)},
                headers=learner,
            )
        if entry.quiz is None:
            continue
        sheet = client.post(
            f"/v1/enrollments/{enrollment_id}/quizzes/{entry.quiz.id}/attempts",
            headers=learner,
        ).json()
        answers = [
            {
                "question_id": str(q.id),
                "option_id": str(q.correct_options()[0].id),
            }
            for q in entry.questions
        ]
        r = client.post(
            f"/v1/attempts/{sheet['attempt']['id']}/submit",
            json={"answers": answers},
            headers=learner,
        )
        result = r.json()
        certificate_id = result["certificate_id"] or certificate_id
        print(
            f"4. quiz '{entry.quiz.title}' → {r.status_code}  "
            f"(score {result['attempt']['score_percent']}%)"
        )

    # ── Step 5: progress and certificate ────────────────────────────
    r = client.get(f"/v1/enrollments/{enrollment_id}/progress", headers=learner)
    print(f"5. GET  .../progress             → {r.status_code}  ({r.json()['progress_percent']}%)")

    r = client.get(f"/v1/enrollments/{enrollment_id}/certificate", headers=learner)
    code = r.json()["verification_code"]
    print(f"6. GET  .../certificate          → {r.status_code}  ({code})")

    r = client.get(f"/v1/certificates/{code.lower()}/verify")
    print(f"7. GET  /v1/certificates/.../verify → {r.status_code}  (valid={r.json()['valid']})")

    assert certificate_id is not None, "course did not complete"
    print("\nDemo complete.")


if __name__ == "__main__":
    main()
