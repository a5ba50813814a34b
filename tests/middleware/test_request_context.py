"""X-Request-ID handling and its propagation into service logs."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from academy.db.unit_of_work import InMemoryStore
from tests.conftest import build_outline, seed


def test_generated_request_id_is_a_uuid(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])


def test_caller_request_id_is_echoed(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "lb-7f3a"})
    assert resp.headers["x-request-id"] == "lb-7f3a"


@pytest.mark.parametrize("path", ["/nowhere", f"/v1/enrollments/{uuid.uuid4()}"])
def test_error_responses_carry_request_id(client: TestClient, path: str) -> None:
    resp = client.get(path)
    assert resp.status_code in (401, 404)
    assert resp.headers.get("x-request-id")


def test_service_logs_share_the_request_id(
    client: TestClient,
    store: InMemoryStore,
    learner_headers: dict,
    caplog: pytest.LogCaptureFixture,
) -> None:
    outline = seed(store, build_outline(price="0"))
    with caplog.at_level(logging.INFO):
        client.post(
            "/v1/enrollments",
            json={"course_id": str(outline.course.id)},
            headers={**learner_headers, "X-Request-ID": "trace-42"},
        )
    service_records = [r for r in caplog.records if r.name.startswith("academy.services")]
    assert service_records
    assert all(r.request_id == "trace-42" for r in service_records)  # type: ignore[attr-defined]


def test_summary_line_logged_per_request(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="academy.middleware.request_context"):
        client.get("/health")
    summary = [r for r in caplog.records if r.name == "academy.middleware.request_context"]
    assert len(summary) == 1
    assert summary[0].status_code == 200  # type: ignore[attr-defined]
    assert summary[0].path == "/health"  # type: ignore[attr-defined]
