"""JSON-lines output: one parseable object per record, domain context as keys."""

from __future__ import annotations

import json
import logging
import sys

from academy.core.logging import _ContainerFormatter, _JsonFormatter


def _make(extra: dict | None = None, **kwargs) -> logging.LogRecord:
    logger = logging.getLogger("academy.services.quiz_engine")
    fields = {"level": logging.INFO, "msg": "attempt submitted", "args": (), "exc_info": None}
    fields.update(kwargs)
    return logger.makeRecord(
        logger.name,
        fields["level"],
        "quiz_engine.py",
        1,
        fields["msg"],
        fields["args"],
        fields["exc_info"],
        extra=extra,
    )


def test_json_line_has_the_base_keys() -> None:
    parsed = json.loads(_JsonFormatter().format(_make(msg="score %s", args=("80.00",))))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "academy.services.quiz_engine"
    assert parsed["message"] == "score 80.00"
    assert "timestamp" in parsed


def test_request_fields_become_keys() -> None:
    record = _make(
        extra={
            "method": "POST",
            "path": "/v1/attempts/x/submit",
            "status_code": 200,
            "duration_ms": 3.2,
        }
    )
    record.request_id = "req-1"  # type: ignore[attr-defined]
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "req-1"
    assert parsed["status_code"] == 200
    assert parsed["duration_ms"] == 3.2


def test_domain_context_becomes_keys() -> None:
    record = _make(
        level=logging.WARNING,
        extra={
            "enrollment_id": "e-1",
            "payment_id": "p-1",
            "transition": "reject",
            "error_code": "invalid_state",
        },
    )
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["enrollment_id"] == "e-1"
    assert parsed["payment_id"] == "p-1"
    assert parsed["transition"] == "reject"
    assert parsed["error_code"] == "invalid_state"
    assert "attempt_id" not in parsed


def test_exception_text_is_included() -> None:
    try:
        raise RuntimeError("artifact store unavailable")
    except RuntimeError:
        record = _make(level=logging.ERROR, msg="issuance failed", exc_info=sys.exc_info())
    parsed = json.loads(_JsonFormatter().format(record))
    assert "RuntimeError: artifact store unavailable" in parsed["exception"]


def test_uuid_values_are_stringified() -> None:
    import uuid

    enrollment_id = uuid.uuid4()
    parsed = json.loads(_JsonFormatter().format(_make(extra={"enrollment_id": enrollment_id})))
    assert parsed["enrollment_id"] == str(enrollment_id)


def test_container_format_is_not_json() -> None:
    output = _ContainerFormatter().format(_make())
    assert "academy.services.quiz_engine" in output
    assert not output.lstrip().startswith("{")
