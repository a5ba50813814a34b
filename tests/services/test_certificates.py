from __future__ import annotations

import re
import uuid

import pytest
from prometheus_client import REGISTRY

from academy.core.errors import AlreadyIssued, InvalidState, NotAuthorized, NotFound
from academy.db.unit_of_work import InMemoryStore
from academy.models.principal import Principal
from academy.services import certificates, payment_ledger, unlock_engine
from tests.conftest import ADMIN, LEARNER, OWNER, build_outline, run, seed

CODE_PATTERN = re.compile(r"^CERT-\d{4}-[A-Z2-7]{10}$")
SECOND = Principal(user_id=uuid.uuid4(), roles=frozenset({"learner"}))


def _completed_enrollment(store: InMemoryStore):
    outline = seed(store, build_outline(price="0", modules=1, materials=1))
    enrollment = run(payment_ledger.create_intent(store, LEARNER, outline.course.id))
    entry = outline.modules[0]
    run(
        unlock_engine.register_completion(
            store, LEARNER, enrollment.id, entry.module.id, entry.materials[0].id
        )
    )
    return outline, run(payment_ledger.get_enrollment(store, LEARNER, enrollment.id))


def test_generated_code_format() -> None:
    code = certificates.generate_code(2025)
    assert CODE_PATTERN.match(code)
    assert code.startswith("CERT-2025-")


def test_codes_do_not_repeat() -> None:
    codes = {certificates.generate_code(2025) for _ in range(200)}
    assert len(codes) == 200


def test_completion_issues_exactly_one_certificate(store: InMemoryStore) -> None:
    before = REGISTRY.get_sample_value("certificates_issued_total") or 0.0
    outline, enrollment = _completed_enrollment(store)
    after = REGISTRY.get_sample_value("certificates_issued_total") or 0.0

    cert = run(certificates.request_certificate(store, LEARNER, enrollment.id))
    assert CODE_PATTERN.match(cert.verification_code)
    assert cert.artifact_ref == f"memory://certificates/{cert.verification_code}"
    assert after - before == 1

    again = run(certificates.request_certificate(store, LEARNER, enrollment.id))
    assert again.id == cert.id

    document = store.artifacts.documents[cert.artifact_ref]
    assert document.course_title == outline.course.title
    assert document.learner_id == LEARNER.user_id
    issued = [
        n
        for n in store.notifier.for_recipient(LEARNER.user_id)
        if n.kind == "certificate_issued"
    ]
    assert len(issued) == 1
    assert issued[0].title == "Certificate issued"
    assert outline.course.title in issued[0].message
    assert issued[0].link == f"/certificates/{cert.verification_code}/verify"


def test_issue_twice_is_refused(store: InMemoryStore) -> None:
    _, enrollment = _completed_enrollment(store)

    async def issue_again():
        async with store.transaction() as uow:
            await certificates.issue(uow, enrollment)

    with pytest.raises(AlreadyIssued):
        run(issue_again())


def test_issue_requires_completed_enrollment(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="0"))
    enrollment = run(payment_ledger.create_intent(store, LEARNER, outline.course.id))

    async def issue_early():
        async with store.transaction() as uow:
            await certificates.issue(uow, enrollment)

    with pytest.raises(InvalidState):
        run(issue_early())
    with pytest.raises(InvalidState):
        run(certificates.request_certificate(store, LEARNER, enrollment.id))


def test_request_recovers_missing_certificate(store: InMemoryStore) -> None:
    _, enrollment = _completed_enrollment(store)
    # Simulate a crash between completion and issuance.
    store.certificates.restore({})

    cert = run(certificates.request_certificate(store, LEARNER, enrollment.id))
    assert cert.enrollment_id == enrollment.id
    assert run(store.certificates.get_for_enrollment(enrollment.id)) == cert


def test_request_certificate_authorization(store: InMemoryStore) -> None:
    _, enrollment = _completed_enrollment(store)
    assert run(certificates.request_certificate(store, ADMIN, enrollment.id))
    with pytest.raises(NotAuthorized):
        run(certificates.request_certificate(store, OWNER, enrollment.id))


def test_verify_is_case_and_whitespace_tolerant(store: InMemoryStore) -> None:
    outline, enrollment = _completed_enrollment(store)
    cert = run(certificates.request_certificate(store, LEARNER, enrollment.id))

    result = run(certificates.verify(store, f"  {cert.verification_code.lower()} "))
    assert result.verification_code == cert.verification_code
    assert result.learner_id == LEARNER.user_id
    assert result.course_id == outline.course.id
    assert result.course_title == outline.course.title
    assert result.issued_at == cert.issued_at


def test_verify_unknown_code(store: InMemoryStore) -> None:
    with pytest.raises(NotFound):
        run(certificates.verify(store, "CERT-2025-AAAAAAAAAA"))


def test_code_collision_is_retried(
    store: InMemoryStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    _, first = _completed_enrollment(store)
    taken = run(store.certificates.get_for_enrollment(first.id)).verification_code

    codes = iter([taken, "CERT-2025-BBBBBBBBBB"])
    monkeypatch.setattr(certificates, "generate_code", lambda year: next(codes))

    outline = seed(store, build_outline(price="0", modules=1, materials=1))
    other = run(payment_ledger.create_intent(store, SECOND, outline.course.id))
    entry = outline.modules[0]
    result = run(
        unlock_engine.register_completion(
            store, SECOND, other.id, entry.module.id, entry.materials[0].id
        )
    )
    cert = run(store.certificates.get_for_enrollment(other.id))
    assert cert.id == result.certificate_id
    assert cert.verification_code == "CERT-2025-BBBBBBBBBB"


def test_code_space_exhaustion_rolls_back_completion(
    store: InMemoryStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    _, first = _completed_enrollment(store)
    taken = run(store.certificates.get_for_enrollment(first.id)).verification_code
    monkeypatch.setattr(certificates, "generate_code", lambda year: taken)

    outline = seed(store, build_outline(price="0", modules=1, materials=1))
    other = run(payment_ledger.create_intent(store, SECOND, outline.course.id))
    entry = outline.modules[0]
    with pytest.raises(RuntimeError):
        run(
            unlock_engine.register_completion(
                store, SECOND, other.id, entry.module.id, entry.materials[0].id
            )
        )
    current = run(payment_ledger.get_enrollment(store, SECOND, other.id))
    assert current.status.value == "active"
    assert run(store.completions.list_for_enrollment(other.id)) == []


def _race_on_insert(
    store: InMemoryStore, monkeypatch: pytest.MonkeyPatch, lost: set[str]
) -> None:
    """Make inserts of the codes in ``lost`` fail as if a concurrent writer won."""
    original_add = store.certificates.add

    async def add(certificate):
        if certificate.verification_code in lost:
            raise ValueError("verification code already in use")
        await original_add(certificate)

    monkeypatch.setattr(store.certificates, "add", add)


def test_lost_insert_race_leaves_no_document(
    store: InMemoryStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    raced = "CERT-2025-CCCCCCCCCC"
    codes = iter([raced, "CERT-2025-DDDDDDDDDD"])
    monkeypatch.setattr(certificates, "generate_code", lambda year: next(codes))
    _race_on_insert(store, monkeypatch, {raced})

    _, enrollment = _completed_enrollment(store)

    cert = run(certificates.request_certificate(store, LEARNER, enrollment.id))
    assert cert.verification_code == "CERT-2025-DDDDDDDDDD"
    assert list(store.artifacts.documents) == [cert.artifact_ref]
    assert store.artifacts.certificate_ref(raced) not in store.artifacts.documents


def test_exhausted_insert_races_store_no_document(
    store: InMemoryStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    code = "CERT-2025-EEEEEEEEEE"
    monkeypatch.setattr(certificates, "generate_code", lambda year: code)
    _race_on_insert(store, monkeypatch, {code})

    outline = seed(store, build_outline(price="0", modules=1, materials=1))
    enrollment = run(payment_ledger.create_intent(store, LEARNER, outline.course.id))
    entry = outline.modules[0]
    with pytest.raises(RuntimeError):
        run(
            unlock_engine.register_completion(
                store, LEARNER, enrollment.id, entry.module.id, entry.materials[0].id
            )
        )
    assert store.artifacts.documents == {}
    assert run(store.certificates.list_for_enrollments(None)) == []


# ---- listing ----


def test_learner_lists_own_certificates(store: InMemoryStore) -> None:
    _, enrollment = _completed_enrollment(store)
    cert = run(certificates.request_certificate(store, LEARNER, enrollment.id))

    assert run(certificates.list_certificates(store, LEARNER)) == [cert]
    assert run(certificates.list_certificates(store, SECOND)) == []


def test_owner_lists_certificates_of_owned_courses(store: InMemoryStore) -> None:
    _, enrollment = _completed_enrollment(store)
    cert = run(certificates.request_certificate(store, LEARNER, enrollment.id))

    outsider = Principal(user_id=uuid.uuid4(), roles=frozenset({"instructor"}))
    other_course = seed(
        store, build_outline(price="0", modules=1, materials=1, owner_id=outsider.user_id)
    )
    other = run(payment_ledger.create_intent(store, SECOND, other_course.course.id))
    entry = other_course.modules[0]
    run(
        unlock_engine.register_completion(
            store, SECOND, other.id, entry.module.id, entry.materials[0].id
        )
    )
    theirs = run(store.certificates.get_for_enrollment(other.id))

    assert run(certificates.list_certificates(store, OWNER)) == [cert]
    assert run(certificates.list_certificates(store, outsider)) == [theirs]
    everything = run(certificates.list_certificates(store, ADMIN))
    assert {c.id for c in everything} == {cert.id, theirs.id}


def test_unknown_enrollment(store: InMemoryStore) -> None:
    with pytest.raises(NotFound):
        run(certificates.request_certificate(store, LEARNER, uuid.uuid4()))
