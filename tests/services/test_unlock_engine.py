"""Progressive unlocking: module gating, idempotent completion, progress."""

from __future__ import annotations

import uuid

import pytest
from prometheus_client import REGISTRY

from academy.core.errors import NotAccessible, NotAuthorized, NotFound
from academy.db.unit_of_work import InMemoryStore
from academy.models.enrollment import EnrollmentStatus
from academy.models.principal import Principal
from academy.models.progress import ModuleState
from academy.services import payment_ledger, unlock_engine
from academy.services.course_rules import CourseOutline
from tests.conftest import LEARNER, OWNER, build_outline, run, seed


def _enroll(store: InMemoryStore, outline: CourseOutline):
    return run(payment_ledger.create_intent(store, LEARNER, outline.course.id))


def _complete(store, enrollment, outline, module_pos: int, material_pos: int):
    entry = outline.modules[module_pos - 1]
    return run(
        unlock_engine.register_completion(
            store,
            LEARNER,
            enrollment.id,
            entry.module.id,
            entry.materials[material_pos - 1].id,
        )
    )


def _progress(store, enrollment, caller=LEARNER):
    return run(unlock_engine.get_progress(store, caller, enrollment.id))


# ---- gating ----


def test_first_module_is_open_on_activation(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="0", modules=3))
    enrollment = _enroll(store, outline)

    progress = _progress(store, enrollment)
    assert [m.accessible for m in progress.modules] == [True, False, False]
    assert progress.next_module_id == outline.modules[0].module.id
    assert progress.progress_percent == 0
    assert not progress.course_complete


def test_nothing_is_open_before_payment_is_approved(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="1500.00"))
    enrollment = _enroll(store, outline)

    progress = _progress(store, enrollment)
    assert not any(m.accessible for m in progress.modules)
    assert progress.next_module_id is None
    with pytest.raises(NotAccessible):
        _complete(store, enrollment, outline, 1, 1)


def test_later_module_stays_locked_until_previous_complete(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="0", modules=2, materials=2))
    enrollment = _enroll(store, outline)

    with pytest.raises(NotAccessible):
        _complete(store, enrollment, outline, 2, 1)

    _complete(store, enrollment, outline, 1, 1)
    with pytest.raises(NotAccessible):
        _complete(store, enrollment, outline, 2, 1)

    result = _complete(store, enrollment, outline, 1, 2)
    assert result.module_complete
    assert result.next_module_id == outline.modules[1].module.id
    _complete(store, enrollment, outline, 2, 1)


def test_quiz_gates_the_next_module(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="0", modules=2, quiz_modules=(1,)))
    enrollment = _enroll(store, outline)

    _complete(store, enrollment, outline, 1, 1)
    result = _complete(store, enrollment, outline, 1, 2)
    assert not result.module_complete
    assert result.quiz_required
    assert result.quiz_id == outline.modules[0].quiz.id

    progress = _progress(store, enrollment)
    assert progress.modules[0].quiz_passed is False
    assert not progress.modules[1].accessible
    with pytest.raises(NotAccessible):
        _complete(store, enrollment, outline, 2, 1)


# ---- idempotence ----


def test_repeat_completion_is_a_no_op(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="0"))
    enrollment = _enroll(store, outline)

    first = _complete(store, enrollment, outline, 1, 1)
    events_after_first = len(run(store.events.list_for_enrollment(enrollment.id)))
    before = REGISTRY.get_sample_value(
        "material_completions_total", {"result": "duplicate"}
    ) or 0.0
    second = _complete(store, enrollment, outline, 1, 1)
    after = REGISTRY.get_sample_value(
        "material_completions_total", {"result": "duplicate"}
    ) or 0.0

    assert first.newly_recorded
    assert second.accepted
    assert not second.newly_recorded
    assert after - before == 1
    assert len(run(store.events.list_for_enrollment(enrollment.id))) == events_after_first
    assert _progress(store, enrollment).modules[0].materials_done == 1


# ---- completion cascade ----


def test_last_material_completes_course_and_issues_certificate(
    store: InMemoryStore,
) -> None:
    outline = seed(store, build_outline(price="0", modules=2, materials=1))
    enrollment = _enroll(store, outline)

    _complete(store, enrollment, outline, 1, 1)
    result = _complete(store, enrollment, outline, 2, 1)

    assert result.course_complete
    assert result.certificate_id is not None
    assert result.next_module_id is None
    current = run(payment_ledger.get_enrollment(store, LEARNER, enrollment.id))
    assert current.status == EnrollmentStatus.COMPLETED
    assert current.completed_at is not None
    cert = run(store.certificates.get_for_enrollment(enrollment.id))
    assert cert.id == result.certificate_id

    progress = _progress(store, enrollment)
    assert progress.progress_percent == 100
    assert progress.course_complete


def test_completed_enrollment_still_reaches_content(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="0", modules=1, materials=1))
    enrollment = _enroll(store, outline)
    _complete(store, enrollment, outline, 1, 1)

    again = _complete(store, enrollment, outline, 1, 1)
    assert again.accepted
    assert not again.newly_recorded
    assert again.certificate_id is None


# ---- lookups and authorization ----


def test_unknown_module_or_material(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="0"))
    enrollment = _enroll(store, outline)
    first = outline.modules[0]
    second = outline.modules[1]

    with pytest.raises(NotFound):
        run(
            unlock_engine.register_completion(
                store, LEARNER, enrollment.id, uuid.uuid4(), first.materials[0].id
            )
        )
    with pytest.raises(NotFound):
        run(
            unlock_engine.register_completion(
                store, LEARNER, enrollment.id, first.module.id, second.materials[0].id
            )
        )


def test_module_from_another_course_is_not_found(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="0"))
    other = seed(store, build_outline(price="0"))
    enrollment = _enroll(store, outline)
    foreign = other.modules[0]
    with pytest.raises(NotFound):
        run(
            unlock_engine.register_completion(
                store, LEARNER, enrollment.id, foreign.module.id, foreign.materials[0].id
            )
        )


def test_only_the_learner_records_progress(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="0"))
    enrollment = _enroll(store, outline)
    entry = outline.modules[0]
    with pytest.raises(NotAuthorized):
        run(
            unlock_engine.register_completion(
                store, OWNER, enrollment.id, entry.module.id, entry.materials[0].id
            )
        )


def test_progress_visible_to_owner_not_stranger(store: InMemoryStore) -> None:
    outline = seed(store, build_outline(price="0"))
    enrollment = _enroll(store, outline)
    assert _progress(store, enrollment, OWNER).enrollment_id == enrollment.id
    with pytest.raises(NotAuthorized):
        _progress(store, enrollment, Principal(user_id=uuid.uuid4()))


# ---- progress arithmetic ----


def test_progress_percent_counts_materials_and_quizzes(store: InMemoryStore) -> None:
    # 2 modules x 2 materials + 1 quiz = 5 units
    outline = seed(store, build_outline(price="0", modules=2, quiz_modules=(1,)))
    enrollment = _enroll(store, outline)
    _complete(store, enrollment, outline, 1, 1)
    assert _progress(store, enrollment).progress_percent == 20
    _complete(store, enrollment, outline, 1, 2)
    assert _progress(store, enrollment).progress_percent == 40


def _state(**overrides) -> ModuleState:
    fields = {
        "module_id": uuid.uuid4(),
        "position": 1,
        "title": "m",
        "accessible": True,
        "complete": False,
        "materials_total": 3,
        "materials_done": 0,
    }
    fields.update(overrides)
    return ModuleState(**fields)


def test_progress_percent_rounds_down() -> None:
    states = [_state(materials_done=1), _state(materials_done=1, position=2)]
    assert unlock_engine.progress_percent(states) == 33


def test_progress_percent_of_empty_modules() -> None:
    assert unlock_engine.progress_percent([]) == 0
    done = [_state(materials_total=0, complete=True)]
    assert unlock_engine.progress_percent(done) == 100


def test_next_module_skips_complete_and_locked() -> None:
    a = _state(complete=True)
    b = _state(position=2)
    c = _state(position=3, accessible=False)
    assert unlock_engine.next_module_id([a, b, c]) == b.module_id
    assert unlock_engine.next_module_id([a]) is None
