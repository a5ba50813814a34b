"""Progress tracking and progressive module unlocking.

Nothing here is stored as "unlocked": accessibility and completeness are
recomputed from completion rows and quiz attempts on every call.

  Accessible(M)  enrollment is active|completed, and M is the first module
                 or the module before it is Complete.
  Complete(M)    every material in M has a completion row and, if M has a
                 quiz, the latest submitted attempt passed.

When the last module becomes complete the enrollment moves to completed and
the certificate is issued in the same transaction (``settle_course``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from academy.core.errors import NotAccessible, NotAuthorized, NotFound
from academy.core.metrics import MATERIAL_COMPLETIONS
from academy.db.unit_of_work import Store, UnitOfWork
from academy.models.certificate import Certificate
from academy.models.course import CourseModule, Quiz
from academy.models.enrollment import Enrollment, EnrollmentStatus
from academy.models.principal import Principal
from academy.models.progress import (
    CompletionResult,
    CourseProgress,
    MaterialCompletion,
    ModuleState,
)
from academy.services import certificates
from academy.services.enrollment_machine import (
    load,
    record_event,
    require_content_access,
    transition,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _OutlineEntry:
    module: CourseModule
    material_ids: tuple[UUID, ...]
    quiz: Quiz | None


async def _outline(uow: UnitOfWork, course_id: UUID) -> list[_OutlineEntry]:
    entries = []
    for module in await uow.catalog.list_modules(course_id):
        materials = await uow.catalog.list_materials(module.id)
        entries.append(
            _OutlineEntry(
                module=module,
                material_ids=tuple(m.id for m in materials),
                quiz=await uow.catalog.get_quiz_for_module(module.id),
            )
        )
    return entries


async def evaluate(uow: UnitOfWork, enrollment: Enrollment) -> list[ModuleState]:
    """Per-module state for one enrollment, in module order."""
    done = {
        c.material_id for c in await uow.completions.list_for_enrollment(enrollment.id)
    }
    states: list[ModuleState] = []
    previous_complete = True
    for entry in await _outline(uow, enrollment.course_id):
        materials_done = sum(1 for m in entry.material_ids if m in done)
        quiz_passed = None
        if entry.quiz is not None:
            latest = await uow.attempts.latest_submitted(enrollment.id, entry.quiz.id)
            quiz_passed = bool(latest is not None and latest.passed)

        complete = materials_done == len(entry.material_ids) and quiz_passed is not False
        states.append(
            ModuleState(
                module_id=entry.module.id,
                position=entry.module.position,
                title=entry.module.title,
                accessible=enrollment.grants_access and previous_complete,
                complete=complete,
                materials_total=len(entry.material_ids),
                materials_done=materials_done,
                quiz_id=entry.quiz.id if entry.quiz is not None else None,
                quiz_passed=quiz_passed,
            )
        )
        previous_complete = complete
    return states


def next_module_id(states: list[ModuleState]) -> UUID | None:
    for s in states:
        if s.accessible and not s.complete:
            return s.module_id
    return None


def course_complete(states: list[ModuleState]) -> bool:
    return bool(states) and all(s.complete for s in states)


def progress_percent(states: list[ModuleState]) -> int:
    """Completed units over total units, where a unit is a material or a quiz."""
    total = sum(s.materials_total + (1 if s.quiz_id else 0) for s in states)
    if total == 0:
        return 100 if course_complete(states) else 0
    done = sum(s.materials_done + (1 if s.quiz_passed else 0) for s in states)
    return done * 100 // total


def module_state(states: list[ModuleState], module_id: UUID) -> ModuleState:
    for s in states:
        if s.module_id == module_id:
            return s
    raise NotFound("module not found in this course")


async def settle_course(
    uow: UnitOfWork, enrollment: Enrollment, states: list[ModuleState]
) -> tuple[Enrollment, Certificate | None]:
    """Complete the enrollment and issue its certificate once every module
    is complete.  A no-op for enrollments that are not active."""
    if enrollment.status != EnrollmentStatus.ACTIVE or not course_complete(states):
        return enrollment, None
    enrollment = await transition(uow, enrollment, "mark_completed")
    certificate = await certificates.issue(uow, enrollment)
    logger.info(
        "course completed",
        extra={
            "enrollment_id": str(enrollment.id),
            "course_id": str(enrollment.course_id),
            "certificate_id": str(certificate.id),
        },
    )
    return enrollment, certificate


async def register_completion(
    store: Store,
    caller: Principal,
    enrollment_id: UUID,
    module_id: UUID,
    material_id: UUID,
) -> CompletionResult:
    """Mark one material as finished.  Repeats are accepted and change nothing."""
    async with store.transaction() as uow:
        enrollment = await load(uow, enrollment_id, for_update=True)
        if enrollment.learner_id != caller.user_id:
            raise NotAuthorized("only the enrolled learner can record progress")

        module = await uow.catalog.get_module(module_id)
        if module is None or module.course_id != enrollment.course_id:
            raise NotFound("module not found in this course")
        material = await uow.catalog.get_material(material_id)
        if material is None or material.module_id != module.id:
            raise NotFound("material not found in this module")

        require_content_access(enrollment)
        if not module_state(await evaluate(uow, enrollment), module.id).accessible:
            raise NotAccessible("complete the previous module first")

        newly_recorded = await uow.completions.add(
            MaterialCompletion(
                enrollment_id=enrollment.id,
                material_id=material.id,
                module_id=module.id,
                completed_at=uow.now,
            )
        )
        if newly_recorded:
            await record_event(
                uow,
                enrollment.id,
                "material_completed",
                actor_id=caller.user_id,
                module_id=module.id,
                material_id=material.id,
            )

        states = await evaluate(uow, enrollment)
        enrollment, certificate = await settle_course(uow, enrollment, states)
        state = module_state(states, module.id)
        result_label = "recorded" if newly_recorded else "duplicate"
        uow.on_commit(lambda: MATERIAL_COMPLETIONS.labels(result=result_label).inc())

    return CompletionResult(
        accepted=True,
        newly_recorded=newly_recorded,
        module_complete=state.complete,
        quiz_required=(
            state.materials_complete
            and state.quiz_id is not None
            and not state.quiz_passed
        ),
        quiz_id=state.quiz_id,
        course_complete=course_complete(states),
        next_module_id=next_module_id(states),
        certificate_id=certificate.id if certificate is not None else None,
    )


async def get_progress(
    store: Store, caller: Principal, enrollment_id: UUID
) -> CourseProgress:
    async with store.transaction() as uow:
        enrollment = await load(uow, enrollment_id)
        course = await uow.catalog.get_course(enrollment.course_id)
        if course is None:
            raise NotFound("course not found")
        if (
            caller.user_id not in (enrollment.learner_id, course.owner_id)
            and not caller.is_platform_admin()
        ):
            raise NotAuthorized("not a party to this enrollment")
        states = await evaluate(uow, enrollment)

    return CourseProgress(
        enrollment_id=enrollment.id,
        course_id=enrollment.course_id,
        status=enrollment.status.value,
        modules=tuple(states),
        progress_percent=progress_percent(states),
        next_module_id=next_module_id(states),
        course_complete=course_complete(states),
    )
