"""Progress read model and material completion.

  GET  /v1/enrollments/{id}/progress      per-module unlock state
  POST /v1/enrollments/{id}/completions   mark a material done (idempotent)
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from academy.api.dependencies import CurrentUser, StoreDep
from academy.services import unlock_engine

router = APIRouter(prefix="/v1/enrollments", tags=["progress"])


class ModuleStateOut(BaseModel):
    module_id: UUID
    position: int
    title: str
    accessible: bool
    complete: bool
    materials_total: int
    materials_done: int
    quiz_id: UUID | None
    quiz_passed: bool | None


class ProgressOut(BaseModel):
    enrollment_id: UUID
    course_id: UUID
    status: str
    progress_percent: int
    next_module_id: UUID | None
    course_complete: bool
    modules: list[ModuleStateOut]


class CompletionIn(BaseModel):
    module_id: UUID
    material_id: UUID


class CompletionOut(BaseModel):
    accepted: bool
    newly_recorded: bool
    module_complete: bool
    quiz_required: bool
    quiz_id: UUID | None
    course_complete: bool
    next_module_id: UUID | None
    certificate_id: UUID | None


@router.get("/{enrollment_id}/progress", response_model=ProgressOut)
async def get_progress(
    enrollment_id: UUID,
    principal: CurrentUser,
    store: StoreDep,
) -> ProgressOut:
    progress = await unlock_engine.get_progress(store, principal, enrollment_id)
    return ProgressOut(
        enrollment_id=progress.enrollment_id,
        course_id=progress.course_id,
        status=progress.status,
        progress_percent=progress.progress_percent,
        next_module_id=progress.next_module_id,
        course_complete=progress.course_complete,
        modules=[
            ModuleStateOut(
                module_id=m.module_id,
                position=m.position,
                title=m.title,
                accessible=m.accessible,
                complete=m.complete,
                materials_total=m.materials_total,
                materials_done=m.materials_done,
                quiz_id=m.quiz_id,
                quiz_passed=m.quiz_passed,
            )
            for m in progress.modules
        ],
    )


@router.post("/{enrollment_id}/completions", response_model=CompletionOut)
async def register_completion(
    enrollment_id: UUID,
    body: CompletionIn,
    principal: CurrentUser,
    store: StoreDep,
) -> CompletionOut:
    result = await unlock_engine.register_completion(
        store, principal, enrollment_id, body.module_id, body.material_id
    )
    return CompletionOut(
        accepted=result.accepted,
        newly_recorded=result.newly_recorded,
        module_complete=result.module_complete,
        quiz_required=result.quiz_required,
        quiz_id=result.quiz_id,
        course_complete=result.course_complete,
        next_module_id=result.next_module_id,
        certificate_id=result.certificate_id,
    )
