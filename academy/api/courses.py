"""Course structure endpoints.

  GET /v1/courses/{course_id}/validation     structural problems, if any
  PUT /v1/courses/{course_id}/module-order   reflow modules (owner/admin,
                                             only before any progress)
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, Field

from academy.api.dependencies import CurrentUser, StoreDep
from academy.services import course_rules

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class ValidationOut(BaseModel):
    course_id: UUID
    valid: bool
    problems: list[str]


class ModuleOrderIn(BaseModel):
    module_ids: list[UUID] = Field(min_length=1)


class ModuleOut(BaseModel):
    id: UUID
    position: int
    title: str


@router.get("/{course_id}/validation", response_model=ValidationOut)
async def validate_course(
    course_id: UUID,
    _principal: CurrentUser,
    store: StoreDep,
) -> ValidationOut:
    problems = await course_rules.validate_course(store, course_id)
    return ValidationOut(course_id=course_id, valid=not problems, problems=problems)


@router.put("/{course_id}/module-order", response_model=list[ModuleOut])
async def reflow_modules(
    course_id: UUID,
    body: ModuleOrderIn,
    principal: CurrentUser,
    store: StoreDep,
) -> list[ModuleOut]:
    modules = await course_rules.reflow_modules(store, principal, course_id, body.module_ids)
    return [ModuleOut(id=m.id, position=m.position, title=m.title) for m in modules]
