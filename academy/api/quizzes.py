"""Quiz attempt endpoints.

  POST /v1/enrollments/{id}/quizzes/{quiz_id}/attempts   start (or resume)
  GET  /v1/enrollments/{id}/quizzes/{quiz_id}/attempts   attempt history
  POST /v1/attempts/{attempt_id}/submit                  score an attempt

Questions are returned without their correct answers.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel

from academy.api.dependencies import CurrentUser, StoreDep
from academy.models.quiz import QuizAttempt
from academy.services import quiz_engine

router = APIRouter(tags=["quizzes"])


class OptionOut(BaseModel):
    id: UUID
    text: str


class QuestionOut(BaseModel):
    id: UUID
    position: int
    prompt: str
    points: int
    kind: str
    options: list[OptionOut]


class AnswerOut(BaseModel):
    question_id: UUID
    option_id: UUID
    points_awarded: int


class AttemptOut(BaseModel):
    id: UUID
    enrollment_id: UUID
    quiz_id: UUID
    attempt_no: int
    status: str
    started_at: int
    deadline_at: int | None
    submitted_at: int | None
    score_percent: Decimal | None
    passed: bool | None
    late: bool
    answers: list[AnswerOut]


class AttemptSheetOut(BaseModel):
    attempt: AttemptOut
    quiz_title: str
    passing_threshold_percent: int
    time_limit_seconds: int | None
    questions: list[QuestionOut]


class AnswerIn(BaseModel):
    question_id: UUID
    option_id: UUID


class SubmitIn(BaseModel):
    answers: list[AnswerIn]


class QuizResultOut(BaseModel):
    attempt: AttemptOut
    module_complete: bool
    course_complete: bool
    next_module_id: UUID | None
    certificate_id: UUID | None


def _attempt_out(a: QuizAttempt) -> AttemptOut:
    return AttemptOut(
        id=a.id,
        enrollment_id=a.enrollment_id,
        quiz_id=a.quiz_id,
        attempt_no=a.attempt_no,
        status=a.status.value,
        started_at=a.started_at,
        deadline_at=a.deadline_at,
        submitted_at=a.submitted_at,
        score_percent=a.score_percent,
        passed=a.passed,
        late=a.late,
        answers=[
            AnswerOut(
                question_id=x.question_id,
                option_id=x.option_id,
                points_awarded=x.points_awarded,
            )
            for x in a.answers
        ],
    )


@router.post(
    "/v1/enrollments/{enrollment_id}/quizzes/{quiz_id}/attempts",
    response_model=AttemptSheetOut,
    status_code=status.HTTP_201_CREATED,
)
async def start_attempt(
    enrollment_id: UUID,
    quiz_id: UUID,
    principal: CurrentUser,
    store: StoreDep,
) -> AttemptSheetOut:
    sheet = await quiz_engine.start_attempt(store, principal, enrollment_id, quiz_id)
    return AttemptSheetOut(
        attempt=_attempt_out(sheet.attempt),
        quiz_title=sheet.quiz.title,
        passing_threshold_percent=sheet.quiz.passing_threshold_percent,
        time_limit_seconds=sheet.quiz.time_limit_seconds,
        questions=[
            QuestionOut(
                id=q.id,
                position=q.position,
                prompt=q.prompt,
                points=q.points,
                kind=q.kind.value,
                options=[OptionOut(id=o.id, text=o.text) for o in q.options],
            )
            for q in sheet.questions
        ],
    )


@router.get(
    "/v1/enrollments/{enrollment_id}/quizzes/{quiz_id}/attempts",
    response_model=list[AttemptOut],
)
async def list_attempts(
    enrollment_id: UUID,
    quiz_id: UUID,
    principal: CurrentUser,
    store: StoreDep,
) -> list[AttemptOut]:
    attempts = await quiz_engine.list_attempts(store, principal, enrollment_id, quiz_id)
    return [_attempt_out(a) for a in attempts]


@router.post("/v1/attempts/{attempt_id}/submit", response_model=QuizResultOut)
async def submit_attempt(
    attempt_id: UUID,
    body: SubmitIn,
    principal: CurrentUser,
    store: StoreDep,
) -> QuizResultOut:
    result = await quiz_engine.submit(
        store,
        principal,
        attempt_id,
        [(a.question_id, a.option_id) for a in body.answers],
    )
    return QuizResultOut(
        attempt=_attempt_out(result.attempt),
        module_complete=result.module_complete,
        course_complete=result.course_complete,
        next_module_id=result.next_module_id,
        certificate_id=result.certificate_id,
    )
