from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from uuid import UUID, uuid4

from academy.models.course import Question, Quiz


class AttemptStatus(StrEnum):
    # not_started is implicit: an attempt row exists only once started.
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


@dataclass(frozen=True, slots=True)
class AttemptAnswer:
    question_id: UUID
    option_id: UUID
    points_awarded: int


@dataclass(frozen=True, slots=True)
class QuizAttempt:
    id: UUID
    enrollment_id: UUID
    quiz_id: UUID
    attempt_no: int
    started_at: int
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    deadline_at: int | None = None
    submitted_at: int | None = None
    score_percent: Decimal | None = None
    passed: bool | None = None
    late: bool = False
    answers: tuple[AttemptAnswer, ...] = field(default_factory=tuple)

    @staticmethod
    def new(
        *,
        enrollment_id: UUID,
        quiz_id: UUID,
        attempt_no: int,
        started_at: int,
        time_limit_seconds: int | None = None,
    ) -> QuizAttempt:
        return QuizAttempt(
            id=uuid4(),
            enrollment_id=enrollment_id,
            quiz_id=quiz_id,
            attempt_no=attempt_no,
            started_at=started_at,
            deadline_at=(
                started_at + time_limit_seconds
                if time_limit_seconds is not None
                else None
            ),
        )

    @property
    def is_submitted(self) -> bool:
        return self.status == AttemptStatus.SUBMITTED


@dataclass(frozen=True, slots=True)
class QuizScore:
    """Pure scoring outcome, before it is written onto an attempt."""

    earned_points: int
    total_points: int
    score_percent: Decimal
    passed: bool
    answers: tuple[AttemptAnswer, ...]


@dataclass(frozen=True, slots=True)
class QuizResult:
    attempt: QuizAttempt
    module_complete: bool
    course_complete: bool
    next_module_id: UUID | None
    certificate_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class AttemptSheet:
    """An open attempt together with the quiz it is for and its questions."""

    attempt: QuizAttempt
    quiz: Quiz
    questions: tuple[Question, ...]
