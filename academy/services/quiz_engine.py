"""Quiz attempts and scoring.

Scoring is a pure function of the quiz definition and the submitted
(question, option) pairs; ``score`` has no I/O so it can be tested on its
own.  Attempts are append-only and the latest submitted one decides whether
the module's quiz gate is open.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from academy.core.errors import (
    AlreadySubmitted,
    InvalidState,
    NotAccessible,
    NotAuthorized,
    NotFound,
    QuizMisconfigured,
)
from academy.core.metrics import QUIZ_SUBMISSIONS
from academy.db.unit_of_work import Store, UnitOfWork
from academy.models.course import Question, Quiz
from academy.models.enrollment import Enrollment
from academy.models.principal import Principal
from academy.models.quiz import (
    AttemptAnswer,
    AttemptSheet,
    AttemptStatus,
    QuizAttempt,
    QuizResult,
    QuizScore,
)
from academy.services.enrollment_machine import (
    load,
    record_event,
    require_content_access,
)
from academy.services.unlock_engine import (
    course_complete,
    evaluate,
    module_state,
    next_module_id,
    settle_course,
)

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def check_quiz(questions: list[Question]) -> None:
    """Raise QuizMisconfigured unless the quiz can be scored."""
    if not questions:
        raise QuizMisconfigured("quiz has no questions")
    for q in questions:
        if q.points < 1:
            raise QuizMisconfigured(f"question {q.position} must be worth at least 1 point")
        if len(q.correct_options()) != 1:
            raise QuizMisconfigured(
                f"question {q.position} must have exactly one correct option"
            )


def score(
    questions: list[Question],
    answers: Iterable[tuple[UUID, UUID]],
    passing_threshold_percent: int,
) -> QuizScore:
    """Score (question_id, option_id) pairs against the quiz.

    Pairs naming a question outside the quiz, or an option outside its
    question, are ignored.  Only the first answer per question counts.
    Unanswered questions earn nothing.
    """
    check_quiz(questions)
    by_id = {q.id: q for q in questions}

    chosen: dict[UUID, AttemptAnswer] = {}
    for question_id, option_id in answers:
        question = by_id.get(question_id)
        if question is None or question_id in chosen:
            continue
        option = question.option(option_id)
        if option is None:
            continue
        chosen[question_id] = AttemptAnswer(
            question_id=question_id,
            option_id=option_id,
            points_awarded=question.points if option.is_correct else 0,
        )

    total = sum(q.points for q in questions)
    earned = sum(a.points_awarded for a in chosen.values())
    return QuizScore(
        earned_points=earned,
        total_points=total,
        score_percent=(Decimal(100 * earned) / Decimal(total)).quantize(
            _CENT, rounding=ROUND_HALF_UP
        ),
        # Exact comparison; the rounded percentage is for display only.
        passed=100 * earned >= passing_threshold_percent * total,
        answers=tuple(chosen[q.id] for q in questions if q.id in chosen),
    )


async def _quiz_in_course(uow: UnitOfWork, quiz_id: UUID, enrollment: Enrollment) -> Quiz:
    quiz = await uow.catalog.get_quiz(quiz_id)
    if quiz is None:
        raise NotFound("quiz not found")
    module = await uow.catalog.get_module(quiz.module_id)
    if module is None or module.course_id != enrollment.course_id:
        raise NotFound("quiz not found in this course")
    return quiz


async def start_attempt(
    store: Store, caller: Principal, enrollment_id: UUID, quiz_id: UUID
) -> AttemptSheet:
    """Open an attempt, or hand back the one already in progress."""
    async with store.transaction() as uow:
        enrollment = await load(uow, enrollment_id, for_update=True)
        if enrollment.learner_id != caller.user_id:
            raise NotAuthorized("only the enrolled learner can take the quiz")
        quiz = await _quiz_in_course(uow, quiz_id, enrollment)

        require_content_access(enrollment)
        state = module_state(await evaluate(uow, enrollment), quiz.module_id)
        if not state.accessible:
            raise NotAccessible("complete the previous module first")
        if not state.materials_complete:
            raise NotAccessible("complete every material in the module first")

        attempts = await uow.attempts.list_for(enrollment.id, quiz.id)
        latest = await uow.attempts.latest_submitted(enrollment.id, quiz.id)
        if latest is not None and latest.passed:
            raise InvalidState("quiz already passed")

        questions = await uow.catalog.list_questions(quiz.id)
        check_quiz(questions)

        open_attempt = next((a for a in attempts if not a.is_submitted), None)
        if open_attempt is not None:
            return AttemptSheet(attempt=open_attempt, quiz=quiz, questions=tuple(questions))

        attempt = QuizAttempt.new(
            enrollment_id=enrollment.id,
            quiz_id=quiz.id,
            attempt_no=len(attempts) + 1,
            started_at=uow.now,
            time_limit_seconds=quiz.time_limit_seconds,
        )
        await uow.attempts.add(attempt)
        await record_event(
            uow,
            enrollment.id,
            "quiz_started",
            actor_id=caller.user_id,
            quiz_id=quiz.id,
            attempt_id=attempt.id,
            attempt_no=attempt.attempt_no,
        )

    logger.info(
        "quiz attempt %d started",
        attempt.attempt_no,
        extra={"enrollment_id": str(enrollment_id), "attempt_id": str(attempt.id)},
    )
    return AttemptSheet(attempt=attempt, quiz=quiz, questions=tuple(questions))


async def submit(
    store: Store,
    caller: Principal,
    attempt_id: UUID,
    answers: Iterable[tuple[UUID, UUID]],
) -> QuizResult:
    """Score an open attempt and run the module/course completion cascade.

    Submissions after ``deadline_at`` are scored normally and flagged late.
    """
    async with store.transaction() as uow:
        attempt = await uow.attempts.get(attempt_id)
        if attempt is None:
            raise NotFound("attempt not found")
        enrollment = await load(uow, attempt.enrollment_id, for_update=True)
        if enrollment.learner_id != caller.user_id:
            raise NotAuthorized("only the enrolled learner can submit this attempt")
        # Re-read under the enrollment lock.
        attempt = await uow.attempts.get(attempt_id)
        if attempt.is_submitted:
            raise AlreadySubmitted("attempt was already submitted")
        require_content_access(enrollment)

        quiz = await _quiz_in_course(uow, attempt.quiz_id, enrollment)
        result = score(
            await uow.catalog.list_questions(quiz.id),
            answers,
            quiz.passing_threshold_percent,
        )
        late = attempt.deadline_at is not None and uow.now > attempt.deadline_at

        attempt = replace(
            attempt,
            status=AttemptStatus.SUBMITTED,
            submitted_at=uow.now,
            score_percent=result.score_percent,
            passed=result.passed,
            late=late,
            answers=result.answers,
        )
        await uow.attempts.save(attempt)
        await record_event(
            uow,
            enrollment.id,
            "quiz_submitted",
            actor_id=caller.user_id,
            quiz_id=quiz.id,
            attempt_id=attempt.id,
            score_percent=str(result.score_percent),
            passed=result.passed,
            late=late or None,
        )

        states = await evaluate(uow, enrollment)
        enrollment, certificate = await settle_course(uow, enrollment, states)
        state = module_state(states, quiz.module_id)
        outcome = "passed" if result.passed else "failed"
        uow.on_commit(
            lambda: QUIZ_SUBMISSIONS.labels(
                result=outcome, late="true" if late else "false"
            ).inc()
        )

    logger.info(
        "quiz attempt %d %s score=%s late=%s",
        attempt.attempt_no,
        outcome,
        result.score_percent,
        late,
        extra={"enrollment_id": str(enrollment.id), "attempt_id": str(attempt.id)},
    )
    return QuizResult(
        attempt=attempt,
        module_complete=state.complete,
        course_complete=course_complete(states),
        next_module_id=next_module_id(states),
        certificate_id=certificate.id if certificate is not None else None,
    )


async def list_attempts(
    store: Store, caller: Principal, enrollment_id: UUID, quiz_id: UUID
) -> list[QuizAttempt]:
    async with store.transaction() as uow:
        enrollment = await load(uow, enrollment_id)
        if enrollment.learner_id != caller.user_id and not caller.is_platform_admin():
            raise NotAuthorized("only the enrolled learner can see these attempts")
        quiz = await _quiz_in_course(uow, quiz_id, enrollment)
        return await uow.attempts.list_for(enrollment.id, quiz.id)
