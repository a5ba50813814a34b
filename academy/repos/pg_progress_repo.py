"""PostgreSQL implementations of CompletionRepo and AttemptRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.tables import AttemptAnswerRow, MaterialCompletionRow, QuizAttemptRow
from academy.models.progress import MaterialCompletion
from academy.models.quiz import AttemptAnswer, AttemptStatus, QuizAttempt


class PgCompletionRepo:
    """Satisfies the CompletionRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, enrollment_id: UUID, material_id: UUID
    ) -> MaterialCompletion | None:
        stmt = select(MaterialCompletionRow).where(
            MaterialCompletionRow.enrollment_id == enrollment_id,
            MaterialCompletionRow.material_id == material_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_completion(row)

    async def add(self, completion: MaterialCompletion) -> bool:
        stmt = (
            insert(MaterialCompletionRow)
            .values(
                enrollment_id=completion.enrollment_id,
                material_id=completion.material_id,
                module_id=completion.module_id,
                completed_at=completion.completed_at,
            )
            .on_conflict_do_nothing(index_elements=["enrollment_id", "material_id"])
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[MaterialCompletion]:
        stmt = select(MaterialCompletionRow).where(
            MaterialCompletionRow.enrollment_id == enrollment_id
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_completion(r) for r in rows]

    async def exists_for_modules(self, module_ids: list[UUID]) -> bool:
        if not module_ids:
            return False
        stmt = (
            select(MaterialCompletionRow.material_id)
            .where(MaterialCompletionRow.module_id.in_(module_ids))
            .limit(1)
        )
        return (await self._session.execute(stmt)).first() is not None


class PgAttemptRepo:
    """Satisfies the AttemptRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, attempt_id: UUID) -> QuizAttempt | None:
        stmt = select(QuizAttemptRow).where(QuizAttemptRow.id == attempt_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._hydrate(row)

    async def add(self, attempt: QuizAttempt) -> None:
        self._session.add(
            QuizAttemptRow(
                id=attempt.id,
                enrollment_id=attempt.enrollment_id,
                quiz_id=attempt.quiz_id,
                attempt_no=attempt.attempt_no,
                status=attempt.status.value,
                started_at=attempt.started_at,
                deadline_at=attempt.deadline_at,
                submitted_at=attempt.submitted_at,
                score_percent=attempt.score_percent,
                passed=attempt.passed,
                late=attempt.late,
            )
        )
        await self._session.flush()
        await self._add_answers(attempt)

    async def save(self, attempt: QuizAttempt) -> None:
        stmt = (
            update(QuizAttemptRow)
            .where(QuizAttemptRow.id == attempt.id)
            .values(
                status=attempt.status.value,
                submitted_at=attempt.submitted_at,
                score_percent=attempt.score_percent,
                passed=attempt.passed,
                late=attempt.late,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("attempt not found")
        await self._add_answers(attempt)

    async def list_for(self, enrollment_id: UUID, quiz_id: UUID) -> list[QuizAttempt]:
        stmt = (
            select(QuizAttemptRow)
            .where(
                QuizAttemptRow.enrollment_id == enrollment_id,
                QuizAttemptRow.quiz_id == quiz_id,
            )
            .order_by(QuizAttemptRow.attempt_no)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [await self._hydrate(r) for r in rows]

    async def latest_submitted(
        self, enrollment_id: UUID, quiz_id: UUID
    ) -> QuizAttempt | None:
        stmt = (
            select(QuizAttemptRow)
            .where(
                QuizAttemptRow.enrollment_id == enrollment_id,
                QuizAttemptRow.quiz_id == quiz_id,
                QuizAttemptRow.status == AttemptStatus.SUBMITTED.value,
            )
            .order_by(
                QuizAttemptRow.submitted_at.desc(), QuizAttemptRow.attempt_no.desc()
            )
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._hydrate(row)

    async def exists_for_quizzes(self, quiz_ids: list[UUID]) -> bool:
        if not quiz_ids:
            return False
        stmt = (
            select(QuizAttemptRow.id)
            .where(QuizAttemptRow.quiz_id.in_(quiz_ids))
            .limit(1)
        )
        return (await self._session.execute(stmt)).first() is not None

    async def _add_answers(self, attempt: QuizAttempt) -> None:
        if not attempt.answers:
            return
        stmt = (
            insert(AttemptAnswerRow)
            .values(
                [
                    {
                        "attempt_id": attempt.id,
                        "question_id": a.question_id,
                        "option_id": a.option_id,
                        "points_awarded": a.points_awarded,
                    }
                    for a in attempt.answers
                ]
            )
            .on_conflict_do_nothing(index_elements=["attempt_id", "question_id"])
        )
        await self._session.execute(stmt)

    async def _hydrate(self, row: QuizAttemptRow) -> QuizAttempt:
        stmt = select(AttemptAnswerRow).where(AttemptAnswerRow.attempt_id == row.id)
        answers = (await self._session.execute(stmt)).scalars().all()
        return QuizAttempt(
            id=row.id,
            enrollment_id=row.enrollment_id,
            quiz_id=row.quiz_id,
            attempt_no=row.attempt_no,
            started_at=row.started_at,
            status=AttemptStatus(row.status),
            deadline_at=row.deadline_at,
            submitted_at=row.submitted_at,
            score_percent=row.score_percent,
            passed=row.passed,
            late=row.late,
            answers=tuple(
                AttemptAnswer(
                    question_id=a.question_id,
                    option_id=a.option_id,
                    points_awarded=a.points_awarded,
                )
                for a in answers
            ),
        )


def _row_to_completion(row: MaterialCompletionRow) -> MaterialCompletion:
    return MaterialCompletion(
        enrollment_id=row.enrollment_id,
        material_id=row.material_id,
        module_id=row.module_id,
        completed_at=row.completed_at,
    )
