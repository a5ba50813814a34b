"""PostgreSQL implementation of CatalogRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.tables import (
    CourseModuleRow,
    CourseRow,
    MaterialRow,
    OptionRow,
    QuestionRow,
    QuizRow,
)
from academy.models.course import (
    Course,
    CourseModule,
    Material,
    MaterialKind,
    Option,
    Question,
    QuestionKind,
    Quiz,
)


class PgCatalogRepo:
    """Satisfies the CatalogRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- courses ---

    async def get_course(self, course_id: UUID) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_course(row)

    async def list_courses_owned_by(self, owner_id: UUID) -> list[Course]:
        stmt = select(CourseRow).where(CourseRow.owner_id == owner_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def add_course(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                slug=course.slug,
                title=course.title,
                owner_id=course.owner_id,
                price=course.price,
                currency=course.currency,
                is_free=course.is_free,
            )
        )
        await self._session.flush()

    # --- modules ---

    async def get_module(self, module_id: UUID) -> CourseModule | None:
        stmt = select(CourseModuleRow).where(CourseModuleRow.id == module_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_module(row)

    async def list_modules(self, course_id: UUID) -> list[CourseModule]:
        stmt = (
            select(CourseModuleRow)
            .where(CourseModuleRow.course_id == course_id)
            .order_by(CourseModuleRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_module(r) for r in rows]

    async def add_module(self, module: CourseModule) -> None:
        self._session.add(
            CourseModuleRow(
                id=module.id,
                course_id=module.course_id,
                position=module.position,
                title=module.title,
                description=module.description,
            )
        )
        await self._session.flush()

    async def set_module_positions(self, positions: dict[UUID, int]) -> None:
        # uq_course_modules_course_position is deferred, so intermediate
        # duplicates are fine until commit.
        for module_id, position in positions.items():
            stmt = (
                update(CourseModuleRow)
                .where(CourseModuleRow.id == module_id)
                .values(position=position)
            )
            await self._session.execute(stmt)

    # --- materials ---

    async def get_material(self, material_id: UUID) -> Material | None:
        stmt = select(MaterialRow).where(MaterialRow.id == material_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_material(row)

    async def list_materials(self, module_id: UUID) -> list[Material]:
        stmt = (
            select(MaterialRow)
            .where(MaterialRow.module_id == module_id)
            .order_by(MaterialRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_material(r) for r in rows]

    async def add_material(self, material: Material) -> None:
        self._session.add(
            MaterialRow(
                id=material.id,
                module_id=material.module_id,
                position=material.position,
                kind=material.kind.value,
                title=material.title,
                content_ref=material.content_ref,
            )
        )
        await self._session.flush()

    # --- quizzes ---

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        stmt = select(QuizRow).where(QuizRow.id == quiz_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_quiz(row)

    async def get_quiz_for_module(self, module_id: UUID) -> Quiz | None:
        stmt = select(QuizRow).where(QuizRow.module_id == module_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_quiz(row)

    async def add_quiz(self, quiz: Quiz) -> None:
        self._session.add(
            QuizRow(
                id=quiz.id,
                module_id=quiz.module_id,
                title=quiz.title,
                passing_threshold_percent=quiz.passing_threshold_percent,
                time_limit_seconds=quiz.time_limit_seconds,
            )
        )
        await self._session.flush()

    async def list_questions(self, quiz_id: UUID) -> list[Question]:
        stmt = (
            select(QuestionRow)
            .where(QuestionRow.quiz_id == quiz_id)
            .order_by(QuestionRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        if not rows:
            return []

        opt_stmt = (
            select(OptionRow)
            .where(OptionRow.question_id.in_([r.id for r in rows]))
            .order_by(OptionRow.position)
        )
        options: dict[UUID, list[Option]] = {}
        for o in (await self._session.execute(opt_stmt)).scalars().all():
            options.setdefault(o.question_id, []).append(
                Option(
                    id=o.id,
                    question_id=o.question_id,
                    position=o.position,
                    text=o.text,
                    is_correct=o.is_correct,
                )
            )

        return [
            Question(
                id=r.id,
                quiz_id=r.quiz_id,
                position=r.position,
                prompt=r.prompt,
                points=r.points,
                kind=QuestionKind(r.kind),
                options=tuple(options.get(r.id, [])),
            )
            for r in rows
        ]

    async def add_question(self, question: Question) -> None:
        self._session.add(
            QuestionRow(
                id=question.id,
                quiz_id=question.quiz_id,
                position=question.position,
                prompt=question.prompt,
                points=question.points,
                kind=question.kind.value,
            )
        )
        await self._session.flush()
        for o in question.options:
            self._session.add(
                OptionRow(
                    id=o.id,
                    question_id=o.question_id,
                    position=o.position,
                    text=o.text,
                    is_correct=o.is_correct,
                )
            )
        await self._session.flush()


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        slug=row.slug,
        title=row.title,
        owner_id=row.owner_id,
        price=row.price,
        currency=row.currency,
        is_free=row.is_free,
    )


def _row_to_module(row: CourseModuleRow) -> CourseModule:
    return CourseModule(
        id=row.id,
        course_id=row.course_id,
        position=row.position,
        title=row.title,
        description=row.description or "",
    )


def _row_to_material(row: MaterialRow) -> Material:
    return Material(
        id=row.id,
        module_id=row.module_id,
        position=row.position,
        kind=MaterialKind(row.kind),
        title=row.title,
        content_ref=row.content_ref,
    )


def _row_to_quiz(row: QuizRow) -> Quiz:
    return Quiz(
        id=row.id,
        module_id=row.module_id,
        title=row.title,
        passing_threshold_percent=row.passing_threshold_percent,
        time_limit_seconds=row.time_limit_seconds,
    )
