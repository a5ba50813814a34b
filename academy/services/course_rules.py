"""Course structure rules shared by the catalog import and the engines.

The unlock and quiz engines assume a well-formed course: module positions
1..n, one quiz per module at most, every question worth at least one point
with exactly one correct option.  ``import_course`` refuses anything else,
and ``reflow_modules`` is the only way to change module order afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from academy.core.errors import InvalidArgument, InvalidState, NotAuthorized, NotFound
from academy.db.unit_of_work import Store, UnitOfWork
from academy.models.course import Course, CourseModule, Material, Question, Quiz
from academy.models.principal import Principal

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ModuleOutline:
    module: CourseModule
    materials: tuple[Material, ...] = ()
    quiz: Quiz | None = None
    questions: tuple[Question, ...] = ()


@dataclass(frozen=True, slots=True)
class CourseOutline:
    course: Course
    modules: tuple[ModuleOutline, ...]


def _contiguous(positions: list[int]) -> bool:
    return sorted(positions) == list(range(1, len(positions) + 1))


def structure_problems(outline: CourseOutline) -> list[str]:
    """Every rule the outline breaks, as human-readable strings."""
    problems: list[str] = []
    course = outline.course

    if course.price < 0:
        problems.append("price must not be negative")
    if course.is_free != (course.price == 0):
        problems.append("a course is free exactly when its price is zero")
    if len(course.currency) != 3 or not course.currency.isalpha():
        problems.append("currency must be a 3-letter code")

    if not outline.modules:
        problems.append("course has no modules")
    if not _contiguous([m.module.position for m in outline.modules]):
        problems.append("module positions must run 1..n without gaps")

    for entry in outline.modules:
        module = entry.module
        where = f"module {module.position}"
        if module.course_id != course.id:
            problems.append(f"{where}: belongs to another course")
        if any(m.module_id != module.id for m in entry.materials):
            problems.append(f"{where}: material attached to another module")
        if not _contiguous([m.position for m in entry.materials]):
            problems.append(f"{where}: material positions must run 1..n without gaps")
        # Completion is only ever settled by a material or quiz event.
        if not entry.materials and entry.quiz is None:
            problems.append(f"{where}: needs at least one material or a quiz")

        quiz = entry.quiz
        if quiz is None:
            if entry.questions:
                problems.append(f"{where}: questions without a quiz")
            continue
        if quiz.module_id != module.id:
            problems.append(f"{where}: quiz attached to another module")
        if not 0 <= quiz.passing_threshold_percent <= 100:
            problems.append(f"{where}: passing threshold must be within 0..100")
        if quiz.time_limit_seconds is not None and quiz.time_limit_seconds <= 0:
            problems.append(f"{where}: time limit must be positive")
        if not entry.questions:
            problems.append(f"{where}: quiz has no questions")
        for q in entry.questions:
            if q.quiz_id != quiz.id:
                problems.append(f"{where}: question attached to another quiz")
            if q.points < 1:
                problems.append(f"{where} question {q.position}: points must be >= 1")
            if len(q.options) < 2:
                problems.append(f"{where} question {q.position}: needs at least two options")
            if len(q.correct_options()) != 1:
                problems.append(
                    f"{where} question {q.position}: needs exactly one correct option"
                )
    return problems


async def load_outline(uow: UnitOfWork, course_id: UUID) -> CourseOutline:
    course = await uow.catalog.get_course(course_id)
    if course is None:
        raise NotFound("course not found")
    modules = []
    for module in await uow.catalog.list_modules(course_id):
        quiz = await uow.catalog.get_quiz_for_module(module.id)
        modules.append(
            ModuleOutline(
                module=module,
                materials=tuple(await uow.catalog.list_materials(module.id)),
                quiz=quiz,
                questions=(
                    tuple(await uow.catalog.list_questions(quiz.id)) if quiz else ()
                ),
            )
        )
    return CourseOutline(course=course, modules=tuple(modules))


async def import_course(store: Store, outline: CourseOutline) -> Course:
    """Write a validated course outline into the catalog in one transaction."""
    problems = structure_problems(outline)
    if problems:
        raise InvalidArgument("invalid course structure: " + "; ".join(problems))

    async with store.transaction() as uow:
        await uow.catalog.add_course(outline.course)
        for entry in outline.modules:
            await uow.catalog.add_module(entry.module)
            for material in entry.materials:
                await uow.catalog.add_material(material)
            if entry.quiz is not None:
                await uow.catalog.add_quiz(entry.quiz)
                for question in entry.questions:
                    await uow.catalog.add_question(question)

    logger.info(
        "course imported slug=%s modules=%d",
        outline.course.slug,
        len(outline.modules),
        extra={"course_id": str(outline.course.id)},
    )
    return outline.course


async def validate_course(store: Store, course_id: UUID) -> list[str]:
    async with store.transaction() as uow:
        outline = await load_outline(uow, course_id)
    return structure_problems(outline)


async def reflow_modules(
    store: Store, caller: Principal, course_id: UUID, module_ids: list[UUID]
) -> list[CourseModule]:
    """Reorder a course's modules to positions 1..n in the given order.

    Refused once any learner has progress against the course, since
    gating depends on module order.
    """
    async with store.transaction() as uow:
        course = await uow.catalog.get_course(course_id)
        if course is None:
            raise NotFound("course not found")
        if caller.user_id != course.owner_id and not caller.is_platform_admin():
            raise NotAuthorized("only the course owner can reorder modules")

        modules = await uow.catalog.list_modules(course_id)
        current = [m.id for m in modules]
        if len(module_ids) != len(set(module_ids)) or set(module_ids) != set(current):
            raise InvalidArgument("module list must name every module exactly once")

        quiz_ids = []
        for module_id in current:
            quiz = await uow.catalog.get_quiz_for_module(module_id)
            if quiz is not None:
                quiz_ids.append(quiz.id)
        if await uow.completions.exists_for_modules(
            current
        ) or await uow.attempts.exists_for_quizzes(quiz_ids):
            raise InvalidState("modules cannot be reordered once learners have progress")

        await uow.catalog.set_module_positions(
            {module_id: i for i, module_id in enumerate(module_ids, start=1)}
        )
        reordered = await uow.catalog.list_modules(course_id)

    logger.info("modules reflowed", extra={"course_id": str(course_id)})
    return reordered
