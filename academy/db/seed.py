"""Sample catalog for local development.

Loaded at startup when running in dev against the in-memory store, so the
API has a paid course and a free course to enroll in.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from academy.db.unit_of_work import Store
from academy.models.course import (
    Course,
    CourseModule,
    Material,
    MaterialKind,
    Question,
    Quiz,
)
from academy.services.course_rules import CourseOutline, ModuleOutline, import_course

SAMPLE_OWNER_ID = UUID("00000000-0000-0000-0000-00000000000a")


def _module(course: Course, position: int, title: str, with_quiz: bool) -> ModuleOutline:
    module = CourseModule.new(course_id=course.id, position=position, title=title)
    materials = (
        Material.new(
            module_id=module.id,
            position=1,
            kind=MaterialKind.VIDEO,
            title=f"{title}: lecture",
            content_ref=f"https://cdn.example.com/{course.slug}/{position}/lecture.mp4",
        ),
        Material.new(
            module_id=module.id,
            position=2,
            kind=MaterialKind.DOCUMENT,
            title=f"{title}: notes",
            content_ref=f"https://cdn.example.com/{course.slug}/{position}/notes.pdf",
        ),
    )
    if not with_quiz:
        return ModuleOutline(module=module, materials=materials)

    quiz = Quiz.new(module_id=module.id, title=f"{title} check", passing_threshold_percent=70)
    questions = (
        Question.new(
            quiz_id=quiz.id,
            position=1,
            prompt="Which status grants access to course content?",
            choices=[("active", True), ("pending_review", False), ("suspended", False)],
        ),
        Question.new(
            quiz_id=quiz.id,
            position=2,
            prompt="How many certificates can one enrollment receive?",
            choices=[("one", True), ("one per module", False)],
            points=2,
        ),
    )
    return ModuleOutline(module=module, materials=materials, quiz=quiz, questions=questions)


def sample_outlines() -> list[CourseOutline]:
    paid = Course.new(
        slug="intro-to-bookkeeping",
        title="Introduction to Bookkeeping",
        owner_id=SAMPLE_OWNER_ID,
        price=Decimal("1500.00"),
    )
    free = Course.new(
        slug="mobile-money-basics",
        title="Mobile Money Basics",
        owner_id=SAMPLE_OWNER_ID,
    )
    return [
        CourseOutline(
            course=paid,
            modules=(
                _module(paid, 1, "Ledgers", with_quiz=True),
                _module(paid, 2, "Trial balance", with_quiz=True),
            ),
        ),
        CourseOutline(course=free, modules=(_module(free, 1, "Getting started", False),)),
    ]


async def seed_sample_catalog(store: Store) -> None:
    for outline in sample_outlines():
        await import_course(store, outline)
