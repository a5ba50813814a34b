"""Catalog reference data: courses, modules, materials, quizzes, questions.

The enrollment core only reads these.  Authoring happens elsewhere; the
catalog repository is seeded from that source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from uuid import UUID, uuid4


class MaterialKind(StrEnum):
    VIDEO = "video"
    DOCUMENT = "document"
    LINK = "link"
    TEXT = "text"


class QuestionKind(StrEnum):
    # Only single-answer multiple choice is scored today.
    SINGLE_CHOICE = "single_choice"


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    slug: str
    title: str
    owner_id: UUID
    price: Decimal = Decimal("0")
    currency: str = "MZN"
    is_free: bool = False

    @staticmethod
    def new(
        *,
        slug: str,
        title: str,
        owner_id: UUID,
        price: Decimal = Decimal("0"),
        currency: str = "MZN",
        is_free: bool | None = None,
    ) -> Course:
        return Course(
            id=uuid4(),
            slug=slug,
            title=title,
            owner_id=owner_id,
            price=price,
            currency=currency,
            is_free=price == 0 if is_free is None else is_free,
        )


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: UUID
    course_id: UUID
    position: int  # 1-based, contiguous within the course
    title: str
    description: str = ""

    @staticmethod
    def new(
        *, course_id: UUID, position: int, title: str, description: str = ""
    ) -> CourseModule:
        return CourseModule(
            id=uuid4(),
            course_id=course_id,
            position=position,
            title=title,
            description=description,
        )


@dataclass(frozen=True, slots=True)
class Material:
    """Leaf content unit.  Every kind shares the same completion contract:
    one explicit "done" registration per enrollment."""

    id: UUID
    module_id: UUID
    position: int
    kind: MaterialKind
    title: str
    content_ref: str

    @staticmethod
    def new(
        *,
        module_id: UUID,
        position: int,
        kind: MaterialKind,
        title: str,
        content_ref: str,
    ) -> Material:
        return Material(
            id=uuid4(),
            module_id=module_id,
            position=position,
            kind=kind,
            title=title,
            content_ref=content_ref,
        )


@dataclass(frozen=True, slots=True)
class Quiz:
    id: UUID
    module_id: UUID
    title: str
    passing_threshold_percent: int
    time_limit_seconds: int | None = None

    @staticmethod
    def new(
        *,
        module_id: UUID,
        title: str,
        passing_threshold_percent: int,
        time_limit_seconds: int | None = None,
    ) -> Quiz:
        return Quiz(
            id=uuid4(),
            module_id=module_id,
            title=title,
            passing_threshold_percent=passing_threshold_percent,
            time_limit_seconds=time_limit_seconds,
        )


@dataclass(frozen=True, slots=True)
class Option:
    id: UUID
    question_id: UUID
    position: int
    text: str
    is_correct: bool = False


@dataclass(frozen=True, slots=True)
class Question:
    id: UUID
    quiz_id: UUID
    position: int
    prompt: str
    points: int = 1
    kind: QuestionKind = QuestionKind.SINGLE_CHOICE
    options: tuple[Option, ...] = field(default_factory=tuple)

    @staticmethod
    def new(
        *,
        quiz_id: UUID,
        position: int,
        prompt: str,
        choices: list[tuple[str, bool]],
        points: int = 1,
    ) -> Question:
        """Build a question and its options from (text, is_correct) pairs."""
        question_id = uuid4()
        options = tuple(
            Option(
                id=uuid4(),
                question_id=question_id,
                position=i,
                text=text,
                is_correct=is_correct,
            )
            for i, (text, is_correct) in enumerate(choices, start=1)
        )
        return Question(
            id=question_id,
            quiz_id=quiz_id,
            position=position,
            prompt=prompt,
            points=points,
            options=options,
        )

    def correct_options(self) -> list[Option]:
        return [o for o in self.options if o.is_correct]

    def option(self, option_id: UUID) -> Option | None:
        for o in self.options:
            if o.id == option_id:
                return o
        return None
