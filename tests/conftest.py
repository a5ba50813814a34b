from __future__ import annotations

import asyncio
import sys
import uuid
from collections.abc import Coroutine
from decimal import Decimal
from pathlib import Path
from typing import Any, TypeVar
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from academy.db import unit_of_work
from academy.db.unit_of_work import InMemoryStore
from academy.main import app
from academy.models.course import (
    Course,
    CourseModule,
    Material,
    MaterialKind,
    Question,
    Quiz,
)
from academy.models.principal import Principal
from academy.services import token_service
from academy.services.course_rules import CourseOutline, ModuleOutline, import_course

# Ensure repo root is on sys.path so `import academy` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

T = TypeVar("T")

START = 1_760_000_000  # 2025-10-09T08:53:20Z

OWNER_ID = UUID("00000000-0000-0000-0000-0000000000aa")
LEARNER_ID = UUID("00000000-0000-0000-0000-0000000000bb")
ADMIN_ID = UUID("00000000-0000-0000-0000-0000000000cc")

OWNER = Principal(user_id=OWNER_ID, roles=frozenset({"instructor"}))
LEARNER = Principal(user_id=LEARNER_ID, roles=frozenset({"learner"}))
ADMIN = Principal(user_id=ADMIN_ID, roles=frozenset({"admin"}))


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Drive a service coroutine from a synchronous test."""
    return asyncio.run(coro)


class FakeClock:
    """Epoch-seconds clock the tests move by hand."""

    def __init__(self, start: int = START) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def store(monkeypatch: pytest.MonkeyPatch, clock: FakeClock) -> InMemoryStore:
    """Fresh in-memory store per test, swapped in for the process singleton."""
    fresh = InMemoryStore(clock=clock)
    monkeypatch.setattr(unit_of_work, "store", fresh)
    return fresh


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    user_id: UUID | str | None = None,
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(
        sub=str(user_id or uuid.uuid4()), roles=roles
    )


def auth(user_id: UUID, roles: list[str] | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(user_id, roles)}"}


@pytest.fixture
def learner_headers() -> dict[str, str]:
    return auth(LEARNER_ID, ["learner"])


@pytest.fixture
def owner_headers() -> dict[str, str]:
    return auth(OWNER_ID, ["instructor"])


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth(ADMIN_ID, ["admin"])


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------


def build_outline(
    *,
    price: Decimal | str = "1500.00",
    modules: int = 2,
    materials: int = 2,
    quiz_modules: tuple[int, ...] = (),
    threshold: int = 70,
    time_limit_seconds: int | None = None,
    owner_id: UUID = OWNER_ID,
    slug: str | None = None,
) -> CourseOutline:
    """A well-formed course: ``modules`` modules of ``materials`` each.

    Modules whose position is in ``quiz_modules`` get a two-question quiz
    (1 point + 3 points, first option correct).
    """
    course = Course.new(
        slug=slug or f"course-{uuid.uuid4().hex[:8]}",
        title="Intro to Bookkeeping",
        owner_id=owner_id,
        price=Decimal(price),
    )
    entries = []
    for position in range(1, modules + 1):
        module = CourseModule.new(
            course_id=course.id, position=position, title=f"Module {position}"
        )
        mats = tuple(
            Material.new(
                module_id=module.id,
                position=i,
                kind=MaterialKind.VIDEO,
                title=f"Lesson {position}.{i}",
                content_ref=f"https://cdn.example.com/{position}/{i}.mp4",
            )
            for i in range(1, materials + 1)
        )
        quiz = None
        questions: tuple[Question, ...] = ()
        if position in quiz_modules:
            quiz = Quiz.new(
                module_id=module.id,
                title=f"Module {position} check",
                passing_threshold_percent=threshold,
                time_limit_seconds=time_limit_seconds,
            )
            questions = (
                Question.new(
                    quiz_id=quiz.id,
                    position=1,
                    prompt="Debits go on which side?",
                    choices=[("left", True), ("right", False)],
                    points=1,
                ),
                Question.new(
                    quiz_id=quiz.id,
                    position=2,
                    prompt="A trial balance checks what?",
                    choices=[("debits equal credits", True), ("cash on hand", False)],
                    points=3,
                ),
            )
        entries.append(
            ModuleOutline(module=module, materials=mats, quiz=quiz, questions=questions)
        )
    return CourseOutline(course=course, modules=tuple(entries))


def seed(store: InMemoryStore, outline: CourseOutline) -> CourseOutline:
    run(import_course(store, outline))
    return outline


def answers_for(outline: CourseOutline, module_position: int, correct: bool = True):
    """(question_id, option_id) pairs answering every question of a module's quiz."""
    entry = outline.modules[module_position - 1]
    pairs = []
    for q in entry.questions:
        option = next(o for o in q.options if o.is_correct == correct)
        pairs.append((q.id, option.id))
    return pairs
