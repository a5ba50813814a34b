"""Catalog reference data access.

Authoring lives outside this service; the write methods here exist so the
catalog can be seeded (fixtures, import jobs) and so module order can be
reflowed.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from academy.models.course import Course, CourseModule, Material, Question, Quiz


class CatalogRepo(Protocol):
    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def add_course(self, course: Course) -> None: ...
    async def list_courses_owned_by(self, owner_id: UUID) -> list[Course]: ...
    async def get_module(self, module_id: UUID) -> CourseModule | None: ...
    async def list_modules(self, course_id: UUID) -> list[CourseModule]: ...
    async def add_module(self, module: CourseModule) -> None: ...
    async def set_module_positions(self, positions: dict[UUID, int]) -> None: ...
    async def get_material(self, material_id: UUID) -> Material | None: ...
    async def list_materials(self, module_id: UUID) -> list[Material]: ...
    async def add_material(self, material: Material) -> None: ...
    async def get_quiz(self, quiz_id: UUID) -> Quiz | None: ...
    async def get_quiz_for_module(self, module_id: UUID) -> Quiz | None: ...
    async def add_quiz(self, quiz: Quiz) -> None: ...
    async def list_questions(self, quiz_id: UUID) -> list[Question]: ...
    async def add_question(self, question: Question) -> None: ...


class InMemoryCatalogRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._modules: dict[UUID, CourseModule] = {}
        self._materials: dict[UUID, Material] = {}
        self._quizzes: dict[UUID, Quiz] = {}
        self._questions: dict[UUID, Question] = {}

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def add_course(self, course: Course) -> None:
        if any(c.slug == course.slug for c in self._courses.values()):
            raise ValueError("course slug already exists")
        self._courses[course.id] = course

    async def list_courses_owned_by(self, owner_id: UUID) -> list[Course]:
        return [c for c in self._courses.values() if c.owner_id == owner_id]

    async def get_module(self, module_id: UUID) -> CourseModule | None:
        return self._modules.get(module_id)

    async def list_modules(self, course_id: UUID) -> list[CourseModule]:
        modules = [m for m in self._modules.values() if m.course_id == course_id]
        return sorted(modules, key=lambda m: m.position)

    async def add_module(self, module: CourseModule) -> None:
        for m in self._modules.values():
            if m.course_id == module.course_id and m.position == module.position:
                raise ValueError("module position already taken")
        self._modules[module.id] = module

    async def set_module_positions(self, positions: dict[UUID, int]) -> None:
        for module_id, position in positions.items():
            self._modules[module_id] = replace(self._modules[module_id], position=position)

    async def get_material(self, material_id: UUID) -> Material | None:
        return self._materials.get(material_id)

    async def list_materials(self, module_id: UUID) -> list[Material]:
        materials = [m for m in self._materials.values() if m.module_id == module_id]
        return sorted(materials, key=lambda m: m.position)

    async def add_material(self, material: Material) -> None:
        self._materials[material.id] = material

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        return self._quizzes.get(quiz_id)

    async def get_quiz_for_module(self, module_id: UUID) -> Quiz | None:
        for q in self._quizzes.values():
            if q.module_id == module_id:
                return q
        return None

    async def add_quiz(self, quiz: Quiz) -> None:
        if await self.get_quiz_for_module(quiz.module_id) is not None:
            raise ValueError("module already has a quiz")
        self._quizzes[quiz.id] = quiz

    async def list_questions(self, quiz_id: UUID) -> list[Question]:
        questions = [q for q in self._questions.values() if q.quiz_id == quiz_id]
        return sorted(questions, key=lambda q: q.position)

    async def add_question(self, question: Question) -> None:
        self._questions[question.id] = question

    def snapshot(self) -> tuple[dict, ...]:
        return (
            dict(self._courses),
            dict(self._modules),
            dict(self._materials),
            dict(self._quizzes),
            dict(self._questions),
        )

    def restore(self, state: tuple[dict, ...]) -> None:
        courses, modules, materials, quizzes, questions = state
        self._courses = dict(courses)
        self._modules = dict(modules)
        self._materials = dict(materials)
        self._quizzes = dict(quizzes)
        self._questions = dict(questions)
