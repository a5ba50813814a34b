from __future__ import annotations

from typing import Protocol
from uuid import UUID

from academy.core.errors import AlreadyEnrolled
from academy.models.enrollment import Enrollment, EnrollmentEvent


class EnrollmentRepo(Protocol):
    async def get(self, enrollment_id: UUID) -> Enrollment | None: ...
    async def get_for_update(self, enrollment_id: UUID) -> Enrollment | None: ...
    async def get_by_learner_course(
        self, learner_id: UUID, course_id: UUID
    ) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def save(self, enrollment: Enrollment) -> None: ...
    async def list_for_learner(self, learner_id: UUID) -> list[Enrollment]: ...
    async def list_for_courses(
        self, course_ids: list[UUID] | None = None
    ) -> list[Enrollment]: ...


class EnrollmentEventRepo(Protocol):
    async def append(self, event: EnrollmentEvent) -> None: ...
    async def list_for_enrollment(
        self, enrollment_id: UUID
    ) -> list[EnrollmentEvent]: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Enrollment] = {}

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        return self._by_id.get(enrollment_id)

    async def get_for_update(self, enrollment_id: UUID) -> Enrollment | None:
        # The in-memory store serialises whole transactions, so a plain
        # read is already exclusive.
        return self._by_id.get(enrollment_id)

    async def get_by_learner_course(
        self, learner_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        for e in self._by_id.values():
            if e.learner_id == learner_id and e.course_id == course_id:
                return e
        return None

    async def add(self, enrollment: Enrollment) -> None:
        if await self.get_by_learner_course(enrollment.learner_id, enrollment.course_id):
            raise AlreadyEnrolled("learner already has an enrollment for this course")
        self._by_id[enrollment.id] = enrollment

    async def save(self, enrollment: Enrollment) -> None:
        if enrollment.id not in self._by_id:
            raise KeyError("enrollment not found")
        self._by_id[enrollment.id] = enrollment

    async def list_for_learner(self, learner_id: UUID) -> list[Enrollment]:
        return [e for e in self._by_id.values() if e.learner_id == learner_id]

    async def list_for_courses(
        self, course_ids: list[UUID] | None = None
    ) -> list[Enrollment]:
        if course_ids is None:
            return list(self._by_id.values())
        wanted = set(course_ids)
        return [e for e in self._by_id.values() if e.course_id in wanted]

    def snapshot(self) -> dict[UUID, Enrollment]:
        return dict(self._by_id)

    def restore(self, state: dict[UUID, Enrollment]) -> None:
        self._by_id = dict(state)


class InMemoryEnrollmentEventRepo:
    def __init__(self) -> None:
        self._events: list[EnrollmentEvent] = []

    async def append(self, event: EnrollmentEvent) -> None:
        self._events.append(event)

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[EnrollmentEvent]:
        return [e for e in self._events if e.enrollment_id == enrollment_id]

    def snapshot(self) -> list[EnrollmentEvent]:
        return list(self._events)

    def restore(self, state: list[EnrollmentEvent]) -> None:
        self._events = list(state)
