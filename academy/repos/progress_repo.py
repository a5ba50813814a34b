"""Material completions and quiz attempts: the facts that drive gating."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from academy.models.progress import MaterialCompletion
from academy.models.quiz import QuizAttempt


class CompletionRepo(Protocol):
    async def get(
        self, enrollment_id: UUID, material_id: UUID
    ) -> MaterialCompletion | None: ...
    async def add(self, completion: MaterialCompletion) -> bool: ...
    async def list_for_enrollment(
        self, enrollment_id: UUID
    ) -> list[MaterialCompletion]: ...
    async def exists_for_modules(self, module_ids: list[UUID]) -> bool: ...


class AttemptRepo(Protocol):
    async def get(self, attempt_id: UUID) -> QuizAttempt | None: ...
    async def add(self, attempt: QuizAttempt) -> None: ...
    async def save(self, attempt: QuizAttempt) -> None: ...
    async def list_for(self, enrollment_id: UUID, quiz_id: UUID) -> list[QuizAttempt]: ...
    async def latest_submitted(
        self, enrollment_id: UUID, quiz_id: UUID
    ) -> QuizAttempt | None: ...
    async def exists_for_quizzes(self, quiz_ids: list[UUID]) -> bool: ...


def pick_latest_submitted(attempts: list[QuizAttempt]) -> QuizAttempt | None:
    """The attempt that gates the module: most recent submission wins."""
    submitted = [a for a in attempts if a.is_submitted]
    if not submitted:
        return None
    return max(submitted, key=lambda a: (a.submitted_at or 0, a.attempt_no))


class InMemoryCompletionRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], MaterialCompletion] = {}

    async def get(
        self, enrollment_id: UUID, material_id: UUID
    ) -> MaterialCompletion | None:
        return self._store.get((enrollment_id, material_id))

    async def add(self, completion: MaterialCompletion) -> bool:
        """Insert unless a row for (enrollment, material) exists.

        Returns False on the idempotent repeat.
        """
        key = (completion.enrollment_id, completion.material_id)
        if key in self._store:
            return False
        self._store[key] = completion
        return True

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[MaterialCompletion]:
        return [c for c in self._store.values() if c.enrollment_id == enrollment_id]

    async def exists_for_modules(self, module_ids: list[UUID]) -> bool:
        wanted = set(module_ids)
        return any(c.module_id in wanted for c in self._store.values())

    def snapshot(self) -> dict[tuple[UUID, UUID], MaterialCompletion]:
        return dict(self._store)

    def restore(self, state: dict[tuple[UUID, UUID], MaterialCompletion]) -> None:
        self._store = dict(state)


class InMemoryAttemptRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, QuizAttempt] = {}

    async def get(self, attempt_id: UUID) -> QuizAttempt | None:
        return self._by_id.get(attempt_id)

    async def add(self, attempt: QuizAttempt) -> None:
        if attempt.id in self._by_id:
            raise ValueError("attempt already exists")
        self._by_id[attempt.id] = attempt

    async def save(self, attempt: QuizAttempt) -> None:
        if attempt.id not in self._by_id:
            raise KeyError("attempt not found")
        self._by_id[attempt.id] = attempt

    async def list_for(self, enrollment_id: UUID, quiz_id: UUID) -> list[QuizAttempt]:
        attempts = [
            a
            for a in self._by_id.values()
            if a.enrollment_id == enrollment_id and a.quiz_id == quiz_id
        ]
        return sorted(attempts, key=lambda a: a.attempt_no)

    async def latest_submitted(
        self, enrollment_id: UUID, quiz_id: UUID
    ) -> QuizAttempt | None:
        return pick_latest_submitted(await self.list_for(enrollment_id, quiz_id))

    async def exists_for_quizzes(self, quiz_ids: list[UUID]) -> bool:
        wanted = set(quiz_ids)
        return any(a.quiz_id in wanted for a in self._by_id.values())

    def snapshot(self) -> dict[UUID, QuizAttempt]:
        return dict(self._by_id)

    def restore(self, state: dict[UUID, QuizAttempt]) -> None:
        self._by_id = dict(state)
