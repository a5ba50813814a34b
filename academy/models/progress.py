from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class MaterialCompletion:
    """At most one per (enrollment, material); re-marking is a no-op."""

    enrollment_id: UUID
    material_id: UUID
    module_id: UUID
    completed_at: int


@dataclass(frozen=True, slots=True)
class ModuleState:
    """Derived per-module view for one enrollment."""

    module_id: UUID
    position: int
    title: str
    accessible: bool
    complete: bool
    materials_total: int
    materials_done: int
    quiz_id: UUID | None = None
    quiz_passed: bool | None = None

    @property
    def materials_complete(self) -> bool:
        return self.materials_done >= self.materials_total


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """Read model returned by UnlockEngine.get_progress."""

    enrollment_id: UUID
    course_id: UUID
    status: str
    modules: tuple[ModuleState, ...]
    progress_percent: int
    next_module_id: UUID | None
    course_complete: bool


@dataclass(frozen=True, slots=True)
class CompletionResult:
    """Outcome of registering a material (or quiz) as finished.

    accepted:        the registration went through
    newly_recorded:  False on an idempotent repeat
    quiz_required:   materials done, quiz still outstanding (quiz_id set)
    next_module_id:  first module that is accessible and not yet complete
    certificate_id:  set when this call completed the course
    """

    accepted: bool
    newly_recorded: bool
    module_complete: bool
    quiz_required: bool
    quiz_id: UUID | None
    course_complete: bool
    next_module_id: UUID | None
    certificate_id: UUID | None = None
