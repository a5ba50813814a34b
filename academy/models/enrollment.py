from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4


class EnrollmentStatus(StrEnum):
    PENDING_PAYMENT = "pending_payment"
    PENDING_REVIEW = "pending_review"
    ACTIVE = "active"
    COMPLETED = "completed"
    SUSPENDED = "suspended"


# Statuses from which course content may be opened.
CONTENT_ACCESS_STATUSES = frozenset(
    {EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED}
)


@dataclass(frozen=True, slots=True)
class Enrollment:
    """The learner-course relationship.  One per (learner, course), never
    deleted; only the state machine changes ``status``."""

    id: UUID
    learner_id: UUID
    course_id: UUID
    status: EnrollmentStatus
    created_at: int
    activated_at: int | None = None
    completed_at: int | None = None
    suspended_at: int | None = None

    @staticmethod
    def new(*, learner_id: UUID, course_id: UUID, created_at: int) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            learner_id=learner_id,
            course_id=course_id,
            status=EnrollmentStatus.PENDING_PAYMENT,
            created_at=created_at,
        )

    @property
    def grants_access(self) -> bool:
        return self.status in CONTENT_ACCESS_STATUSES


@dataclass(frozen=True, slots=True)
class EnrollmentEvent:
    """Append-only audit trail for one enrollment.

    type: transition|payment_submitted|payment_decided|material_completed|
          quiz_started|quiz_submitted|certificate_issued
    """

    id: UUID
    enrollment_id: UUID
    occurred_at: int
    type: str
    actor_id: UUID | None = None
    payload_json: str | None = None

    @staticmethod
    def new(
        *,
        enrollment_id: UUID,
        occurred_at: int,
        type: str,
        actor_id: UUID | None = None,
        payload_json: str | None = None,
    ) -> EnrollmentEvent:
        return EnrollmentEvent(
            id=uuid4(),
            enrollment_id=enrollment_id,
            occurred_at=occurred_at,
            type=type,
            actor_id=actor_id,
            payload_json=payload_json,
        )
