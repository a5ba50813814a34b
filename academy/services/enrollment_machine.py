"""Enrollment state machine.

The transition table below is the only place an enrollment's status is
changed.  Services call ``transition(uow, enrollment, operation)``; any edge
not in the table raises InvalidTransition naming the attempted edge.

    mark_paid       pending_payment                  -> pending_review
    approve         pending_review                   -> active
    reject          pending_review                   -> pending_payment
    mark_completed  active                           -> completed
    suspend         pending_payment, pending_review  -> suspended

Content is reachable only from active and completed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from uuid import UUID

from academy.core.errors import InvalidTransition, NotAccessible, NotFound
from academy.core.metrics import ENROLLMENT_TRANSITIONS
from academy.db.unit_of_work import UnitOfWork
from academy.models.enrollment import Enrollment, EnrollmentEvent, EnrollmentStatus

logger = logging.getLogger(__name__)

S = EnrollmentStatus

TRANSITIONS: dict[str, tuple[frozenset[EnrollmentStatus], EnrollmentStatus]] = {
    "mark_paid": (frozenset({S.PENDING_PAYMENT}), S.PENDING_REVIEW),
    "approve": (frozenset({S.PENDING_REVIEW}), S.ACTIVE),
    "reject": (frozenset({S.PENDING_REVIEW}), S.PENDING_PAYMENT),
    "mark_completed": (frozenset({S.ACTIVE}), S.COMPLETED),
    "suspend": (frozenset({S.PENDING_PAYMENT, S.PENDING_REVIEW}), S.SUSPENDED),
}

# Timestamp column stamped when an enrollment enters the status.
_STAMPS = {
    S.ACTIVE: "activated_at",
    S.COMPLETED: "completed_at",
    S.SUSPENDED: "suspended_at",
}


def can_transition(status: EnrollmentStatus, operation: str) -> bool:
    edge = TRANSITIONS.get(operation)
    return edge is not None and status in edge[0]


def allowed_operations(status: EnrollmentStatus) -> list[str]:
    return [op for op in TRANSITIONS if can_transition(status, op)]


async def transition(
    uow: UnitOfWork,
    enrollment: Enrollment,
    operation: str,
    *,
    actor_id: UUID | None = None,
    reason: str | None = None,
) -> Enrollment:
    """Apply one edge of the table and persist it with its audit event."""
    if not can_transition(enrollment.status, operation):
        raise InvalidTransition(operation, enrollment.status.value)

    target = TRANSITIONS[operation][1]
    changes: dict = {"status": target}
    stamp = _STAMPS.get(target)
    if stamp is not None:
        changes[stamp] = uow.now
    updated = replace(enrollment, **changes)
    await uow.enrollments.save(updated)

    await record_event(
        uow,
        enrollment.id,
        "transition",
        actor_id=actor_id,
        operation=operation,
        from_status=enrollment.status.value,
        to_status=target.value,
        reason=reason,
    )

    from_label = enrollment.status.value
    uow.on_commit(
        lambda: ENROLLMENT_TRANSITIONS.labels(
            operation=operation, from_status=from_label, to_status=target.value
        ).inc()
    )
    logger.info(
        "enrollment %s %s -> %s",
        operation,
        enrollment.status.value,
        target.value,
        extra={
            "enrollment_id": str(enrollment.id),
            "course_id": str(enrollment.course_id),
            "transition": f"{enrollment.status.value}->{target.value}",
        },
    )
    return updated


async def record_event(
    uow: UnitOfWork,
    enrollment_id: UUID,
    type: str,
    *,
    actor_id: UUID | None = None,
    **payload,
) -> None:
    """Append to the enrollment's audit trail.  ``None`` values are dropped."""
    data = {k: v for k, v in payload.items() if v is not None}
    await uow.events.append(
        EnrollmentEvent.new(
            enrollment_id=enrollment_id,
            occurred_at=uow.now,
            type=type,
            actor_id=actor_id,
            payload_json=json.dumps(data, default=str, sort_keys=True) if data else None,
        )
    )


async def load(uow: UnitOfWork, enrollment_id: UUID, *, for_update: bool = False) -> Enrollment:
    if for_update:
        enrollment = await uow.enrollments.get_for_update(enrollment_id)
    else:
        enrollment = await uow.enrollments.get(enrollment_id)
    if enrollment is None:
        raise NotFound("enrollment not found")
    return enrollment


def require_content_access(enrollment: Enrollment) -> None:
    if not enrollment.grants_access:
        raise NotAccessible(
            f"course content is not available while the enrollment is "
            f"{enrollment.status.value}"
        )
