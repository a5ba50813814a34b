"""PostgreSQL implementations of EnrollmentRepo and EnrollmentEventRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.errors import AlreadyEnrolled
from academy.db.tables import EnrollmentEventRow, EnrollmentRow
from academy.models.enrollment import Enrollment, EnrollmentEvent, EnrollmentStatus


class PgEnrollmentRepo:
    """Satisfies the EnrollmentRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(EnrollmentRow.id == enrollment_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def get_for_update(self, enrollment_id: UUID) -> Enrollment | None:
        """Row-locks the enrollment until the surrounding transaction ends.

        Every mutating operation goes through here first, so two requests
        against the same enrollment are applied one after the other.
        """
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.id == enrollment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def get_by_learner_course(
        self, learner_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.learner_id == learner_id,
            EnrollmentRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def add(self, enrollment: Enrollment) -> None:
        row = EnrollmentRow(
            id=enrollment.id,
            learner_id=enrollment.learner_id,
            course_id=enrollment.course_id,
            status=enrollment.status.value,
            created_at=enrollment.created_at,
            activated_at=enrollment.activated_at,
            completed_at=enrollment.completed_at,
            suspended_at=enrollment.suspended_at,
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError:
            # uq_enrollments_learner_course: a concurrent create_intent won.
            raise AlreadyEnrolled(
                "learner already has an enrollment for this course"
            ) from None

    async def save(self, enrollment: Enrollment) -> None:
        stmt = (
            update(EnrollmentRow)
            .where(EnrollmentRow.id == enrollment.id)
            .values(
                status=enrollment.status.value,
                activated_at=enrollment.activated_at,
                completed_at=enrollment.completed_at,
                suspended_at=enrollment.suspended_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("enrollment not found")

    async def list_for_learner(self, learner_id: UUID) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.learner_id == learner_id)
            .order_by(EnrollmentRow.created_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]

    async def list_for_courses(
        self, course_ids: list[UUID] | None = None
    ) -> list[Enrollment]:
        stmt = select(EnrollmentRow).order_by(EnrollmentRow.created_at)
        if course_ids is not None:
            if not course_ids:
                return []
            stmt = stmt.where(EnrollmentRow.course_id.in_(course_ids))
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]


class PgEnrollmentEventRepo:
    """Satisfies the EnrollmentEventRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, event: EnrollmentEvent) -> None:
        self._session.add(
            EnrollmentEventRow(
                id=event.id,
                enrollment_id=event.enrollment_id,
                occurred_at=event.occurred_at,
                type=event.type,
                actor_id=event.actor_id,
                payload_json=event.payload_json,
            )
        )
        await self._session.flush()

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[EnrollmentEvent]:
        stmt = (
            select(EnrollmentEventRow)
            .where(EnrollmentEventRow.enrollment_id == enrollment_id)
            .order_by(EnrollmentEventRow.occurred_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            EnrollmentEvent(
                id=r.id,
                enrollment_id=r.enrollment_id,
                occurred_at=r.occurred_at,
                type=r.type,
                actor_id=r.actor_id,
                payload_json=r.payload_json,
            )
            for r in rows
        ]


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        learner_id=row.learner_id,
        course_id=row.course_id,
        status=EnrollmentStatus(row.status),
        created_at=row.created_at,
        activated_at=row.activated_at,
        completed_at=row.completed_at,
        suspended_at=row.suspended_at,
    )
