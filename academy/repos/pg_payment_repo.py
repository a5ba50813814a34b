"""PostgreSQL implementation of PaymentRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.tables import PaymentRow
from academy.models.payment import Payment, PaymentMethod, PaymentStatus


class PgPaymentRepo:
    """Satisfies the PaymentRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, payment_id: UUID) -> Payment | None:
        stmt = select(PaymentRow).where(PaymentRow.id == payment_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_payment(row)

    async def add(self, payment: Payment) -> None:
        row = PaymentRow(
            id=payment.id,
            enrollment_id=payment.enrollment_id,
            amount=payment.amount,
            currency=payment.currency,
            method=payment.method.value,
            status=payment.status.value,
            reference_code=payment.reference_code,
            submitted_at=payment.submitted_at,
            proof_ref=payment.proof_ref,
            notes=payment.notes,
            decided_at=payment.decided_at,
            decided_by=payment.decided_by,
            decision_reason=payment.decision_reason,
        )
        self._session.add(row)
        await self._session.flush()

    async def save(self, payment: Payment) -> None:
        # Only the review outcome is mutable; the submission itself is not.
        stmt = (
            update(PaymentRow)
            .where(PaymentRow.id == payment.id)
            .values(
                status=payment.status.value,
                decided_at=payment.decided_at,
                decided_by=payment.decided_by,
                decision_reason=payment.decision_reason,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("payment not found")

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[Payment]:
        stmt = (
            select(PaymentRow)
            .where(PaymentRow.enrollment_id == enrollment_id)
            .order_by(PaymentRow.submitted_at, PaymentRow.reference_code)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_payment(r) for r in rows]

    async def list_by_status(
        self, status: PaymentStatus, enrollment_ids: list[UUID] | None = None
    ) -> list[Payment]:
        stmt = select(PaymentRow).where(PaymentRow.status == status.value)
        if enrollment_ids is not None:
            if not enrollment_ids:
                return []
            stmt = stmt.where(PaymentRow.enrollment_id.in_(enrollment_ids))
        stmt = stmt.order_by(PaymentRow.submitted_at, PaymentRow.reference_code)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_payment(r) for r in rows]


def _row_to_payment(row: PaymentRow) -> Payment:
    return Payment(
        id=row.id,
        enrollment_id=row.enrollment_id,
        amount=row.amount,
        currency=row.currency,
        method=PaymentMethod(row.method),
        status=PaymentStatus(row.status),
        reference_code=row.reference_code,
        submitted_at=row.submitted_at,
        proof_ref=row.proof_ref,
        notes=row.notes or "",
        decided_at=row.decided_at,
        decided_by=row.decided_by,
        decision_reason=row.decision_reason,
    )
