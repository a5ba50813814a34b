"""Payment review endpoints.

  GET  /v1/payments?status=                  review queue across owned courses
  POST /v1/payments/{payment_id}/decision   course owner approves or rejects
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from academy.api.dependencies import CurrentUser, StoreDep
from academy.models.payment import Payment, PaymentStatus
from academy.services import payment_ledger

router = APIRouter(prefix="/v1/payments", tags=["payments"])


class PaymentOut(BaseModel):
    id: UUID
    enrollment_id: UUID
    reference_code: str
    amount: Decimal
    currency: str
    method: str
    status: str
    submitted_at: int
    proof_ref: str | None
    notes: str
    decided_at: int | None
    decided_by: UUID | None
    decision_reason: str | None


def payment_out(p: Payment) -> PaymentOut:
    return PaymentOut(
        id=p.id,
        enrollment_id=p.enrollment_id,
        reference_code=p.reference_code,
        amount=p.amount,
        currency=p.currency,
        method=p.method.value,
        status=p.status.value,
        submitted_at=p.submitted_at,
        proof_ref=p.proof_ref,
        notes=p.notes,
        decided_at=p.decided_at,
        decided_by=p.decided_by,
        decision_reason=p.decision_reason,
    )


@router.get("", response_model=list[PaymentOut])
async def list_payments(
    principal: CurrentUser,
    store: StoreDep,
    status: str = PaymentStatus.PENDING_REVIEW.value,
) -> list[PaymentOut]:
    payments = await payment_ledger.list_payments_for_review(store, principal, status)
    return [payment_out(p) for p in payments]


class DecisionIn(BaseModel):
    outcome: str  # approve|reject
    reason: str | None = None


@router.post("/{payment_id}/decision", response_model=PaymentOut)
async def decide_payment(
    payment_id: UUID,
    body: DecisionIn,
    principal: CurrentUser,
    store: StoreDep,
) -> PaymentOut:
    payment = await payment_ledger.decide(
        store, principal, payment_id, body.outcome, body.reason
    )
    return payment_out(payment)
