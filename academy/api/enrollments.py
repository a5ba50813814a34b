"""Enrollment and payment-proof endpoints.

  POST /v1/enrollments                       open an enrollment (free courses
                                             come back active)
  GET  /v1/enrollments/{id}                  learner, course owner or admin
  POST /v1/enrollments/{id}/payments         learner uploads proof of payment
  GET  /v1/enrollments/{id}/payments         payment history
  POST /v1/enrollments/{id}/suspend          platform admin only
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from academy.api.dependencies import CurrentUser, StoreDep
from academy.api.payments import PaymentOut, payment_out
from academy.models.enrollment import Enrollment
from academy.services import payment_ledger

router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


class EnrollmentIn(BaseModel):
    course_id: UUID


class EnrollmentOut(BaseModel):
    id: UUID
    learner_id: UUID
    course_id: UUID
    status: str
    created_at: int
    activated_at: int | None
    completed_at: int | None
    suspended_at: int | None


def enrollment_out(e: Enrollment) -> EnrollmentOut:
    return EnrollmentOut(
        id=e.id,
        learner_id=e.learner_id,
        course_id=e.course_id,
        status=e.status.value,
        created_at=e.created_at,
        activated_at=e.activated_at,
        completed_at=e.completed_at,
        suspended_at=e.suspended_at,
    )


class PaymentProofIn(BaseModel):
    proof_ref: str = Field(min_length=1, max_length=2048)
    method: str  # mpesa|emola|bank_transfer|card
    amount: Decimal
    notes: str = Field(default="", max_length=2000)


class SuspendIn(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)


@router.post("", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
async def create_enrollment(
    body: EnrollmentIn,
    principal: CurrentUser,
    store: StoreDep,
) -> EnrollmentOut:
    enrollment = await payment_ledger.create_intent(store, principal, body.course_id)
    return enrollment_out(enrollment)


@router.get("/{enrollment_id}", response_model=EnrollmentOut)
async def get_enrollment(
    enrollment_id: UUID,
    principal: CurrentUser,
    store: StoreDep,
) -> EnrollmentOut:
    enrollment = await payment_ledger.get_enrollment(store, principal, enrollment_id)
    return enrollment_out(enrollment)


@router.post(
    "/{enrollment_id}/payments",
    response_model=PaymentOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_payment_proof(
    enrollment_id: UUID,
    body: PaymentProofIn,
    principal: CurrentUser,
    store: StoreDep,
) -> PaymentOut:
    payment = await payment_ledger.submit_proof(
        store,
        principal,
        enrollment_id,
        proof_ref=body.proof_ref,
        method=body.method,
        amount=body.amount,
        notes=body.notes,
    )
    return payment_out(payment)


@router.get("/{enrollment_id}/payments", response_model=list[PaymentOut])
async def list_payments(
    enrollment_id: UUID,
    principal: CurrentUser,
    store: StoreDep,
) -> list[PaymentOut]:
    payments = await payment_ledger.list_payments(store, principal, enrollment_id)
    return [payment_out(p) for p in payments]


@router.post("/{enrollment_id}/suspend", response_model=EnrollmentOut)
async def suspend_enrollment(
    enrollment_id: UUID,
    body: SuspendIn,
    principal: CurrentUser,
    store: StoreDep,
) -> EnrollmentOut:
    enrollment = await payment_ledger.suspend(store, principal, enrollment_id, body.reason)
    return enrollment_out(enrollment)
