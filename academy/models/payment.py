from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from uuid import UUID, uuid4


class PaymentStatus(StrEnum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentMethod(StrEnum):
    MPESA = "mpesa"
    EMOLA = "emola"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    # Reserved for the zero-value row written on free enrollments.
    FREE = "free"


class Decision(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True, slots=True)
class Payment:
    """One proof-of-payment submission and its review outcome.

    A resubmission after rejection is a new row; decided rows are kept as
    the audit trail.
    """

    id: UUID
    enrollment_id: UUID
    amount: Decimal
    currency: str
    method: PaymentMethod
    status: PaymentStatus
    reference_code: str
    submitted_at: int
    proof_ref: str | None = None
    notes: str = ""
    decided_at: int | None = None
    decided_by: UUID | None = None
    decision_reason: str | None = None

    @staticmethod
    def new(
        *,
        enrollment_id: UUID,
        amount: Decimal,
        currency: str,
        method: PaymentMethod,
        submitted_at: int,
        proof_ref: str | None = None,
        notes: str = "",
        status: PaymentStatus = PaymentStatus.PENDING_REVIEW,
    ) -> Payment:
        payment_id = uuid4()
        return Payment(
            id=payment_id,
            enrollment_id=enrollment_id,
            amount=amount,
            currency=currency,
            method=method,
            status=status,
            reference_code=f"PAY-{submitted_at}-{payment_id.hex[:8].upper()}",
            submitted_at=submitted_at,
            proof_ref=proof_ref,
            notes=notes,
        )
