"""Payment ledger: manual proof-of-payment reconciliation.

Learners pay outside the platform (M-Pesa, e-Mola, bank transfer, card) and
upload a proof; the course owner reviews it.  Each submission is a new
Payment row, so the ledger is also the payment history.  Free courses skip
the review: a zero-value approved row is written and the enrollment goes
straight to active inside the same transaction.

All operations take the caller explicitly and run as one unit of work.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse
from uuid import UUID

from academy.core.config import SETTINGS
from academy.core.errors import (
    AlreadyEnrolled,
    DuplicateSubmission,
    InvalidArgument,
    InvalidState,
    NotAuthorized,
    NotFound,
)
from academy.core.metrics import PAYMENT_DECISIONS
from academy.db.unit_of_work import Store, UnitOfWork
from academy.models.course import Course
from academy.models.enrollment import Enrollment, EnrollmentStatus
from academy.models.payment import Decision, Payment, PaymentMethod, PaymentStatus
from academy.models.principal import Principal
from academy.services.enrollment_machine import load, record_event, transition
from academy.services.notifications import Notification

logger = logging.getLogger(__name__)

# Methods a learner may declare; ``free`` is reserved for the free-course path.
SUBMITTABLE_METHODS = frozenset(PaymentMethod) - {PaymentMethod.FREE}


async def create_intent(store: Store, caller: Principal, course_id: UUID) -> Enrollment:
    """Open an enrollment for ``caller`` in ``course_id``.

    Paid courses start in pending_payment.  Free courses are recorded with a
    zero-value approved payment and come back active.
    """
    async with store.transaction() as uow:
        course = await _course(uow, course_id)

        existing = await uow.enrollments.get_by_learner_course(caller.user_id, course_id)
        if existing is not None:
            if existing.status == EnrollmentStatus.SUSPENDED:
                raise InvalidState("enrollment for this course is suspended")
            raise AlreadyEnrolled("learner already has an enrollment for this course")

        enrollment = Enrollment.new(
            learner_id=caller.user_id, course_id=course.id, created_at=uow.now
        )
        await uow.enrollments.add(enrollment)
        await record_event(uow, enrollment.id, "created", actor_id=caller.user_id)

        if course.is_free:
            payment = replace(
                Payment.new(
                    enrollment_id=enrollment.id,
                    amount=Decimal("0"),
                    currency=course.currency,
                    method=PaymentMethod.FREE,
                    submitted_at=uow.now,
                    status=PaymentStatus.APPROVED,
                ),
                decided_at=uow.now,
                decision_reason="free course",
            )
            await uow.payments.add(payment)
            enrollment = await transition(
                uow, enrollment, "mark_paid", actor_id=caller.user_id
            )
            enrollment = await transition(
                uow, enrollment, "approve", actor_id=caller.user_id
            )

    logger.info(
        "enrollment created status=%s",
        enrollment.status.value,
        extra={
            "enrollment_id": str(enrollment.id),
            "course_id": str(course_id),
            "user_id": str(caller.user_id),
        },
    )
    return enrollment


async def submit_proof(
    store: Store,
    caller: Principal,
    enrollment_id: UUID,
    *,
    proof_ref: str,
    method: str,
    amount: Decimal | str,
    notes: str = "",
) -> Payment:
    async with store.transaction() as uow:
        enrollment = await load(uow, enrollment_id, for_update=True)
        if enrollment.learner_id != caller.user_id:
            raise NotAuthorized("only the enrolled learner can submit payment proof")
        if enrollment.status == EnrollmentStatus.PENDING_REVIEW:
            raise DuplicateSubmission("a payment proof is already under review")
        if enrollment.status != EnrollmentStatus.PENDING_PAYMENT:
            raise InvalidState(
                f"payment proof is not accepted while the enrollment is "
                f"{enrollment.status.value}"
            )

        pay_method = _parse_method(method)
        value = _parse_amount(amount)
        _check_proof_ref(proof_ref)
        course = await _course(uow, enrollment.course_id)

        payment = Payment.new(
            enrollment_id=enrollment.id,
            amount=value,
            currency=course.currency,
            method=pay_method,
            submitted_at=uow.now,
            proof_ref=proof_ref.strip(),
            notes=notes.strip(),
        )
        await uow.payments.add(payment)
        await transition(uow, enrollment, "mark_paid", actor_id=caller.user_id)
        await record_event(
            uow,
            enrollment.id,
            "payment_submitted",
            actor_id=caller.user_id,
            payment_id=payment.id,
            reference_code=payment.reference_code,
            method=pay_method.value,
            amount=str(value),
        )
        uow.notify(
            Notification(
                recipient_id=course.owner_id,
                kind="payment_submitted",
                title="Payment proof to review",
                message=(
                    f"A learner submitted {value} {course.currency} via "
                    f"{pay_method.value} for {course.title} (ref {payment.reference_code})."
                ),
                link=f"/enrollments/{enrollment.id}/payments",
                payload={
                    "enrollment_id": str(enrollment.id),
                    "payment_id": str(payment.id),
                    "reference_code": payment.reference_code,
                    "course_title": course.title,
                    "amount": str(value),
                    "currency": course.currency,
                    "method": pay_method.value,
                },
            )
        )

    logger.info(
        "payment proof submitted ref=%s",
        payment.reference_code,
        extra={"enrollment_id": str(enrollment_id), "payment_id": str(payment.id)},
    )
    return payment


async def decide(
    store: Store,
    caller: Principal,
    payment_id: UUID,
    outcome: str,
    reason: str | None = None,
) -> Payment:
    """Approve or reject a payment under review.

    Only the course owner (or a platform admin) may decide.  A rejection
    must carry a reason of at least REJECTION_REASON_MIN_LENGTH characters;
    the learner is sent back to pending_payment and may resubmit.
    """
    try:
        decision = Decision(outcome)
    except ValueError:
        raise InvalidArgument("outcome must be approve or reject") from None

    async with store.transaction() as uow:
        payment = await uow.payments.get(payment_id)
        if payment is None:
            raise NotFound("payment not found")
        enrollment = await load(uow, payment.enrollment_id, for_update=True)
        # Re-read under the enrollment lock; a concurrent decision may have won.
        payment = await uow.payments.get(payment_id)
        course = await _course(uow, enrollment.course_id)

        if caller.user_id != course.owner_id and not caller.is_platform_admin():
            raise NotAuthorized("only the course owner can review payments")
        if payment.status != PaymentStatus.PENDING_REVIEW:
            raise InvalidState(f"payment has already been {payment.status.value}")

        clean_reason = (reason or "").strip() or None
        if decision == Decision.REJECT:
            minimum = SETTINGS.rejection_reason_min_length
            if clean_reason is None or len(clean_reason) < minimum:
                raise InvalidArgument(
                    f"a rejection reason of at least {minimum} characters is required"
                )

        decided = replace(
            payment,
            status=(
                PaymentStatus.APPROVED
                if decision == Decision.APPROVE
                else PaymentStatus.REJECTED
            ),
            decided_at=uow.now,
            decided_by=caller.user_id,
            decision_reason=clean_reason,
        )
        await uow.payments.save(decided)
        await transition(
            uow,
            enrollment,
            decision.value,
            actor_id=caller.user_id,
            reason=clean_reason,
        )
        await record_event(
            uow,
            enrollment.id,
            "payment_decided",
            actor_id=caller.user_id,
            payment_id=payment.id,
            outcome=decision.value,
            reason=clean_reason,
        )
        uow.notify(
            Notification(
                recipient_id=enrollment.learner_id,
                kind=(
                    "payment_approved"
                    if decision == Decision.APPROVE
                    else "payment_rejected"
                ),
                title=(
                    "Payment approved"
                    if decision == Decision.APPROVE
                    else "Payment rejected"
                ),
                message=(
                    f"Your enrollment in {course.title} is now active."
                    if decision == Decision.APPROVE
                    else f"Your payment for {course.title} was rejected: {clean_reason}"
                ),
                link=f"/enrollments/{enrollment.id}",
                payload={
                    "enrollment_id": str(enrollment.id),
                    "reference_code": payment.reference_code,
                    "course_title": course.title,
                    "reason": clean_reason,
                },
            )
        )
        uow.on_commit(lambda: PAYMENT_DECISIONS.labels(outcome=decision.value).inc())

    logger.info(
        "payment %s ref=%s",
        decision.value,
        payment.reference_code,
        extra={
            "enrollment_id": str(enrollment.id),
            "payment_id": str(payment.id),
            "user_id": str(caller.user_id),
        },
    )
    return decided


async def suspend(
    store: Store, caller: Principal, enrollment_id: UUID, reason: str
) -> Enrollment:
    """Suspend an enrollment that has not been activated yet.

    A proof still under review is closed as rejected with the suspension
    reason, so it drops out of the owner's review queue.
    """
    if not caller.is_platform_admin():
        raise NotAuthorized("only platform admins can suspend enrollments")
    if not reason or not reason.strip():
        raise InvalidArgument("a suspension reason is required")
    clean_reason = reason.strip()

    async with store.transaction() as uow:
        enrollment = await load(uow, enrollment_id, for_update=True)
        course = await _course(uow, enrollment.course_id)
        enrollment = await transition(
            uow,
            enrollment,
            "suspend",
            actor_id=caller.user_id,
            reason=clean_reason,
        )
        for payment in await uow.payments.list_for_enrollment(enrollment.id):
            if payment.status != PaymentStatus.PENDING_REVIEW:
                continue
            await uow.payments.save(
                replace(
                    payment,
                    status=PaymentStatus.REJECTED,
                    decided_at=uow.now,
                    decided_by=caller.user_id,
                    decision_reason=clean_reason,
                )
            )
            await record_event(
                uow,
                enrollment.id,
                "payment_decided",
                actor_id=caller.user_id,
                payment_id=payment.id,
                outcome=Decision.REJECT.value,
                reason=clean_reason,
            )
        uow.notify(
            Notification(
                recipient_id=enrollment.learner_id,
                kind="enrollment_suspended",
                title="Enrollment suspended",
                message=f"Your enrollment in {course.title} was suspended: {clean_reason}",
                link=f"/enrollments/{enrollment.id}",
                payload={"enrollment_id": str(enrollment.id), "reason": clean_reason},
            )
        )
    return enrollment


async def get_enrollment(store: Store, caller: Principal, enrollment_id: UUID) -> Enrollment:
    async with store.transaction() as uow:
        enrollment = await load(uow, enrollment_id)
        course = await _course(uow, enrollment.course_id)
        _require_party(caller, enrollment, course)
    return enrollment


async def list_payments(
    store: Store, caller: Principal, enrollment_id: UUID
) -> list[Payment]:
    """Payment history of one enrollment, oldest first."""
    async with store.transaction() as uow:
        enrollment = await load(uow, enrollment_id)
        course = await _course(uow, enrollment.course_id)
        _require_party(caller, enrollment, course)
        return await uow.payments.list_for_enrollment(enrollment_id)


async def list_payments_for_review(
    store: Store,
    caller: Principal,
    status: PaymentStatus | str = PaymentStatus.PENDING_REVIEW,
) -> list[Payment]:
    """Payments in ``status`` across the courses the caller owns.

    Platform admins see every course.  Oldest submission first, so the
    default view is the owner's review queue.
    """
    try:
        wanted = PaymentStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in PaymentStatus)
        raise InvalidArgument(f"status must be one of: {allowed}") from None

    async with store.transaction() as uow:
        if caller.is_platform_admin():
            return await uow.payments.list_by_status(wanted, None)
        owned = await uow.catalog.list_courses_owned_by(caller.user_id)
        if not owned:
            return []
        enrollments = await uow.enrollments.list_for_courses([c.id for c in owned])
        return await uow.payments.list_by_status(wanted, [e.id for e in enrollments])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _course(uow: UnitOfWork, course_id: UUID) -> Course:
    course = await uow.catalog.get_course(course_id)
    if course is None:
        raise NotFound("course not found")
    return course


def _require_party(caller: Principal, enrollment: Enrollment, course: Course) -> None:
    """Learner, course owner and platform admins may see an enrollment."""
    if caller.user_id in (enrollment.learner_id, course.owner_id):
        return
    if caller.is_platform_admin():
        return
    raise NotAuthorized("not a party to this enrollment")


def _parse_method(method: str) -> PaymentMethod:
    try:
        pay_method = PaymentMethod(method)
    except ValueError:
        pay_method = None
    if pay_method not in SUBMITTABLE_METHODS:
        allowed = ", ".join(sorted(m.value for m in SUBMITTABLE_METHODS))
        raise InvalidArgument(f"payment method must be one of: {allowed}")
    return pay_method


def _parse_amount(amount: Decimal | str) -> Decimal:
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidArgument("amount must be a decimal number") from None
    if not value.is_finite() or value <= 0:
        raise InvalidArgument("amount must be positive")
    return value.quantize(Decimal("0.01"))


def _check_proof_ref(proof_ref: str) -> None:
    if not proof_ref or not proof_ref.strip():
        raise InvalidArgument("proof reference is required")
    if not urlparse(proof_ref.strip()).scheme:
        raise InvalidArgument("proof reference must be a URI")
