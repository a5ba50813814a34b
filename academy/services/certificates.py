"""Certificate issuance and public verification.

A certificate is issued exactly once per enrollment, synchronously with the
event that completes the course.  ``request_certificate`` is a query: it
returns the existing certificate and only issues one itself when a completed
enrollment somehow has none (a crash between completion and issuance).
"""

from __future__ import annotations

import datetime
import logging
import secrets
from uuid import UUID

from academy.core.config import SETTINGS
from academy.core.errors import AlreadyIssued, InvalidState, NotAuthorized, NotFound
from academy.core.metrics import CERTIFICATES_ISSUED
from academy.db.unit_of_work import Store, UnitOfWork
from academy.models.certificate import (
    Certificate,
    CertificateDocument,
    CertificateVerification,
)
from academy.models.enrollment import Enrollment, EnrollmentStatus
from academy.models.principal import Principal
from academy.services.enrollment_machine import load, record_event
from academy.services.notifications import Notification

logger = logging.getLogger(__name__)

# RFC 4648 base32 alphabet: no 0/1/8/9, so codes survive being read aloud.
_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_CODE_LENGTH = 10


def generate_code(year: int) -> str:
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(_CODE_LENGTH))
    return f"CERT-{year}-{suffix}"


async def issue(uow: UnitOfWork, enrollment: Enrollment) -> Certificate:
    """Issue the certificate for a completed enrollment.

    Internal: called from the completion cascade and from crash recovery,
    always inside the caller's transaction.
    """
    if enrollment.status != EnrollmentStatus.COMPLETED:
        raise InvalidState("certificates are issued only for completed enrollments")
    if await uow.certificates.get_for_enrollment(enrollment.id) is not None:
        raise AlreadyIssued("certificate already issued for this enrollment")

    course = await uow.catalog.get_course(enrollment.course_id)
    if course is None:
        raise NotFound("course not found")

    year = datetime.datetime.fromtimestamp(uow.now, datetime.UTC).year
    for _ in range(SETTINGS.certificate_code_attempts):
        code = generate_code(year)
        if await uow.certificates.get_by_code(code) is not None:
            logger.warning("verification code collision, regenerating")
            continue

        certificate = Certificate.new(
            enrollment_id=enrollment.id,
            verification_code=code,
            issued_at=uow.now,
            artifact_ref=uow.artifacts.certificate_ref(code),
        )
        try:
            await uow.certificates.add(certificate)
        except ValueError:
            # Lost a race for the same code between lookup and insert.
            logger.warning("verification code collision on insert, regenerating")
            continue
        break
    else:
        raise RuntimeError(
            f"no unique verification code after "
            f"{SETTINGS.certificate_code_attempts} attempts"
        )

    # Only the code that made it into the table gets a document.
    await uow.artifacts.store_certificate(
        CertificateDocument(
            verification_code=certificate.verification_code,
            learner_id=enrollment.learner_id,
            course_id=course.id,
            course_title=course.title,
            issued_at=uow.now,
            completed_at=enrollment.completed_at,
        )
    )

    await record_event(
        uow,
        enrollment.id,
        "certificate_issued",
        certificate_id=certificate.id,
        verification_code=certificate.verification_code,
    )
    uow.notify(
        Notification(
            recipient_id=enrollment.learner_id,
            kind="certificate_issued",
            title="Certificate issued",
            message=f"You completed {course.title}. Your certificate is ready.",
            link=f"/certificates/{certificate.verification_code}/verify",
            payload={
                "enrollment_id": str(enrollment.id),
                "course_title": course.title,
                "verification_code": certificate.verification_code,
            },
        )
    )
    uow.on_commit(CERTIFICATES_ISSUED.inc)
    logger.info(
        "certificate issued code=%s",
        certificate.verification_code,
        extra={
            "enrollment_id": str(enrollment.id),
            "certificate_id": str(certificate.id),
        },
    )
    return certificate


async def request_certificate(
    store: Store, caller: Principal, enrollment_id: UUID
) -> Certificate:
    async with store.transaction() as uow:
        enrollment = await load(uow, enrollment_id, for_update=True)
        if enrollment.learner_id != caller.user_id and not caller.is_platform_admin():
            raise NotAuthorized("only the enrolled learner can fetch the certificate")

        existing = await uow.certificates.get_for_enrollment(enrollment.id)
        if existing is not None:
            return existing
        if enrollment.status != EnrollmentStatus.COMPLETED:
            raise InvalidState("the course has not been completed yet")

        logger.warning(
            "completed enrollment had no certificate, issuing now",
            extra={"enrollment_id": str(enrollment.id)},
        )
        return await issue(uow, enrollment)


async def list_certificates(store: Store, caller: Principal) -> list[Certificate]:
    """Certificates the caller earned plus those issued in courses they own.

    Platform admins see every certificate.  Newest first.
    """
    async with store.transaction() as uow:
        if caller.is_platform_admin():
            return await uow.certificates.list_for_enrollments(None)
        owned = await uow.catalog.list_courses_owned_by(caller.user_id)
        enrollments = await uow.enrollments.list_for_learner(caller.user_id)
        enrollments += await uow.enrollments.list_for_courses([c.id for c in owned])
        ids = list(dict.fromkeys(e.id for e in enrollments))
        return await uow.certificates.list_for_enrollments(ids)


async def verify(store: Store, verification_code: str) -> CertificateVerification:
    """Public lookup; no caller identity required."""
    code = verification_code.strip().upper()
    async with store.transaction() as uow:
        certificate = await uow.certificates.get_by_code(code)
        if certificate is None:
            raise NotFound("no certificate with this verification code")
        enrollment = await load(uow, certificate.enrollment_id)
        course = await uow.catalog.get_course(enrollment.course_id)
        if course is None:
            raise NotFound("course not found")

    return CertificateVerification(
        verification_code=certificate.verification_code,
        issued_at=certificate.issued_at,
        learner_id=enrollment.learner_id,
        course_id=course.id,
        course_title=course.title,
    )
