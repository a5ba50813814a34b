from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Certificate:
    """Course-completion certificate.  One per enrollment, never revoked
    by this service."""

    id: UUID
    enrollment_id: UUID
    verification_code: str
    issued_at: int
    artifact_ref: str

    @staticmethod
    def new(
        *,
        enrollment_id: UUID,
        verification_code: str,
        issued_at: int,
        artifact_ref: str,
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            enrollment_id=enrollment_id,
            verification_code=verification_code,
            issued_at=issued_at,
            artifact_ref=artifact_ref,
        )


@dataclass(frozen=True, slots=True)
class CertificateDocument:
    """What the artifact store needs to render the printable certificate."""

    verification_code: str
    learner_id: UUID
    course_id: UUID
    course_title: str
    issued_at: int
    completed_at: int | None


@dataclass(frozen=True, slots=True)
class CertificateVerification:
    """Public answer to "is this code genuine?"."""

    verification_code: str
    issued_at: int
    learner_id: UUID
    course_id: UUID
    course_title: str
