"""Certificate endpoints.

  GET /v1/certificates                       earned or issued in owned courses
  GET /v1/enrollments/{id}/certificate       the learner's certificate
  GET /v1/certificates/{code}/verify         public, no token required
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from academy.api.dependencies import CurrentUser, StoreDep
from academy.models.certificate import Certificate
from academy.services import certificates

router = APIRouter(tags=["certificates"])


class CertificateOut(BaseModel):
    id: UUID
    enrollment_id: UUID
    verification_code: str
    issued_at: int
    artifact_ref: str


class VerificationOut(BaseModel):
    valid: bool
    verification_code: str
    issued_at: int
    learner_id: UUID
    course_id: UUID
    course_title: str


def certificate_out(cert: Certificate) -> CertificateOut:
    return CertificateOut(
        id=cert.id,
        enrollment_id=cert.enrollment_id,
        verification_code=cert.verification_code,
        issued_at=cert.issued_at,
        artifact_ref=cert.artifact_ref,
    )


@router.get("/v1/certificates", response_model=list[CertificateOut])
async def list_certificates(
    principal: CurrentUser,
    store: StoreDep,
) -> list[CertificateOut]:
    issued = await certificates.list_certificates(store, principal)
    return [certificate_out(c) for c in issued]


@router.get("/v1/enrollments/{enrollment_id}/certificate", response_model=CertificateOut)
async def get_certificate(
    enrollment_id: UUID,
    principal: CurrentUser,
    store: StoreDep,
) -> CertificateOut:
    cert = await certificates.request_certificate(store, principal, enrollment_id)
    return certificate_out(cert)


@router.get("/v1/certificates/{code}/verify", response_model=VerificationOut)
async def verify_certificate(code: str, store: StoreDep) -> VerificationOut:
    v = await certificates.verify(store, code)
    return VerificationOut(
        valid=True,
        verification_code=v.verification_code,
        issued_at=v.issued_at,
        learner_id=v.learner_id,
        course_id=v.course_id,
        course_title=v.course_title,
    )
