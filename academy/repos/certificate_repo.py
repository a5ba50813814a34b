from __future__ import annotations

from typing import Protocol
from uuid import UUID

from academy.core.errors import AlreadyIssued
from academy.models.certificate import Certificate


class CertificateRepo(Protocol):
    async def get_for_enrollment(self, enrollment_id: UUID) -> Certificate | None: ...
    async def get_by_code(self, verification_code: str) -> Certificate | None: ...
    async def add(self, certificate: Certificate) -> None: ...
    async def list_for_enrollments(
        self, enrollment_ids: list[UUID] | None = None
    ) -> list[Certificate]: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._by_enrollment: dict[UUID, Certificate] = {}

    async def get_for_enrollment(self, enrollment_id: UUID) -> Certificate | None:
        return self._by_enrollment.get(enrollment_id)

    async def get_by_code(self, verification_code: str) -> Certificate | None:
        for c in self._by_enrollment.values():
            if c.verification_code == verification_code:
                return c
        return None

    async def add(self, certificate: Certificate) -> None:
        if certificate.enrollment_id in self._by_enrollment:
            raise AlreadyIssued("certificate already issued for this enrollment")
        if await self.get_by_code(certificate.verification_code) is not None:
            raise ValueError("verification code already in use")
        self._by_enrollment[certificate.enrollment_id] = certificate

    async def list_for_enrollments(
        self, enrollment_ids: list[UUID] | None = None
    ) -> list[Certificate]:
        """Newest first; None for enrollment_ids means every certificate."""
        found = [
            c
            for c in self._by_enrollment.values()
            if enrollment_ids is None or c.enrollment_id in enrollment_ids
        ]
        return sorted(found, key=lambda c: c.issued_at, reverse=True)

    def snapshot(self) -> dict[UUID, Certificate]:
        return dict(self._by_enrollment)

    def restore(self, state: dict[UUID, Certificate]) -> None:
        self._by_enrollment = dict(state)
