"""PostgreSQL implementation of CertificateRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.errors import AlreadyIssued
from academy.db.tables import CertificateRow
from academy.models.certificate import Certificate


class PgCertificateRepo:
    """Satisfies the CertificateRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_for_enrollment(self, enrollment_id: UUID) -> Certificate | None:
        stmt = select(CertificateRow).where(CertificateRow.enrollment_id == enrollment_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_certificate(row)

    async def get_by_code(self, verification_code: str) -> Certificate | None:
        stmt = select(CertificateRow).where(
            CertificateRow.verification_code == verification_code
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_certificate(row)

    async def add(self, certificate: Certificate) -> None:
        """Insert inside a savepoint so a code collision can be retried
        without aborting the surrounding transaction."""
        try:
            async with self._session.begin_nested():
                self._session.add(
                    CertificateRow(
                        id=certificate.id,
                        enrollment_id=certificate.enrollment_id,
                        verification_code=certificate.verification_code,
                        issued_at=certificate.issued_at,
                        artifact_ref=certificate.artifact_ref,
                    )
                )
        except IntegrityError:
            if await self.get_for_enrollment(certificate.enrollment_id) is not None:
                raise AlreadyIssued(
                    "certificate already issued for this enrollment"
                ) from None
            raise ValueError("verification code already in use") from None

    async def list_for_enrollments(
        self, enrollment_ids: list[UUID] | None = None
    ) -> list[Certificate]:
        stmt = select(CertificateRow).order_by(CertificateRow.issued_at.desc())
        if enrollment_ids is not None:
            if not enrollment_ids:
                return []
            stmt = stmt.where(CertificateRow.enrollment_id.in_(enrollment_ids))
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_certificate(r) for r in rows]


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        enrollment_id=row.enrollment_id,
        verification_code=row.verification_code,
        issued_at=row.issued_at,
        artifact_ref=row.artifact_ref,
    )
