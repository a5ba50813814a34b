from __future__ import annotations

from typing import Protocol
from uuid import UUID

from academy.models.payment import Payment, PaymentStatus


class PaymentRepo(Protocol):
    async def get(self, payment_id: UUID) -> Payment | None: ...
    async def add(self, payment: Payment) -> None: ...
    async def save(self, payment: Payment) -> None: ...
    async def list_for_enrollment(self, enrollment_id: UUID) -> list[Payment]: ...
    async def list_by_status(
        self, status: PaymentStatus, enrollment_ids: list[UUID] | None = None
    ) -> list[Payment]: ...


class InMemoryPaymentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Payment] = {}

    async def get(self, payment_id: UUID) -> Payment | None:
        return self._by_id.get(payment_id)

    async def add(self, payment: Payment) -> None:
        if payment.id in self._by_id:
            raise ValueError("payment already exists")
        self._by_id[payment.id] = payment

    async def save(self, payment: Payment) -> None:
        if payment.id not in self._by_id:
            raise KeyError("payment not found")
        self._by_id[payment.id] = payment

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[Payment]:
        # Oldest first; insertion order doubles as submission order.
        return [p for p in self._by_id.values() if p.enrollment_id == enrollment_id]

    async def list_by_status(
        self, status: PaymentStatus, enrollment_ids: list[UUID] | None = None
    ) -> list[Payment]:
        """None for enrollment_ids means every enrollment."""
        wanted = None if enrollment_ids is None else set(enrollment_ids)
        found = [
            p
            for p in self._by_id.values()
            if p.status == status and (wanted is None or p.enrollment_id in wanted)
        ]
        return sorted(found, key=lambda p: p.submitted_at)

    def snapshot(self) -> dict[UUID, Payment]:
        return dict(self._by_id)

    def restore(self, state: dict[UUID, Payment]) -> None:
        self._by_id = dict(state)
