"""Transactional unit of work over all repositories.

Every service operation runs inside ``store.transaction()``: it either
commits as a whole or leaves no trace.  Two stores satisfy the same shape:

  InMemoryStore  dev/test; one asyncio.Lock serialises transactions,
                 repositories are snapshotted on entry and restored on
                 any exception.
  PgStore        one AsyncSession transaction per operation; services lock
                 the enrollment row with SELECT ... FOR UPDATE.

Notifications raised during the transaction are delivered after commit;
commit hooks (metric increments) run at the same point, so a rolled-back
operation is never counted.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from academy.db.engine import async_session_factory
from academy.repos.catalog_repo import CatalogRepo, InMemoryCatalogRepo
from academy.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from academy.repos.enrollment_repo import (
    EnrollmentEventRepo,
    EnrollmentRepo,
    InMemoryEnrollmentEventRepo,
    InMemoryEnrollmentRepo,
)
from academy.repos.payment_repo import InMemoryPaymentRepo, PaymentRepo
from academy.repos.pg_catalog_repo import PgCatalogRepo
from academy.repos.pg_certificate_repo import PgCertificateRepo
from academy.repos.pg_enrollment_repo import PgEnrollmentEventRepo, PgEnrollmentRepo
from academy.repos.pg_payment_repo import PgPaymentRepo
from academy.repos.pg_progress_repo import PgAttemptRepo, PgCompletionRepo
from academy.repos.progress_repo import (
    AttemptRepo,
    CompletionRepo,
    InMemoryAttemptRepo,
    InMemoryCompletionRepo,
)
from academy.services.artifacts import ArtifactStore, InMemoryArtifactStore
from academy.services.notifications import (
    InMemoryNotifier,
    LoggingNotifier,
    Notification,
    Notifier,
    deliver,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def utc_now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


@dataclass(slots=True)
class UnitOfWork:
    """Repositories bound to one transaction, plus its side-channel buffers."""

    now: int
    catalog: CatalogRepo
    enrollments: EnrollmentRepo
    events: EnrollmentEventRepo
    payments: PaymentRepo
    completions: CompletionRepo
    attempts: AttemptRepo
    certificates: CertificateRepo
    artifacts: ArtifactStore
    pending_notifications: list[Notification] = field(default_factory=list)
    commit_hooks: list[Callable[[], None]] = field(default_factory=list)

    def notify(self, notification: Notification) -> None:
        self.pending_notifications.append(notification)

    def on_commit(self, hook: Callable[[], None]) -> None:
        """Run ``hook`` once the transaction has committed (metrics, mostly)."""
        self.commit_hooks.append(hook)


def _after_commit(uow: UnitOfWork) -> None:
    for hook in uow.commit_hooks:
        hook()


class Store(Protocol):
    clock: Clock

    def transaction(self) -> AbstractAsyncContextManager[UnitOfWork]: ...


class InMemoryStore:
    def __init__(
        self,
        notifier: Notifier | None = None,
        artifacts: ArtifactStore | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.notifier = notifier if notifier is not None else InMemoryNotifier()
        self.artifacts = artifacts if artifacts is not None else InMemoryArtifactStore()
        self.clock = clock
        self.catalog = InMemoryCatalogRepo()
        self.enrollments = InMemoryEnrollmentRepo()
        self.events = InMemoryEnrollmentEventRepo()
        self.payments = InMemoryPaymentRepo()
        self.completions = InMemoryCompletionRepo()
        self.attempts = InMemoryAttemptRepo()
        self.certificates = InMemoryCertificateRepo()
        self._lock = asyncio.Lock()

    def _repos(self) -> list:
        return [
            self.catalog,
            self.enrollments,
            self.events,
            self.payments,
            self.completions,
            self.attempts,
            self.certificates,
        ]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[UnitOfWork]:
        async with self._lock:
            repos = self._repos()
            saved = [r.snapshot() for r in repos]
            uow = UnitOfWork(
                now=self.clock(),
                catalog=self.catalog,
                enrollments=self.enrollments,
                events=self.events,
                payments=self.payments,
                completions=self.completions,
                attempts=self.attempts,
                certificates=self.certificates,
                artifacts=self.artifacts,
            )
            try:
                yield uow
            except BaseException:
                for repo, state in zip(repos, saved, strict=True):
                    repo.restore(state)
                raise
        _after_commit(uow)
        await deliver(self.notifier, uow.pending_notifications)


class PgStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier,
        artifacts: ArtifactStore,
        clock: Clock = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self.notifier = notifier
        self.artifacts = artifacts
        self.clock = clock

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[UnitOfWork]:
        async with self._session_factory() as session:
            # begin() commits on normal exit and rolls back on exception.
            async with session.begin():
                uow = UnitOfWork(
                    now=self.clock(),
                    catalog=PgCatalogRepo(session),
                    enrollments=PgEnrollmentRepo(session),
                    events=PgEnrollmentEventRepo(session),
                    payments=PgPaymentRepo(session),
                    completions=PgCompletionRepo(session),
                    attempts=PgAttemptRepo(session),
                    certificates=PgCertificateRepo(session),
                    artifacts=self.artifacts,
                )
                yield uow
        _after_commit(uow)
        await deliver(self.notifier, uow.pending_notifications)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------


def build_store() -> InMemoryStore | PgStore:
    if async_session_factory is not None:
        logger.info("Using PostgreSQL store")
        return PgStore(async_session_factory, LoggingNotifier(), InMemoryArtifactStore())
    return InMemoryStore()


store: InMemoryStore | PgStore = build_store()
