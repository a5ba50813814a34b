"""Outbound notifications to learners and course owners.

Delivery itself (e-mail, SMS, push) belongs to another service; this module
only defines the sink the enrollment core talks to.  Notifications raised
inside a transaction are buffered on the unit of work and handed to the
notifier after commit, so a rolled-back operation never notifies anyone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Notification:
    """One message for one recipient.

    kind:    payment_submitted|payment_approved|payment_rejected|
             enrollment_suspended|certificate_issued
    title:   short headline for the inbox
    message: body text; carries the reason on rejections and suspensions
    link:    in-app path the notification opens, if any
    payload: template variables (JSON-serialisable)
    """

    recipient_id: UUID
    kind: str
    title: str = ""
    message: str = ""
    link: str | None = None
    payload: dict = field(default_factory=dict)


@runtime_checkable
class Notifier(Protocol):
    async def send(self, notification: Notification) -> None: ...


class InMemoryNotifier:
    """Records notifications instead of sending them; used in dev and tests."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> None:
        self.sent.append(notification)

    def for_recipient(self, recipient_id: UUID) -> list[Notification]:
        return [n for n in self.sent if n.recipient_id == recipient_id]


class LoggingNotifier:
    """Writes each notification to the log stream.

    Stand-in for a real delivery channel in deployments where the
    notification service consumes structured logs.
    """

    async def send(self, notification: Notification) -> None:
        logger.info(
            "notification kind=%s recipient=%s title=%r link=%s",
            notification.kind,
            notification.recipient_id,
            notification.title,
            notification.link,
            extra={"user_id": str(notification.recipient_id)},
        )


async def deliver(notifier: Notifier, notifications: list[Notification]) -> None:
    """Hand committed notifications to the sink.

    The operation that raised them has already committed, so a delivery
    failure is logged and the rest of the batch still goes out.
    """
    for n in notifications:
        try:
            await notifier.send(n)
        except Exception:
            logger.exception(
                "notification delivery failed kind=%s recipient=%s",
                n.kind,
                n.recipient_id,
            )
