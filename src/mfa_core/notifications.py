"""Notification delivery types and the sender port.

The core decides *when* a code is sent and *what* it contains; actual
delivery (SMTP, SES, SMS gateways, ...) is provided by the application
through ``INotificationSender``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable


class NotificationChannel(Enum):
    """Notification channels the built-in factors deliver through."""

    EMAIL = "email"


class DeliveryStatus(Enum):
    """Delivery status outcomes."""

    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class RenderedNotification:
    """Immutable rendered notification ready for delivery."""

    body_text: str
    subject: str | None = None
    body_html: str | None = None


@dataclass(frozen=True)
class DeliveryRecord:
    """Immutable record of a notification delivery attempt."""

    recipient: str
    channel: NotificationChannel
    status: DeliveryStatus
    provider_id: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is DeliveryStatus.SENT

    @classmethod
    def sent(
        cls,
        recipient: str,
        channel: NotificationChannel,
        provider_id: str | None = None,
    ) -> DeliveryRecord:
        """Create a successful delivery record."""
        return cls(
            recipient=recipient,
            channel=channel,
            status=DeliveryStatus.SENT,
            provider_id=provider_id,
        )

    @classmethod
    def failed(
        cls,
        recipient: str,
        channel: NotificationChannel,
        error: str | None = None,
    ) -> DeliveryRecord:
        """Create a failed delivery record."""
        return cls(
            recipient=recipient,
            channel=channel,
            status=DeliveryStatus.FAILED,
            error=error,
        )


@runtime_checkable
class INotificationSender(Protocol):
    """
    Framework-agnostic port for sending notifications.

    Implementations either return a failed ``DeliveryRecord`` (provider
    refused the message) or raise (provider unreachable). Both surface as
    errors; neither is swallowed.
    """

    async def send(
        self,
        recipient: str,
        content: RenderedNotification,
        channel: NotificationChannel,
        metadata: dict[str, object] | None = None,
    ) -> DeliveryRecord:
        """Send notification and return delivery record."""
        ...


__all__: list[str] = [
    "NotificationChannel",
    "DeliveryStatus",
    "RenderedNotification",
    "DeliveryRecord",
    "INotificationSender",
]
