"""Delivery dispatchers used when a scheduled notification is sent."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from snooze.domain.exceptions import DeliveryFailed
from snooze.domain.notifiable import qualified_type_name
from snooze.infrastructure import email

logger = logging.getLogger(__name__)


class NotifiableDispatcher:
    """Hand the notification back to the target's own ``notify`` method."""

    def dispatch(self, target: Any, notification: Any) -> None:
        logger.debug(
            "Delivering %s to %s",
            qualified_type_name(notification),
            qualified_type_name(target),
        )
        target.notify(notification)


@dataclass(frozen=True)
class EmailMessage:
    """Rendered email produced by a notification's ``to_email`` hook."""

    subject: str
    html_content: str
    recipient: str


class EmailDispatcher:
    """Deliver notifications that render themselves as email through SendGrid.

    Notifications must implement ``to_email(target) -> EmailMessage``.
    """

    def dispatch(self, target: Any, notification: Any) -> None:
        render = getattr(notification, "to_email", None)
        if not callable(render):
            msg = f"{qualified_type_name(notification)} does not define to_email()"
            raise DeliveryFailed(msg)

        message = render(target)
        if not isinstance(message, EmailMessage):
            msg = f"{qualified_type_name(notification)}.to_email() must return an EmailMessage"
            raise DeliveryFailed(msg)

        if not email.send_email(message.subject, message.html_content, message.recipient):
            msg = f"Email delivery to {message.recipient} failed"
            raise DeliveryFailed(msg)


default_dispatcher = NotifiableDispatcher()


__all__ = [
    "EmailDispatcher",
    "EmailMessage",
    "NotifiableDispatcher",
    "default_dispatcher",
]
