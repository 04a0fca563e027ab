"""Use case delivering every scheduled notification that has come due."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from snooze.config import get_settings
from snooze.domain.exceptions import NotificationAlreadySent, NotificationCancelled
from snooze.utils import now_in_app_timezone

from .scheduler import NotificationScheduler

logger = logging.getLogger(__name__)


@dataclass
class DispatchSummary:
    """Outcome of one pass over the due notifications."""

    sent: int = 0
    interrupted: int = 0
    skipped: int = 0
    failed_ids: list[int] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_ids)


def send_due_notifications(
    scheduler: NotificationScheduler,
    *,
    now: datetime | None = None,
    tolerance: timedelta | None = None,
) -> DispatchSummary:
    """Send every pending notification due within ``tolerance`` of ``now``.

    Meant to be called by an external trigger (cron, worker, beat). Each
    notification is sent independently: a failing dispatch is logged and
    counted, and the pass moves on to the next one.
    """

    settings = get_settings()
    summary = DispatchSummary()
    if settings.snooze_disabled:
        logger.info("Scheduled notification delivery is disabled; skipping pass")
        return summary

    moment = now or now_in_app_timezone()
    window = tolerance if tolerance is not None else timedelta(seconds=settings.send_tolerance)
    due = scheduler.find_due(moment, window)
    logger.info("Found %s due scheduled notification(s)", len(due))

    for notification in due:
        try:
            notification.send_now()
        except (NotificationAlreadySent, NotificationCancelled) as exc:
            summary.skipped += 1
            logger.info("Skipping scheduled notification: %s", exc)
            continue
        except Exception:
            summary.failed_ids.append(notification.get_id())
            logger.exception(
                "Failed to send scheduled notification #%s", notification.get_id()
            )
            continue

        if notification.is_cancelled():
            summary.interrupted += 1
        else:
            summary.sent += 1

    logger.info(
        "Scheduled notification pass finished: %s sent, %s interrupted, %s skipped, %s failed",
        summary.sent,
        summary.interrupted,
        summary.skipped,
        summary.failed,
    )
    return summary


__all__ = ["DispatchSummary", "send_due_notifications"]
