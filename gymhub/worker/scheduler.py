from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from gymhub.core import Settings, get_settings
from gymhub.db.models import Member
from gymhub.services.members import MembershipService
from gymhub.worker.notifier import (
    TelegramNotifier,
    format_expired_message,
    format_reminder_message,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExpirySweepScheduler:
    """
    APScheduler manager for the expiry sweep and expiry reminders.

    The sweep runs on a fixed interval (and once at startup); the reminder
    runs daily at the configured hour.
    """

    def __init__(
        self,
        service: MembershipService,
        notifier: TelegramNotifier | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.service = service
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.clock = clock
        self.scheduler: AsyncIOScheduler | None = None

    async def start(self) -> None:
        self.scheduler = AsyncIOScheduler()

        self.scheduler.add_job(
            self.run_sweep,
            IntervalTrigger(minutes=self.settings.sweep_interval_minutes),
            id="expiry_sweep",
            name="Membership Expiry Sweep",
            next_run_time=datetime.now(),
        )
        self.scheduler.add_job(
            self.send_expiry_reminders,
            CronTrigger(hour=self.settings.reminder_hour, minute=0),
            id="expiry_reminders",
            name="Daily Expiry Reminders",
        )

        self.scheduler.start()
        logger.info(
            "Expiry scheduler started (sweep every %s min, reminders at %02d:00)",
            self.settings.sweep_interval_minutes,
            self.settings.reminder_hour,
        )

    async def stop(self) -> None:
        """
        Stop the scheduler gracefully.
        """
        if self.scheduler:
            self.scheduler.shutdown()
            logger.info("Expiry scheduler stopped")

    async def _notify(self, text: str) -> None:
        if self.notifier is None:
            logger.info("Notification (not sent, Telegram disabled):\n%s", text)
            return
        try:
            await self.notifier.send(text)
        except Exception as exc:
            logger.error("Failed to send admin notification: %s", exc)

    async def run_sweep(self) -> list[Member]:
        now = self.clock()
        try:
            expired = await self.service.expire_overdue(now)
        except Exception as exc:
            logger.exception("Error during expiry sweep: %s", exc)
            return []

        if expired:
            await self._notify(format_expired_message(expired))
        return expired

    async def send_expiry_reminders(self) -> list[Member]:
        now = self.clock()
        try:
            expiring = await self.service.remind_expiring(now, days=self.settings.reminder_days_before)
        except Exception as exc:
            logger.exception("Error collecting expiring memberships: %s", exc)
            return []

        if not expiring:
            # Silent - no message for "nothing expiring"
            logger.debug("No memberships expiring within %s days", self.settings.reminder_days_before)
            return []

        await self._notify(format_reminder_message(expiring, now))
        return expiring
