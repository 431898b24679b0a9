"""Scheduled background jobs and their in-flight guards.

Each job type has one ``JobGuard``. A tick that fires while the previous run
of the same job is still going is skipped, not queued.
"""

import logging
from collections.abc import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from wayfarer.config import settings

logger = logging.getLogger(__name__)


class JobGuard:
    """Single-slot, non-blocking "already running" flag for one job type."""

    def __init__(self, name: str):
        self.name = name
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def try_acquire(self) -> bool:
        # No await between the check and the set, so this is atomic on the event loop
        if self._running:
            return False
        self._running = True
        return True

    def release(self) -> None:
        self._running = False

    async def run(self, job: Callable[[], Awaitable[object]]) -> bool:
        """Run ``job`` unless a previous run is active. Returns whether it ran."""
        if not self.try_acquire():
            logger.warning(f"{self.name} skipped: previous run still in progress")
            return False
        try:
            await job()
        except Exception:
            logger.exception(f"{self.name} failed")
        finally:
            self.release()
        return True


email_send_guard = JobGuard("email_send")
email_delete_guard = JobGuard("email_delete")
price_check_guard = JobGuard("price_check")


async def _send_emails() -> None:
    from wayfarer.database import async_session_factory
    from wayfarer.services.mailbox_service import mailbox_service

    async with async_session_factory() as db:
        sent = await mailbox_service.flush_unsent(db)
        if sent:
            logger.info(f"Mailbox: {sent} emails sent")


async def _delete_sent_emails() -> None:
    from wayfarer.database import async_session_factory
    from wayfarer.services.mailbox_service import mailbox_service

    async with async_session_factory() as db:
        await mailbox_service.delete_sent(db)


async def _check_prices() -> None:
    from wayfarer.database import async_session_factory
    from wayfarer.services.price_monitor_service import price_monitor_service

    async with async_session_factory() as db:
        summary = await price_monitor_service.check_all_trips(db)
        if summary.notified:
            logger.info(f"Price check: {summary.notified} price drop alerts queued")


async def send_emails_job() -> bool:
    return await email_send_guard.run(_send_emails)


async def delete_sent_emails_job() -> bool:
    return await email_delete_guard.run(_delete_sent_emails)


async def price_check_job() -> bool:
    return await price_check_guard.run(_check_prices)


def build_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    job_defaults = {"max_instances": 1, "coalesce": True}

    scheduler.add_job(
        send_emails_job,
        IntervalTrigger(seconds=settings.email_flush_interval_seconds),
        id="email_send",
        **job_defaults,
    )
    scheduler.add_job(
        delete_sent_emails_job,
        CronTrigger(hour=settings.email_cleanup_hour, minute=0),
        id="email_delete",
        **job_defaults,
    )
    scheduler.add_job(
        price_check_job,
        IntervalTrigger(hours=settings.price_check_interval_hours),
        id="price_check",
        **job_defaults,
    )
    return scheduler
