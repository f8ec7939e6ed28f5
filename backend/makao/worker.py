"""
Background worker: ``python -m makao.worker``.

Each cycle expires overdue leases, schedules rent reminders and lease
expiry notices, then delivers due scheduled notifications.
"""

import asyncio
import logging
import signal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from makao.core.config import Settings
from makao.core.database import AsyncSessionLocal, engine
from makao.core.env_validation import validate_environment
from makao.core.logging_config import configure_logging
from makao.services.lease_lifecycle import LeaseLifecycleService
from makao.services.notifications import NotificationDispatcher, Recipient, get_notification_dispatcher
from makao.services.scheduler import CLAIM_TIMEOUT_SECONDS, NotificationScheduler

logger = logging.getLogger("makao.worker")


async def deliver_due(
    session: AsyncSession,
    dispatcher: NotificationDispatcher,
    batch_size: int = 20,
    claim_timeout_seconds: int = CLAIM_TIMEOUT_SECONDS,
) -> int:
    """Deliver one batch of due notifications. Returns how many were claimed."""
    scheduler = NotificationScheduler(session)
    rows = await scheduler.claim_due(limit=batch_size, claim_timeout_seconds=claim_timeout_seconds)

    for row in rows:
        recipient = Recipient.from_dict(row.recipient)
        if not recipient.phone and not recipient.email:
            await scheduler.mark_failed(row.id, "Recipient has no phone or email", permanent=True)
            continue

        result = await dispatcher.send(row.notification_type, recipient, row.variables)
        if result.any_success:
            await scheduler.mark_delivered(row.id)
        else:
            errors = "; ".join(e for e in (result.sms.error, result.email.error) if e)
            await scheduler.mark_failed(row.id, errors or "All channels failed")

    return len(rows)


async def run_cycle(
    session_factory: async_sessionmaker,
    dispatcher: NotificationDispatcher,
    settings: Settings,
) -> None:
    async with session_factory() as session:
        await LeaseLifecycleService(session).expire_overdue()

    async with session_factory() as session:
        scheduler = NotificationScheduler(session)
        await scheduler.schedule_rent_reminders(days_before_due=settings.reminder_days_before_due)
        await scheduler.schedule_lease_expiry_notices()

    async with session_factory() as session:
        while await deliver_due(
            session,
            dispatcher,
            settings.worker_batch_size,
            settings.worker_claim_timeout_seconds,
        ) == settings.worker_batch_size:
            pass


async def run_worker(stop: Optional[asyncio.Event] = None) -> None:
    settings = validate_environment()
    configure_logging(settings.log_level)
    stop = stop or asyncio.Event()
    dispatcher = get_notification_dispatcher()

    logger.info("Worker started, polling every %ss", settings.worker_poll_seconds)
    while not stop.is_set():
        try:
            await run_cycle(AsyncSessionLocal, dispatcher, settings)
        except Exception:
            logger.exception("Worker cycle failed")

        try:
            await asyncio.wait_for(stop.wait(), timeout=settings.worker_poll_seconds)
        except asyncio.TimeoutError:
            pass

    await engine.dispose()
    logger.info("Worker stopped")


def main() -> None:
    stop = asyncio.Event()

    async def _run():
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)
        await run_worker(stop)

    asyncio.run(_run())


if __name__ == "__main__":
    main()
