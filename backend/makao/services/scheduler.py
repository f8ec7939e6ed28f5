"""Durable scheduled notifications (outbox), polled by the worker.

Rows are de-duplicated by ``unique_scope`` and delivered at least once:
a claimed row that fails goes back to pending until ``max_attempts`` is
reached, then to dead_letter.
"""

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from makao.models.enums import DeliveryStatus, LeaseStatus, NotificationType
from makao.models.lease import Lease
from makao.models.notification import ScheduledNotification
from makao.models.property import Unit
from makao.services.dates import month_key
from makao.services.ledger import PaymentService, compute_balance
from makao.services.notifications import Recipient

logger = logging.getLogger(__name__)

RETRY_BASE_SECONDS = 60
CLAIM_TIMEOUT_SECONDS = 600
LEASE_EXPIRY_NOTICE_DAYS = 30


class NotificationScheduler:
    """Service for the scheduled-notification outbox."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.bind.dialect.name if self.db.bind is not None else "postgresql"
        if dialect == "sqlite":
            return sqlite.insert(ScheduledNotification)
        return postgresql.insert(ScheduledNotification)

    async def schedule(
        self,
        notification_type: NotificationType,
        recipient: Recipient,
        variables: dict[str, Any],
        unique_scope: str,
        due_at: Optional[datetime] = None,
        user_id: Optional[uuid.UUID] = None,
        max_attempts: int = 3,
    ) -> Optional[uuid.UUID]:
        """Persist a deferred notification.

        Returns the new id, or None if ``unique_scope`` was already scheduled.
        """
        notification_id = uuid.uuid4()
        stmt = self._insert().values(
            id=notification_id,
            notification_type=notification_type,
            user_id=user_id,
            recipient=recipient.to_dict(),
            variables=variables,
            status=DeliveryStatus.PENDING,
            unique_scope=unique_scope,
            attempts=0,
            max_attempts=max_attempts,
            due_at=due_at or datetime.utcnow(),
            created_at=datetime.utcnow(),
        ).on_conflict_do_nothing(index_elements=["unique_scope"])

        result = await self.db.execute(stmt)
        await self.db.commit()

        if result.rowcount == 0:
            return None
        return notification_id

    async def claim_due(
        self,
        limit: int = 20,
        now: Optional[datetime] = None,
        claim_timeout_seconds: int = CLAIM_TIMEOUT_SECONDS,
    ) -> list[ScheduledNotification]:
        """Claim due rows for delivery by moving them to processing.

        Rows left in processing for longer than ``claim_timeout_seconds`` were
        abandoned by a worker and are claimed again as a new attempt.
        """
        now = now or datetime.utcnow()
        stale_before = now - timedelta(seconds=claim_timeout_seconds)
        result = await self.db.execute(
            select(ScheduledNotification)
            .where(
                or_(
                    and_(
                        ScheduledNotification.status == DeliveryStatus.PENDING,
                        ScheduledNotification.due_at <= now,
                    ),
                    and_(
                        ScheduledNotification.status == DeliveryStatus.PROCESSING,
                        ScheduledNotification.started_at < stale_before,
                    ),
                )
            )
            .order_by(ScheduledNotification.due_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        claimed = []
        for row in result.scalars().all():
            if row.status == DeliveryStatus.PROCESSING:
                logger.warning("Reclaiming scheduled notification %s abandoned at %s", row.id, row.started_at)
                if row.attempts >= row.max_attempts:
                    row.status = DeliveryStatus.DEAD_LETTER
                    row.last_error = "Delivery abandoned after claim"
                    logger.error("Scheduled notification %s dead-lettered: abandoned after claim", row.id)
                    continue
            row.status = DeliveryStatus.PROCESSING
            row.started_at = now
            row.attempts = (row.attempts or 0) + 1
            claimed.append(row)
        await self.db.commit()
        return claimed

    async def mark_delivered(self, notification_id: uuid.UUID) -> None:
        row = await self.db.get(ScheduledNotification, notification_id)
        if row is None:
            return
        row.status = DeliveryStatus.DELIVERED
        row.delivered_at = datetime.utcnow()
        row.last_error = None
        await self.db.commit()

    async def mark_failed(
        self,
        notification_id: uuid.UUID,
        error: str,
        permanent: bool = False,
        now: Optional[datetime] = None,
    ) -> Optional[DeliveryStatus]:
        """Record a failed attempt.

        Permanent failures stop immediately. Otherwise the row is retried with
        exponential backoff until max_attempts, then dead-lettered.
        """
        row = await self.db.get(ScheduledNotification, notification_id)
        if row is None:
            return None

        now = now or datetime.utcnow()
        row.last_error = error
        if permanent:
            row.status = DeliveryStatus.FAILED
        elif row.attempts >= row.max_attempts:
            row.status = DeliveryStatus.DEAD_LETTER
        else:
            row.status = DeliveryStatus.PENDING
            row.due_at = now + timedelta(seconds=RETRY_BASE_SECONDS * 2 ** (row.attempts - 1))
        await self.db.commit()

        if row.status == DeliveryStatus.DEAD_LETTER:
            logger.error("Scheduled notification %s dead-lettered: %s", row.id, error)
        return row.status

    async def schedule_rent_reminders(
        self,
        days_before_due: int = 3,
        today: Optional[date] = None,
    ) -> int:
        """One reminder per active lease per billing month while it is unpaid.

        A lease is reminded once today is within ``days_before_due`` of its
        next due date.
        """
        today = today or date.today()
        result = await self.db.execute(
            select(Lease)
            .options(
                selectinload(Lease.tenant),
                selectinload(Lease.unit).selectinload(Unit.property),
            )
            .where(Lease.status == LeaseStatus.ACTIVE)
        )
        ledger = PaymentService(self.db)
        scheduled = 0

        for lease in result.scalars().all():
            if not lease.tenant.is_active:
                continue
            summary = compute_balance(lease, await ledger.payments_for_lease(lease.id), today=today)
            due = summary.next_payment_due
            if summary.current_month_paid or (due - today).days > days_before_due:
                continue

            notification_id = await self.schedule(
                NotificationType.PAYMENT_REMINDER,
                Recipient.from_user(lease.tenant),
                {
                    "amount": f"{summary.rent_amount:,.2f}",
                    "propertyName": lease.unit.property.name,
                    "unitNumber": lease.unit.unit_number,
                    "dueDate": due.strftime("%d/%m/%Y"),
                },
                unique_scope=f"rent_reminder:{lease.id}:{month_key(due)}",
                user_id=lease.tenant_id,
            )
            if notification_id is not None:
                scheduled += 1

        if scheduled:
            logger.info("Scheduled %d rent reminder(s)", scheduled)
        return scheduled

    async def schedule_lease_expiry_notices(
        self,
        days_before_end: int = LEASE_EXPIRY_NOTICE_DAYS,
        today: Optional[date] = None,
    ) -> int:
        """One notice per active lease ending within ``days_before_end`` days."""
        today = today or date.today()
        result = await self.db.execute(
            select(Lease)
            .options(
                selectinload(Lease.tenant),
                selectinload(Lease.unit).selectinload(Unit.property),
            )
            .where(
                Lease.status == LeaseStatus.ACTIVE,
                Lease.end_date >= today,
                Lease.end_date <= today + timedelta(days=days_before_end),
            )
        )
        scheduled = 0
        for lease in result.scalars().all():
            notification_id = await self.schedule(
                NotificationType.LEASE_EXPIRY,
                Recipient.from_user(lease.tenant),
                {
                    "propertyName": lease.unit.property.name,
                    "unitNumber": lease.unit.unit_number,
                    "expiryDate": lease.end_date.strftime("%d/%m/%Y"),
                },
                unique_scope=f"lease_expiry:{lease.id}:{lease.end_date.isoformat()}",
                user_id=lease.tenant_id,
            )
            if notification_id is not None:
                scheduled += 1
        return scheduled
