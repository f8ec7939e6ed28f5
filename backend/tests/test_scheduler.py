from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from makao.models.enums import DeliveryStatus, NotificationType, PaymentMethod, Role
from makao.models.notification import ScheduledNotification
from makao.services.ledger import PaymentService
from makao.services.notifications import ChannelResult, DispatchResult, Recipient
from makao.services.scheduler import NotificationScheduler
from makao.worker import deliver_due

RECIPIENT = Recipient(name="Jane", email="jane@example.com", phone="0712345678")


class StubDispatcher:
    def __init__(self, success=True):
        self.success = success
        self.calls = []

    async def send(self, notification_type, recipient, variables=None, attachments=None):
        self.calls.append((notification_type, recipient, variables))
        result = DispatchResult()
        result.sms = ChannelResult(attempted=True, success=self.success, error=None if self.success else "gateway down")
        return result


async def test_schedule_deduplicates_by_scope(db):
    scheduler = NotificationScheduler(db)
    first = await scheduler.schedule(NotificationType.WELCOME, RECIPIENT, {}, unique_scope="welcome:1")
    second = await scheduler.schedule(NotificationType.WELCOME, RECIPIENT, {}, unique_scope="welcome:1")

    assert first is not None
    assert second is None
    rows = (await db.execute(select(ScheduledNotification))).scalars().all()
    assert len(rows) == 1


async def test_claim_only_due_rows(db):
    scheduler = NotificationScheduler(db)
    now = datetime(2025, 3, 1, 9, 0)
    await scheduler.schedule(NotificationType.WELCOME, RECIPIENT, {}, "due", due_at=now - timedelta(minutes=1))
    await scheduler.schedule(NotificationType.WELCOME, RECIPIENT, {}, "later", due_at=now + timedelta(hours=1))

    claimed = await scheduler.claim_due(now=now)
    assert [row.unique_scope for row in claimed] == ["due"]
    assert claimed[0].status == DeliveryStatus.PROCESSING
    assert claimed[0].attempts == 1
    assert await scheduler.claim_due(now=now) == []


async def test_abandoned_claim_is_reclaimed_after_timeout(db):
    scheduler = NotificationScheduler(db)
    now = datetime(2025, 3, 1, 9, 0)
    notification_id = await scheduler.schedule(NotificationType.WELCOME, RECIPIENT, {}, "crash", due_at=now)

    assert len(await scheduler.claim_due(now=now)) == 1
    # worker died before marking the outcome
    assert await scheduler.claim_due(now=now + timedelta(seconds=60), claim_timeout_seconds=600) == []

    reclaimed = await scheduler.claim_due(now=now + timedelta(seconds=601), claim_timeout_seconds=600)
    assert [row.id for row in reclaimed] == [notification_id]
    assert reclaimed[0].status == DeliveryStatus.PROCESSING
    assert reclaimed[0].attempts == 2
    assert reclaimed[0].started_at == now + timedelta(seconds=601)


async def test_abandoned_claim_dead_letters_when_attempts_exhausted(db):
    scheduler = NotificationScheduler(db)
    now = datetime(2025, 3, 1, 9, 0)
    notification_id = await scheduler.schedule(
        NotificationType.WELCOME, RECIPIENT, {}, "crash-twice", due_at=now, max_attempts=1
    )

    await scheduler.claim_due(now=now)
    assert await scheduler.claim_due(now=now + timedelta(days=7)) == []

    row = await db.get(ScheduledNotification, notification_id)
    assert row.status == DeliveryStatus.DEAD_LETTER
    assert row.attempts == 1


async def test_retry_with_backoff_then_dead_letter(db):
    scheduler = NotificationScheduler(db)
    now = datetime(2025, 3, 1, 9, 0)
    notification_id = await scheduler.schedule(
        NotificationType.WELCOME, RECIPIENT, {}, "retry", due_at=now, max_attempts=2
    )

    await scheduler.claim_due(now=now)
    assert await scheduler.mark_failed(notification_id, "timeout", now=now) == DeliveryStatus.PENDING
    row = await db.get(ScheduledNotification, notification_id)
    assert row.due_at == now + timedelta(seconds=60)

    assert await scheduler.claim_due(now=now) == []
    await scheduler.claim_due(now=now + timedelta(seconds=60))
    assert await scheduler.mark_failed(notification_id, "timeout again", now=now) == DeliveryStatus.DEAD_LETTER
    assert row.last_error == "timeout again"


async def test_permanent_failure(db):
    scheduler = NotificationScheduler(db)
    notification_id = await scheduler.schedule(NotificationType.WELCOME, RECIPIENT, {}, "perm")
    await scheduler.claim_due()

    assert await scheduler.mark_failed(notification_id, "bad address", permanent=True) == DeliveryStatus.FAILED


async def test_deliver_due_marks_outcomes(db):
    scheduler = NotificationScheduler(db)
    ok_id = await scheduler.schedule(NotificationType.WELCOME, RECIPIENT, {"x": 1}, "ok")
    no_contact_id = await scheduler.schedule(NotificationType.WELCOME, Recipient(name="Ghost"), {}, "ghost")

    dispatcher = StubDispatcher()
    assert await deliver_due(db, dispatcher) == 2

    assert (await db.get(ScheduledNotification, ok_id)).status == DeliveryStatus.DELIVERED
    assert (await db.get(ScheduledNotification, no_contact_id)).status == DeliveryStatus.FAILED
    assert len(dispatcher.calls) == 1


async def test_deliver_due_requeues_on_channel_failure(db):
    scheduler = NotificationScheduler(db)
    notification_id = await scheduler.schedule(NotificationType.WELCOME, RECIPIENT, {}, "flaky")

    await deliver_due(db, StubDispatcher(success=False))

    row = await db.get(ScheduledNotification, notification_id)
    assert row.status == DeliveryStatus.PENDING
    assert row.last_error == "gateway down"


@pytest.fixture
async def leased(make_user, make_property, make_unit, make_lease):
    landlord = await make_user(role=Role.LANDLORD)
    tenant = await make_user()
    prop = await make_property(landlord)
    unit = await make_unit(prop)
    lease = await make_lease(unit, tenant, payment_day=5)
    return landlord, tenant, lease


async def test_rent_reminder_once_per_month(db, leased):
    _, tenant, lease = leased
    scheduler = NotificationScheduler(db)

    assert await scheduler.schedule_rent_reminders(days_before_due=3, today=date(2025, 3, 1)) == 0
    assert await scheduler.schedule_rent_reminders(days_before_due=3, today=date(2025, 3, 2)) == 1
    assert await scheduler.schedule_rent_reminders(days_before_due=3, today=date(2025, 3, 4)) == 0

    row = (await db.execute(select(ScheduledNotification))).scalar_one()
    assert row.unique_scope == f"rent_reminder:{lease.id}:2025-03"
    assert row.user_id == tenant.id
    assert row.variables["dueDate"] == "05/03/2025"
    assert row.variables["amount"] == "20,000.00"


async def test_no_reminder_once_paid(db, leased):
    landlord, _, lease = leased
    await PaymentService(db).record(
        landlord,
        lease_id=lease.id,
        amount=Decimal("20000"),
        payment_date=date(2025, 3, 1),
        payment_method=PaymentMethod.CASH,
        reference_number="CASH-0301",
    )

    assert await NotificationScheduler(db).schedule_rent_reminders(today=date(2025, 3, 3)) == 0


async def test_lease_expiry_notice(db, leased):
    _, _, lease = leased
    scheduler = NotificationScheduler(db)

    assert await scheduler.schedule_lease_expiry_notices(today=date(2025, 11, 15)) == 0
    assert await scheduler.schedule_lease_expiry_notices(today=date(2025, 12, 1)) == 1
    assert await scheduler.schedule_lease_expiry_notices(today=date(2025, 12, 2)) == 0
