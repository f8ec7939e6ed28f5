from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from makao.core.errors import ConflictError, InvalidStateError, NotFoundError
from makao.models.audit import AuditLog
from makao.models.calendar import CalendarEvent
from makao.models.enums import AuditAction, LeaseStatus, PaymentMethod, Role, UnitStatus
from makao.models.lease import Lease
from makao.models.property import Unit
from makao.services.audit import AuditService
from makao.services.lease_lifecycle import LeaseLifecycleService
from makao.services.ledger import PaymentService, compute_balance

RENT = Decimal("20000")


@pytest.fixture
async def landlord(make_user):
    return await make_user(role=Role.LANDLORD, first_name="Peter", last_name="Otieno")


@pytest.fixture
async def unit(landlord, make_property, make_unit):
    prop = await make_property(landlord)
    return await make_unit(prop, rent_amount=RENT)


async def _allocate(db, unit, tenant, actor=None, **overrides):
    kwargs = dict(
        tenant_id=tenant.id,
        unit_id=unit.id,
        rent_amount=RENT,
        deposit_amount=RENT,
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        payment_day=5,
        actor_id=actor.id if actor else None,
    )
    kwargs.update(overrides)
    return await LeaseLifecycleService(db).allocate(**kwargs)


async def test_allocate_creates_active_lease_and_occupies_unit(db, unit, landlord, make_user):
    tenant = await make_user()
    lease = await _allocate(db, unit, tenant, actor=landlord)

    await db.refresh(unit)
    assert lease.status == LeaseStatus.ACTIVE
    assert lease.unit.id == unit.id
    assert lease.tenant.id == tenant.id
    assert unit.status == UnitStatus.OCCUPIED

    audit = (await db.execute(select(AuditLog).where(AuditLog.resource_id == lease.id))).scalar_one()
    assert audit.action == AuditAction.LEASE_ALLOCATED
    assert audit.user_id == landlord.id

    events = (await db.execute(select(CalendarEvent).where(CalendarEvent.related_entity_id == lease.id))).scalars().all()
    assert {e.owner_id for e in events} == {landlord.id}
    assert len(events) == 2


async def test_unique_index_rejects_racing_allocation(db, unit, make_user, monkeypatch):
    first, second = await make_user(), await make_user()
    first_id = first.id
    await _allocate(db, unit, first)

    # a racing request that read the unit before the first allocation committed
    unit.status = UnitStatus.VACANT
    await db.commit()

    async def no_active_lease(self, unit_id):
        return None

    monkeypatch.setattr(LeaseLifecycleService, "_active_lease_for_unit", no_active_lease)

    with pytest.raises(ConflictError):
        await _allocate(db, unit, second)

    leases = (await db.execute(select(Lease.tenant_id))).scalars().all()
    assert leases == [first_id]


async def test_failed_allocation_leaves_no_partial_write(db, unit, make_user, monkeypatch):
    tenant = await make_user()
    unit_id = unit.id

    async def broken_audit(self, *args, **kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(AuditService, "log_lease_allocated", broken_audit)

    with pytest.raises(RuntimeError):
        await _allocate(db, unit, tenant)

    assert (await db.execute(select(func.count(Lease.id)))).scalar_one() == 0
    status = (await db.execute(select(Unit.status).where(Unit.id == unit_id))).scalar_one()
    assert status == UnitStatus.VACANT
    events = (await db.execute(select(func.count(CalendarEvent.id)))).scalar_one()
    assert events == 0


async def test_second_allocation_conflicts_without_writes(db, unit, make_user):
    first, second = await make_user(), await make_user()
    await _allocate(db, unit, first)

    with pytest.raises(ConflictError):
        await _allocate(db, unit, second)

    leases = (await db.execute(select(func.count(Lease.id)))).scalar_one()
    assert leases == 1
    await db.refresh(unit)
    assert unit.status == UnitStatus.OCCUPIED


async def test_allocate_unknown_unit(db, make_user):
    tenant = await make_user()
    with pytest.raises(NotFoundError):
        await LeaseLifecycleService(db).allocate(
            tenant_id=tenant.id,
            unit_id=tenant.id,
            rent_amount=RENT,
            deposit_amount=RENT,
            start_date=date(2025, 1, 1),
            end_date=date(2025, 12, 31),
        )


async def test_allocate_inactive_tenant(db, unit, make_user):
    tenant = await make_user(is_active=False)
    with pytest.raises(NotFoundError):
        await _allocate(db, unit, tenant)


async def test_allocate_unit_under_maintenance(db, landlord, make_property, make_unit, make_user):
    prop = await make_property(landlord, name="Hillside Court")
    unit = await make_unit(prop, status=UnitStatus.MAINTENANCE)
    tenant = await make_user()

    with pytest.raises(InvalidStateError):
        await _allocate(db, unit, tenant)
    await db.refresh(unit)
    assert unit.status == UnitStatus.MAINTENANCE


async def test_terminate_frees_unit_and_is_final(db, unit, make_user):
    tenant = await make_user()
    lease = await _allocate(db, unit, tenant)
    service = LeaseLifecycleService(db)

    terminated = await service.terminate(lease.id, today=date(2025, 6, 15))
    await db.refresh(unit)
    assert terminated.status == LeaseStatus.TERMINATED
    assert terminated.end_date == date(2025, 6, 15)
    assert terminated.terminated_at is not None
    assert unit.status == UnitStatus.VACANT

    with pytest.raises(InvalidStateError):
        await service.terminate(lease.id)
    await db.refresh(unit)
    assert unit.status == UnitStatus.VACANT


async def test_terminate_unknown_lease(db, make_user):
    tenant = await make_user()
    with pytest.raises(NotFoundError):
        await LeaseLifecycleService(db).terminate(tenant.id)


async def test_unit_can_be_reallocated_after_termination(db, unit, make_user):
    first, second = await make_user(), await make_user()
    lease = await _allocate(db, unit, first)
    await LeaseLifecycleService(db).terminate(lease.id)

    again = await _allocate(db, unit, second)
    assert again.status == LeaseStatus.ACTIVE


async def test_occupancy_matches_active_leases_through_a_sequence(
    db, landlord, make_property, make_unit, make_user
):
    prop = await make_property(landlord, name="Riverside")
    unit_ids = [(await make_unit(prop, unit_number=f"B{i}")).id for i in range(3)]
    tenant_ids = [(await make_user()).id for _ in range(3)]
    service = LeaseLifecycleService(db)
    active = {}

    steps = [("allocate", 0), ("allocate", 1), ("allocate", 0), ("terminate", 0),
             ("allocate", 0), ("terminate", 1), ("terminate", 1), ("allocate", 2)]
    for op, i in steps:
        try:
            if op == "allocate":
                lease = await service.allocate(
                    tenant_id=tenant_ids[i],
                    unit_id=unit_ids[i],
                    rent_amount=RENT,
                    deposit_amount=RENT,
                    start_date=date(2025, 1, 1),
                    end_date=date(2025, 12, 31),
                )
                active[i] = lease.id
            else:
                # Terminating twice hits the unknown or already-terminated path
                await service.terminate(active.pop(i, unit_ids[i]))
        except (ConflictError, InvalidStateError, NotFoundError):
            pass
        assert await service.check_consistency() == []


async def test_expire_overdue(db, unit, make_user):
    tenant = await make_user()
    lease = await _allocate(db, unit, tenant, end_date=date(2025, 3, 31))

    expired = await LeaseLifecycleService(db).expire_overdue(today=date(2025, 4, 1))
    await db.refresh(unit)
    await db.refresh(lease)
    assert [e.id for e in expired] == [lease.id]
    assert lease.status == LeaseStatus.EXPIRED
    assert unit.status == UnitStatus.VACANT


async def test_expire_overdue_leaves_current_leases(db, unit, make_user):
    tenant = await make_user()
    await _allocate(db, unit, tenant, end_date=date(2025, 3, 31))

    assert await LeaseLifecycleService(db).expire_overdue(today=date(2025, 3, 31)) == []


async def test_allocate_record_payment_terminate_scenario(db, unit, landlord, make_user):
    tenant = await make_user()
    lease = await _allocate(db, unit, tenant, actor=landlord)
    assert lease.status == LeaseStatus.ACTIVE

    ledger = PaymentService(db)
    await ledger.record(
        landlord,
        lease_id=lease.id,
        amount=Decimal("20000"),
        payment_date=date(2025, 1, 5),
        payment_method=PaymentMethod.MPESA,
        reference_number="QWE123RTY",
    )
    summary = compute_balance(lease, await ledger.payments_for_lease(lease.id), today=date(2025, 1, 10))
    assert summary.current_balance == Decimal("0")
    assert summary.next_payment_due == date(2025, 2, 5)

    terminated = await LeaseLifecycleService(db).terminate(lease.id, today=date(2025, 1, 20))
    await db.refresh(unit)
    assert terminated.status == LeaseStatus.TERMINATED
    assert terminated.end_date == date(2025, 1, 20)
    assert unit.status == UnitStatus.VACANT
