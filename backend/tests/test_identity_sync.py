import uuid

import pytest
from sqlalchemy import func, select

from makao.core.errors import NotFoundError, ValidationError
from makao.models.audit import AuditLog
from makao.models.enums import AuditAction, Role
from makao.models.user import User
from makao.services.identity_sync import IdentitySyncService, assign_initial_role


def test_initial_role_defaults_to_tenant():
    assert assign_initial_role("admin@personal-domain.com") == Role.TENANT


def test_initial_role_uses_hint():
    assert assign_initial_role("jane@example.com", role_hint="landlord") == Role.LANDLORD
    assert assign_initial_role("jane@example.com", role_hint="property_manager") == Role.LANDLORD
    assert assign_initial_role("jane@example.com", role_hint="superuser") == Role.TENANT


def test_email_heuristic_only_when_enabled():
    assert assign_initial_role("landlord@makao.co.ke", use_email_heuristic=True) == Role.ADMIN
    assert assign_initial_role("jane@makao.co.ke", use_email_heuristic=True) == Role.TENANT
    assert assign_initial_role("landlord@makao.co.ke", use_email_heuristic=False) == Role.TENANT


async def test_sync_is_idempotent_and_keeps_role(db):
    service = IdentitySyncService(db)
    first = await service.sync_user("uid-1", "jane@example.com", "Jane", "Doe", role_hint="landlord")
    assert first.role == Role.LANDLORD

    second = await service.sync_user(
        "uid-1", "jane.doe@example.com", "Jane", "Wanjiku", phone="0711000111", role_hint="admin"
    )

    count = (await db.execute(select(func.count(User.id)).where(User.external_id == "uid-1"))).scalar_one()
    assert count == 1
    assert second.id == first.id
    assert second.role == Role.LANDLORD
    assert second.email == "jane.doe@example.com"
    assert second.last_name == "Wanjiku"
    assert second.phone == "0711000111"


async def test_sync_keeps_existing_names_when_missing(db):
    service = IdentitySyncService(db)
    await service.sync_user("uid-2", "sam@example.com", "Sam", "Kamau")
    user = await service.sync_user("uid-2", "sam@example.com")

    assert user.full_name == "Sam Kamau"


async def test_sync_audits_creation_once(db):
    service = IdentitySyncService(db)
    user = await service.sync_user("uid-3", "amina@example.com", "Amina")
    await service.sync_user("uid-3", "amina@example.com", "Amina")

    entries = (await db.execute(select(AuditLog).where(AuditLog.resource_id == user.id))).scalars().all()
    assert [e.action for e in entries] == [AuditAction.USER_SYNCED]


async def test_sync_requires_external_id(db):
    with pytest.raises(ValidationError):
        await IdentitySyncService(db).sync_user("", "x@example.com")


async def test_deactivate(db):
    service = IdentitySyncService(db)
    await service.sync_user("uid-4", "otieno@example.com", "Otieno")

    user = await service.deactivate("uid-4")
    assert user.is_active is False
    assert await service.deactivate("uid-unknown") is None


async def test_change_role_is_explicit_and_audited(db, make_user):
    admin = await make_user(role=Role.ADMIN)
    target = await make_user()
    service = IdentitySyncService(db)

    updated = await service.change_role(target.id, Role.LANDLORD, admin)
    assert updated.role == Role.LANDLORD

    entry = (
        await db.execute(select(AuditLog).where(AuditLog.action == AuditAction.ROLE_CHANGED))
    ).scalar_one()
    assert entry.details == {"old_role": "tenant", "new_role": "landlord"}
    assert entry.user_id == admin.id


async def test_change_role_unknown_user(db, make_user):
    admin = await make_user(role=Role.ADMIN)
    with pytest.raises(NotFoundError):
        await IdentitySyncService(db).change_role(uuid.uuid4(), Role.ADMIN, admin)
