"""Shared fixtures: in-memory database, factories and an API client."""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["FIREBASE_PROJECT_ID"] = "makao-test"
os.environ["IDENTITY_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["DEBUG"] = "true"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["SMS_ENABLED"] = "false"

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

import pytest
from fastapi import Depends, HTTPException, status
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import makao.models  # noqa: F401
from makao.core.database import Base, get_db
from makao.core.security import AuthenticatedUser, get_current_user
from makao.main import app
from makao.models.enums import LeaseStatus, PropertyType, Role, UnitStatus
from makao.models.lease import Lease
from makao.models.property import Property, Unit
from makao.models.user import User
from makao.services.notifications import DispatchResult, get_notification_dispatcher


@dataclass
class SentNotification:
    notification_type: Any
    recipient: Any
    variables: dict = field(default_factory=dict)
    attachments: list = field(default_factory=list)


class RecordingDispatcher:
    """Stands in for NotificationDispatcher and records every send."""

    def __init__(self):
        self.sent: list[SentNotification] = []

    async def send(self, notification_type, recipient, variables=None, attachments=None):
        self.sent.append(
            SentNotification(notification_type, recipient, dict(variables or {}), list(attachments or []))
        )
        return DispatchResult()

    def of_type(self, notification_type) -> list[SentNotification]:
        return [s for s in self.sent if s.notification_type == notification_type]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    async def _make(
        role: Role = Role.TENANT,
        email: Optional[str] = None,
        phone: Optional[str] = "0712345678",
        first_name: str = "Jane",
        last_name: str = "Wanjiku",
        is_active: bool = True,
    ) -> User:
        suffix = uuid.uuid4().hex[:8]
        user = User(
            external_id=f"uid-{suffix}",
            email=email or f"{role.value}-{suffix}@example.com",
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role,
            is_active=is_active,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
def make_property(db):
    async def _make(owner: User, name: str = "Sunrise Apartments") -> Property:
        prop = Property(
            owner_id=owner.id,
            name=name,
            address="Ngong Road, Nairobi",
            property_type=PropertyType.APARTMENT,
            total_units=0,
        )
        db.add(prop)
        await db.commit()
        return prop

    return _make


@pytest.fixture
def make_unit(db):
    async def _make(
        prop: Property,
        unit_number: str = "A1",
        rent_amount: Decimal = Decimal("20000"),
        status: UnitStatus = UnitStatus.VACANT,
    ) -> Unit:
        unit = Unit(
            property_id=prop.id,
            unit_number=unit_number,
            status=status,
            bedrooms=2,
            bathrooms=1,
            rent_amount=rent_amount,
            deposit_amount=rent_amount,
        )
        db.add(unit)
        prop.total_units = (prop.total_units or 0) + 1
        await db.commit()
        return unit

    return _make


@pytest.fixture
def make_lease(db):
    """Active lease inserted directly, unit marked occupied."""

    async def _make(
        unit: Unit,
        tenant: User,
        rent_amount: Decimal = Decimal("20000"),
        payment_day: int = 5,
        start_date: date = date(2025, 1, 1),
        end_date: date = date(2025, 12, 31),
    ) -> Lease:
        lease = Lease(
            unit_id=unit.id,
            tenant_id=tenant.id,
            status=LeaseStatus.ACTIVE,
            start_date=start_date,
            end_date=end_date,
            rent_amount=rent_amount,
            deposit_amount=rent_amount,
            payment_day=payment_day,
        )
        db.add(lease)
        unit.status = UnitStatus.OCCUPIED
        await db.commit()
        return lease

    return _make


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def auth_state():
    return {"user_id": None}


@pytest.fixture
def login(auth_state):
    def _login(user: User) -> None:
        auth_state["user_id"] = user.id

    return _login


@pytest.fixture
async def client(session_factory, dispatcher, auth_state):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_current_user(session: AsyncSession = Depends(get_db)):
        user_id = auth_state["user_id"]
        user = await session.get(User, user_id) if user_id else None
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
        auth_user = AuthenticatedUser(uid=user.external_id, email=user.email)
        auth_user.user = user
        return auth_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_current_user
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
