from sqlalchemy import select

from makao.models.enums import Role
from makao.models.user import User

SECRET = {"X-Webhook-Secret": "test-webhook-secret"}


def user_event(event_type, uid="idp_123", email="jane@example.com", role=None, **extra):
    data = {
        "id": uid,
        "email_addresses": [{"email_address": email, "id": "em_1"}],
        "phone_numbers": [{"phone_number": "+254712345678"}],
        "first_name": "Jane",
        "last_name": "Wanjiku",
        "public_metadata": {"role": role} if role else {},
        **extra,
    }
    return {"type": event_type, "data": data}


async def _user(db, uid="idp_123"):
    return (
        await db.execute(select(User).where(User.external_id == uid).execution_options(populate_existing=True))
    ).scalar_one_or_none()


async def test_rejects_missing_or_wrong_secret(client):
    response = await client.post("/v1/webhooks/identity", json=user_event("user.created"))
    assert response.status_code == 401

    response = await client.post(
        "/v1/webhooks/identity", json=user_event("user.created"), headers={"X-Webhook-Secret": "nope"}
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid webhook secret"}


async def test_created_then_updated_keeps_role(client, db):
    response = await client.post(
        "/v1/webhooks/identity", json=user_event("user.created", role="landlord"), headers=SECRET
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    user = await _user(db)
    assert user.role == Role.LANDLORD
    assert user.phone == "+254712345678"

    await client.post(
        "/v1/webhooks/identity",
        json=user_event("user.updated", email="jane.w@example.com", role="admin"),
        headers=SECRET,
    )
    user = await _user(db)
    assert user.email == "jane.w@example.com"
    assert user.role == Role.LANDLORD

    count = len((await db.execute(select(User))).scalars().all())
    assert count == 1


async def test_deleted_deactivates(client, db):
    await client.post("/v1/webhooks/identity", json=user_event("user.created"), headers=SECRET)
    response = await client.post(
        "/v1/webhooks/identity", json={"type": "user.deleted", "data": {"id": "idp_123"}}, headers=SECRET
    )
    assert response.status_code == 200

    user = await _user(db)
    assert user.is_active is False


async def test_unknown_events_are_acknowledged(client, db):
    response = await client.post(
        "/v1/webhooks/identity", json={"type": "session.created", "data": {}}, headers=SECRET
    )
    assert response.status_code == 200
    assert (await db.execute(select(User))).scalars().all() == []


async def test_malformed_user_payload(client):
    response = await client.post(
        "/v1/webhooks/identity", json={"type": "user.created", "data": {"first_name": "x"}}, headers=SECRET
    )
    assert response.status_code == 400

