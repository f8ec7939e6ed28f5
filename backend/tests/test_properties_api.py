from datetime import date, timedelta
from decimal import Decimal

import pytest

from makao.models.enums import NotificationType, Role


@pytest.fixture
async def landlord(make_user):
    return await make_user(role=Role.LANDLORD, first_name="Peter", last_name="Otieno")


async def _create_property_with_unit(client, unit_number="A1"):
    prop = (await client.post("/v1/properties", json={"name": "Sunrise Apartments", "address": "Ngong Road"})).json()
    unit = (
        await client.post(
            f"/v1/properties/{prop['id']}/units",
            json={"unit_number": unit_number, "bedrooms": 2, "rent_amount": "20000", "deposit_amount": "20000"},
        )
    ).json()
    return prop, unit


def lease_body(unit, tenant, **overrides):
    body = {
        "unit_id": unit["id"],
        "tenant_id": str(tenant.id),
        "start_date": date.today().isoformat(),
        "end_date": (date.today() + timedelta(days=365)).isoformat(),
        "rent_amount": "20000",
        "deposit_amount": "20000",
        "payment_day": 5,
    }
    body.update(overrides)
    return body


async def test_property_and_unit_crud(client, login, landlord):
    login(landlord)
    prop, unit = await _create_property_with_unit(client)
    assert unit["status"] == "vacant"

    body = (await client.get(f"/v1/properties/{prop['id']}")).json()
    assert body["total_units"] == 1

    response = await client.post(
        f"/v1/properties/{prop['id']}/units", json={"unit_number": "A1", "rent_amount": "15000"}
    )
    assert response.status_code == 409

    response = await client.patch(f"/v1/units/{unit['id']}", json={"status": "maintenance"})
    assert response.json()["status"] == "maintenance"

    units = (await client.get(f"/v1/properties/{prop['id']}/units", params={"unit_status": "vacant"})).json()
    assert units == []

    assert (await client.delete(f"/v1/units/{unit['id']}")).status_code == 204
    assert (await client.get(f"/v1/properties/{prop['id']}")).json()["total_units"] == 0


async def test_unit_and_property_updates_reject_nulls(client, login, landlord):
    login(landlord)
    prop, unit = await _create_property_with_unit(client)

    response = await client.patch(f"/v1/units/{unit['id']}", json={"rent_amount": None})
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"

    response = await client.patch(f"/v1/properties/{prop['id']}", json={"name": None})
    assert response.status_code == 400

    response = await client.patch(f"/v1/units/{unit['id']}", json={"description": None, "floor_number": None})
    assert response.status_code == 200

    body = (await client.get(f"/v1/properties/{prop['id']}/units")).json()
    assert Decimal(body[0]["rent_amount"]) == Decimal("20000")


async def test_renumbering_unit_to_existing_number_conflicts(client, login, landlord):
    login(landlord)
    prop, first = await _create_property_with_unit(client, unit_number="A1")
    second = (
        await client.post(f"/v1/properties/{prop['id']}/units", json={"unit_number": "A2", "rent_amount": "15000"})
    ).json()

    response = await client.patch(f"/v1/units/{second['id']}", json={"unit_number": "A1"})
    assert response.status_code == 409
    assert response.json() == {"error": "Unit A1 already exists in this property"}

    response = await client.patch(f"/v1/units/{second['id']}", json={"unit_number": "A2", "bedrooms": 3})
    assert response.status_code == 200
    assert response.json()["bedrooms"] == 3


async def test_properties_are_private_to_owner(client, login, landlord, make_user):
    login(landlord)
    prop, _ = await _create_property_with_unit(client)

    login(await make_user(role=Role.LANDLORD))
    assert (await client.get(f"/v1/properties/{prop['id']}")).status_code == 404
    assert (await client.get("/v1/properties")).json()["total"] == 0

    login(await make_user(role=Role.ADMIN))
    assert (await client.get(f"/v1/properties/{prop['id']}")).status_code == 200

    login(await make_user())
    assert (await client.get("/v1/properties")).status_code == 403


async def test_allocate_and_terminate(client, login, dispatcher, landlord, make_user):
    tenant = await make_user(first_name="Jane", last_name="Wanjiku")
    login(landlord)
    prop, unit = await _create_property_with_unit(client)

    response = await client.post("/v1/leases", json=lease_body(unit, tenant))
    assert response.status_code == 201
    lease = response.json()
    assert lease["status"] == "active"
    assert lease["tenant_name"] == "Jane Wanjiku"
    assert lease["property_name"] == "Sunrise Apartments"
    assert [s.recipient.name for s in dispatcher.of_type(NotificationType.WELCOME)] == ["Jane Wanjiku"]

    units = (await client.get(f"/v1/properties/{prop['id']}/units")).json()
    assert units[0]["status"] == "occupied"

    other = await make_user()
    response = await client.post("/v1/leases", json=lease_body(unit, other))
    assert response.status_code == 409

    response = await client.patch(f"/v1/units/{unit['id']}", json={"status": "vacant"})
    assert response.status_code == 409
    assert (await client.delete(f"/v1/properties/{prop['id']}")).status_code == 409

    response = await client.post(f"/v1/leases/{lease['id']}/terminate")
    assert response.status_code == 200
    assert response.json()["status"] == "terminated"
    assert response.json()["end_date"] == date.today().isoformat()

    response = await client.post(f"/v1/leases/{lease['id']}/terminate")
    assert response.status_code == 409

    units = (await client.get(f"/v1/properties/{prop['id']}/units")).json()
    assert units[0]["status"] == "vacant"

    events = (await client.get("/v1/calendar")).json()
    assert {e["event_type"] for e in events} == {"lease_start", "lease_end"}


async def test_lease_dates_validated(client, login, landlord, make_user):
    tenant = await make_user()
    login(landlord)
    _, unit = await _create_property_with_unit(client)

    response = await client.post(
        "/v1/leases", json=lease_body(unit, tenant, end_date=date.today().isoformat())
    )
    assert response.status_code == 400

    response = await client.post("/v1/leases", json=lease_body(unit, tenant, payment_day=31))
    assert response.status_code == 400


async def test_tenant_sees_only_own_leases(client, login, landlord, make_user):
    tenant = await make_user()
    login(landlord)
    _, unit = await _create_property_with_unit(client)
    lease = (await client.post("/v1/leases", json=lease_body(unit, tenant))).json()

    login(tenant)
    assert (await client.get("/v1/leases")).json()["total"] == 1
    assert (await client.get(f"/v1/leases/{lease['id']}")).status_code == 200

    login(await make_user())
    assert (await client.get("/v1/leases")).json()["total"] == 0
    assert (await client.get(f"/v1/leases/{lease['id']}")).status_code == 404


async def test_maintenance_update_notifies_tenant(client, login, dispatcher, landlord, make_user):
    tenant = await make_user()
    login(landlord)
    _, unit = await _create_property_with_unit(client)
    await client.post("/v1/leases", json=lease_body(unit, tenant))

    login(tenant)
    response = await client.post(
        "/v1/maintenance",
        json={"unit_id": unit["id"], "title": "Leaking tap", "description": "Kitchen tap drips", "priority": "high"},
    )
    assert response.status_code == 201
    request = response.json()
    assert request["unit_number"] == "A1"

    response = await client.patch(f"/v1/maintenance/{request['id']}", json={"status": "in_progress"})
    assert response.status_code == 403

    login(landlord)
    response = await client.patch(
        f"/v1/maintenance/{request['id']}", json={"status": "in_progress", "notes": "Plumber on Monday"}
    )
    assert response.json()["status"] == "in_progress"
    updates = dispatcher.of_type(NotificationType.MAINTENANCE_UPDATE)
    assert updates[0].variables["status"] == "in progress"

    response = await client.patch(f"/v1/maintenance/{request['id']}", json={"status": "pending"})
    assert response.status_code == 409

    login(tenant)
    inbox = (await client.get("/v1/notifications")).json()
    assert inbox["unread_count"] == 1
    assert (await client.patch("/v1/notifications", json={"all": True})).json() == {"updated": 1}
    assert (await client.patch("/v1/notifications", json={})).status_code == 400


async def test_send_notification_records_channels(client, login, dispatcher, landlord, make_user):
    tenant = await make_user()
    login(landlord)

    response = await client.post(
        "/v1/notifications",
        json={"user_id": str(tenant.id), "title": "Water outage", "message": "Water off on Monday"},
    )
    assert response.status_code == 201
    assert response.json()["sms_sent"] is False
    assert dispatcher.sent[0].variables["message"] == "Water off on Monday"

    login(tenant)
    response = await client.post(
        "/v1/notifications", json={"user_id": str(landlord.id), "title": "Hi", "message": "Hello"}
    )
    assert response.status_code == 403


async def test_dashboard_stats(client, login, landlord, make_user):
    tenant = await make_user()
    login(landlord)
    prop, unit = await _create_property_with_unit(client)
    await client.post(
        f"/v1/properties/{prop['id']}/units", json={"unit_number": "A2", "rent_amount": "18000"}
    )
    await client.post("/v1/leases", json=lease_body(unit, tenant))

    stats = (await client.get("/v1/dashboard/stats")).json()
    assert stats["total_properties"] == 1
    assert stats["total_units"] == 2
    assert stats["units_by_status"]["occupied"] == 1
    assert stats["occupancy_rate"] == 50.0
    assert stats["active_leases"] == 1


async def test_calendar_events(client, login, landlord, make_user):
    login(landlord)
    response = await client.post(
        "/v1/calendar",
        json={
            "title": "Inspection",
            "start_date": "2025-05-01T09:00:00",
            "end_date": "2025-05-01T10:00:00",
            "event_type": "inspection",
        },
    )
    assert response.status_code == 201
    event = response.json()

    assert len((await client.get("/v1/calendar", params={"start": "2025-05-01T00:00:00"})).json()) == 1
    assert (await client.get("/v1/calendar", params={"end": "2025-04-30T00:00:00"})).json() == []

    login(await make_user(role=Role.LANDLORD))
    assert (await client.delete(f"/v1/calendar/{event['id']}")).status_code == 404
