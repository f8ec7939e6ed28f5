from makao.models.enums import Role


async def test_me(client, login, make_user):
    user = await make_user(first_name="Amina", last_name="Hassan")
    login(user)

    body = (await client.get("/v1/users/me")).json()
    assert body["full_name"] == "Amina Hassan"
    assert body["role"] == "tenant"


async def test_unauthenticated(client):
    response = await client.get("/v1/users/me")
    assert response.status_code == 401


async def test_admin_changes_role_with_legacy_label(client, login, make_user):
    admin = await make_user(role=Role.ADMIN)
    tenant = await make_user()
    login(admin)

    response = await client.patch(f"/v1/users/{tenant.id}/role", json={"role": "property_manager"})
    assert response.status_code == 200
    assert response.json()["role"] == "landlord"

    response = await client.patch(f"/v1/users/{tenant.id}/role", json={"role": "superuser"})
    assert response.status_code == 400


async def test_only_admins_change_roles(client, login, make_user):
    landlord = await make_user(role=Role.LANDLORD)
    login(landlord)

    response = await client.patch(f"/v1/users/{landlord.id}/role", json={"role": "admin"})
    assert response.status_code == 403
