"""Login, tenant resolution and role enforcement."""
from conftest import PASSWORD, bearer


def test_login_returns_token_and_memberships(client, tenant):
    resp = client.post("/auth/login", json={"email": "HR@acme.test ", "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "hr@acme.test"
    assert body["tenants"] == [
        {"tenant_id": tenant.id, "tenant_code": "acme", "tenant_name": "PT Acme", "role": "hr"}
    ]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["user"]["id"] == body["user"]["id"]
    assert me.json()["tenants"][0]["role"] == "hr"


def test_login_with_wrong_password(client, tenant):
    resp = client.post("/auth/login", json={"email": "hr@acme.test", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "USR100"


def test_login_is_rate_limited(client):
    for _ in range(10):
        resp = client.post("/auth/login", json={"email": "ghost@acme.test", "password": "x"})
        assert resp.status_code == 401
    resp = client.post("/auth/login", json={"email": "ghost@acme.test", "password": "x"})
    assert resp.status_code == 429


def test_missing_and_invalid_tokens(client):
    assert client.get("/auth/me").status_code == 401
    resp = client.get("/auth/me", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_tenant_defaults_to_first_membership(client, tenant):
    headers = {"Authorization": tenant.headers["hr"]["Authorization"]}
    resp = client.post("/persons", json={"full_name": "Siti"}, headers=headers)
    assert resp.status_code == 201


def test_other_tenant_is_denied(client, tenant, other_tenant):
    headers = bearer(tenant.users["hr"].id, other_tenant.id)
    resp = client.get("/persons", headers=headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "USR103"


def test_tenant_data_is_isolated(client, tenant, other_tenant):
    created = client.post("/persons", json={"full_name": "Siti"}, headers=tenant.headers["hr"]).json()

    theirs = client.get("/persons", headers=other_tenant.headers["hr"]).json()
    assert theirs["total"] == 0
    resp = client.get(f"/persons/{created['id']}", headers=other_tenant.headers["hr"])
    assert resp.status_code == 404


def test_viewer_cannot_write(client, viewer):
    resp = client.post("/persons", json={"full_name": "Siti"}, headers=viewer)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "USR104"
    assert client.get("/persons", headers=viewer).status_code == 200


def test_superadmin_must_name_a_tenant(client, superadmin, tenant):
    resp = client.get("/persons", headers=superadmin.headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "USR102"

    resp = client.post(
        "/persons",
        json={"full_name": "Siti"},
        headers={**superadmin.headers, "X-Tenant-ID": str(tenant.id)},
    )
    assert resp.status_code == 201


def test_tenant_crud_requires_superadmin(client, superadmin, admin):
    assert client.get("/tenants", headers=admin).status_code == 403

    created = client.post("/tenants", json={"code": "initech", "name": "PT Initech"}, headers=superadmin.headers)
    assert created.status_code == 201, created.text
    tenant_id = created.json()["id"]

    dup = client.post("/tenants", json={"code": "initech", "name": "Again"}, headers=superadmin.headers)
    assert dup.status_code == 409

    listed = client.get("/tenants", headers=superadmin.headers).json()
    assert "initech" in {t["code"] for t in listed}
    assert client.get(f"/tenants/{tenant_id}", headers=superadmin.headers).json()["name"] == "PT Initech"


def test_suspended_tenant_blocks_members(client, superadmin, tenant, hr):
    resp = client.patch(f"/tenants/{tenant.id}", json={"status": "suspended"}, headers=superadmin.headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "suspended"

    resp = client.get("/persons", headers=hr)
    assert resp.status_code == 403


def test_invalid_tenant_status_rejected(client, superadmin, tenant):
    resp = client.patch(f"/tenants/{tenant.id}", json={"status": "deleted"}, headers=superadmin.headers)
    assert resp.status_code == 422


def test_tenant_admin_manages_members(client, tenant, admin):
    resp = client.post(
        f"/tenants/{tenant.id}/users",
        json={"email": "new.finance@acme.test", "password": PASSWORD, "role": "finance"},
        headers=admin,
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["role"] == "finance"

    members = client.get(f"/tenants/{tenant.id}/users", headers=admin).json()
    assert len(members) == 5

    login = client.post("/auth/login", json={"email": "new.finance@acme.test", "password": PASSWORD})
    assert login.status_code == 200


def test_new_member_needs_a_strong_password(client, tenant, admin):
    resp = client.post(
        f"/tenants/{tenant.id}/users",
        json={"email": "weak@acme.test", "password": "12345678", "role": "viewer"},
        headers=admin,
    )
    assert resp.status_code == 422


def test_member_management_is_admin_only(client, tenant, other_tenant, hr):
    assert client.get(f"/tenants/{tenant.id}/users", headers=hr).status_code == 403
    other_admin = other_tenant.headers["tenant_admin"]
    assert client.get(f"/tenants/{tenant.id}/users", headers=other_admin).status_code == 403
