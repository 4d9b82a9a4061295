from pph21_service.models import models, schemas
from pph21_service.services.tenant_service import TenantService


def test_health_endpoints(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/live").json() == {"status": "alive"}


def test_metrics_requires_superadmin(client, superadmin, admin):
    assert client.get("/metrics", headers=admin).status_code == 403

    resp = client.get("/metrics", headers=superadmin.headers)
    assert resp.status_code == 200
    assert "pph21_calculations_total" in resp.text


def test_calculations_are_counted(client, superadmin, hr):
    client.post("/calculator/pph21", json={"ptkp_code": "TK0", "mode": "annual", "bruto": "1"}, headers=hr)
    text = client.get("/metrics", headers=superadmin.headers).text
    assert 'pph21_calculations_total{mode="annual",source="calculator"}' in text


def test_bootstrap_is_idempotent(db_session):
    svc = TenantService(db_session)
    tenant_in = schemas.TenantCreate(code="wayne", name="PT Wayne")
    admin_in = schemas.TenantUserCreate(email="admin@wayne.test", password="Passw0rd123", role="viewer")

    first = svc.bootstrap(tenant_in, admin_in, superadmin_email="ops@wayne.test", superadmin_password="Passw0rd123")
    second = svc.bootstrap(tenant_in, admin_in)

    assert first.id == second.id
    members = svc.list_members(first.id)
    assert [m.role for m in members] == [models.TenantRole.TENANT_ADMIN]
    superadmin = db_session.query(models.User).filter_by(email="ops@wayne.test").one()
    assert superadmin.is_superadmin


def test_ready_reports_schema(client):
    body = client.get("/ready").json()
    assert body["status"] == "ready"
    assert body["schema"] is True
    assert body["missing_tables"] == []
