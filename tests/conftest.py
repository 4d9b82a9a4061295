from __future__ import annotations

import os
import warnings
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from pph21_service.core.config import settings
from pph21_service.db import session as db_session
from pph21_service.db.base_class import Base
from pph21_service.db.session import SessionLocal
from pph21_service.models import hr_models, models, payroll_models, schemas  # noqa: F401  (register tables)

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


test_engine = create_engine(
    TEST_DATABASE_URL,
    future=True,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Ensure application code uses the test engine
settings.DATABASE_URL = TEST_DATABASE_URL  # type: ignore[attr-defined]
settings.ENV = "test"  # type: ignore[attr-defined]
settings.AUDIT_LOG_FILE = "storage/test_audit.log"  # type: ignore[attr-defined]
db_session.engine = test_engine  # type: ignore[assignment]
SessionLocal.configure(bind=test_engine)

# Suppress known third-party deprecation warnings (e.g., passlib crypt removal) to keep test output clean.
warnings.filterwarnings("ignore", category=DeprecationWarning, module="passlib.utils")

PASSWORD = "Passw0rd123"


@pytest.fixture(autouse=True)
def _reset_database_state():
    """Ensure each test sees a fresh database schema."""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Rate limit counters are process-wide; start every test from zero."""
    from pph21_service.api.rate_limit import limiter

    limiter.reset()
    yield


@pytest.fixture
def db_session():
    """Provide a database session for tests."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


from fastapi.testclient import TestClient  # noqa: E402

from pph21_service.api.main import app  # noqa: E402
from pph21_service.core.security import issue_access_token  # noqa: E402
from pph21_service.services.auth_service import AuthService  # noqa: E402
from pph21_service.services.tenant_service import TenantService  # noqa: E402


@pytest.fixture
def client():  # noqa: D401 - simple factory fixture
    """Provide a FastAPI TestClient bound to the application."""
    return TestClient(app)


def bearer(user_id: int, tenant_id: int | None = None) -> dict[str, str]:
    token = issue_access_token(user_id).token
    headers = {"Authorization": f"Bearer {token}"}
    if tenant_id is not None:
        headers["X-Tenant-ID"] = str(tenant_id)
    return headers


@pytest.fixture
def superadmin(db_session):
    user = AuthService(db_session).get_or_create_user(
        "root@pph21.test", name="Root", password=PASSWORD, is_superadmin=True
    )
    db_session.commit()
    return SimpleNamespace(id=user.id, email=user.email, headers=bearer(user.id))


def _make_tenant(db_session, code: str) -> SimpleNamespace:
    """Tenant with one member per role and the default deduction catalog."""
    svc = TenantService(db_session)
    tenant = svc.bootstrap(
        schemas.TenantCreate(code=code, name=f"PT {code.title()}"),
        schemas.TenantUserCreate(email=f"admin@{code}.test", name="Admin", password=PASSWORD),
    )
    users = {"tenant_admin": db_session.query(models.User).filter_by(email=f"admin@{code}.test").one()}
    for role in (models.TenantRole.HR, models.TenantRole.FINANCE, models.TenantRole.VIEWER):
        membership = svc.add_member(
            tenant.id,
            schemas.TenantUserCreate(email=f"{role.value}@{code}.test", password=PASSWORD, role=role),
        )
        users[role.value] = membership.user
    return SimpleNamespace(
        id=tenant.id,
        code=tenant.code,
        users=users,
        headers={role: bearer(user.id, tenant.id) for role, user in users.items()},
    )


@pytest.fixture
def tenant(db_session):
    return _make_tenant(db_session, "acme")


@pytest.fixture
def other_tenant(db_session):
    return _make_tenant(db_session, "globex")


@pytest.fixture
def hr(tenant):
    return tenant.headers["hr"]


@pytest.fixture
def admin(tenant):
    return tenant.headers["tenant_admin"]


@pytest.fixture
def finance(tenant):
    return tenant.headers["finance"]


@pytest.fixture
def viewer(tenant):
    return tenant.headers["viewer"]


@pytest.fixture
def catalog(client, tenant, hr):
    """Earning components plus the seeded deduction components, by code."""
    components = {}
    for code, name, taxable in (
        ("gaji_pokok", "Gaji Pokok", True),
        ("tunjangan", "Tunjangan Jabatan", True),
        ("uang_makan", "Uang Makan", False),
    ):
        resp = client.post("/components", json={"code": code, "name": name, "taxable": taxable}, headers=hr)
        assert resp.status_code == 201, resp.text
        components[code] = resp.json()["id"]
    deductions = {d["code"]: d["id"] for d in client.get("/deduction-components", headers=hr).json()}
    return SimpleNamespace(components=components, deductions=deductions)


@pytest.fixture
def make_employee(client, hr):
    """Create person, employment and active payroll subject; returns the employment id."""

    def _make(name: str = "Budi Santoso", ptkp_code: str = "TK0", has_npwp: bool = True, nik: str | None = None):
        person = client.post("/persons", json={"full_name": name, "nik": nik}, headers=hr)
        assert person.status_code == 201, person.text
        employment = client.post(
            "/employments",
            json={"person_id": person.json()["id"], "start_date": "2024-01-01"},
            headers=hr,
        )
        assert employment.status_code == 201, employment.text
        employment_id = employment.json()["id"]
        if ptkp_code is not None:
            subject = client.post(
                "/payroll-subjects",
                json={"employment_id": employment_id, "ptkp_code": ptkp_code, "has_npwp": has_npwp},
                headers=hr,
            )
            assert subject.status_code == 201, subject.text
        return employment_id

    return _make
