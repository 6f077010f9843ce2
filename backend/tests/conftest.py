# backend/tests/conftest.py
from __future__ import annotations

import os

# settings are read at import time; pin the test environment first
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["AUTH_MODE"] = "dev"
os.environ["APP_ENV"] = "test"
os.environ.pop("SENDGRID_API_KEY", None)

from datetime import datetime, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from portal.db import Base, get_db
from portal.main import create_app
from portal.models import AppUser, Invoice, Tenancy, Unit
from portal.services.blob_store import LocalBlobStore, get_blob_store

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture()
def db(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "uploads")


@pytest.fixture()
def client(db, blob_store):
    app = create_app()

    def override_get_db():
        try:
            yield db
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    with TestClient(app) as c:
        yield c


# -----------------------------
# Factories
# -----------------------------
@pytest.fixture()
def make_user(db):
    def _make(
        email: str,
        *,
        role: str = "TENANT",
        full_name: Optional[str] = None,
        phone: Optional[str] = None,
        insurance_status: Optional[str] = None,
        insurance_expires_at: Optional[datetime] = None,
    ) -> AppUser:
        u = AppUser(
            email=email,
            role=role,
            full_name=full_name or email.split("@")[0],
            phone=phone,
            insurance_status=insurance_status,
            insurance_expires_at=insurance_expires_at,
        )
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    return _make


@pytest.fixture()
def make_tenancy(db):
    def _make(
        tenant: AppUser,
        *,
        unit_label: str = "1A",
        move_out_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        is_legacy_move_in: bool = False,
        is_active: bool = True,
    ) -> Tenancy:
        unit = Unit(label=unit_label)
        db.add(unit)
        db.flush()
        t = Tenancy(
            tenant_id=tenant.id,
            unit_id=unit.id,
            start_date=datetime.utcnow() - timedelta(days=30),
            end_date=end_date,
            move_out_date=move_out_date,
            is_legacy_move_in=is_legacy_move_in,
            is_active=is_active,
        )
        db.add(t)
        db.commit()
        db.refresh(t)
        return t

    return _make


@pytest.fixture()
def make_invoice(db):
    def _make(unit_id: int, *, status: str = "OPEN", due_date: datetime, period_month: str = "2026-10") -> Invoice:
        inv = Invoice(unit_id=unit_id, period_month=period_month, amount=1200.0, status=status, due_date=due_date)
        db.add(inv)
        db.commit()
        return inv

    return _make


@pytest.fixture()
def admin(make_user) -> AppUser:
    return make_user("admin@t.local", role="ADMIN", full_name="Admin")


@pytest.fixture()
def tenant(make_user) -> AppUser:
    return make_user("tenant@t.local", full_name="Tina Tenant")


@pytest.fixture()
def tenancy(make_tenancy, tenant) -> Tenancy:
    return make_tenancy(tenant)


def headers_for(user: AppUser) -> dict[str, str]:
    return {"X-User-Email": user.email, "X-User-Role": user.role}


@pytest.fixture()
def admin_headers(admin) -> dict[str, str]:
    return headers_for(admin)


@pytest.fixture()
def tenant_headers(tenant) -> dict[str, str]:
    return headers_for(tenant)
