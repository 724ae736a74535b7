import os

os.environ.setdefault("SECRET_KEY", "test-session-secret")
os.environ.setdefault("QR_SECRET_KEY", "test-qr-secret")

from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ticket_access.config import settings
from ticket_access.db import get_db
from ticket_access.dependencies import get_notifier, get_session_factory, get_signer
from ticket_access.main import app
from ticket_access.models import (
    Base,
    Device,
    Event,
    EventStaff,
    Organization,
    RoleEnum,
    UserProfile,
)
from ticket_access.schemas import TicketCreate
from ticket_access.services.signing import TokenSigner
from ticket_access.services.tenancy import Tenant
from ticket_access.services.tickets import TicketStore

from .helpers import RecordingNotifier, make_principal


@pytest.fixture()
def engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_engine(
        f"sqlite+pysqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def SessionLocal(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(SessionLocal):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def signer():
    return TokenSigner(settings.qr_secret_key)


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def client(SessionLocal, signer, notifier):
    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: SessionLocal
    app.dependency_overrides[get_signer] = lambda: signer
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def world(db_session):
    """Two organizations, each with one event and a small staff."""
    org_a = Organization(name="Org A", slug="org-a")
    org_b = Organization(name="Org B", slug="org-b")
    db_session.add_all([org_a, org_b])
    db_session.flush()

    event_a = Event(
        organization_id=org_a.id,
        slug="e1",
        name="Event One",
        venue="Main Hall",
        address="1 High Street",
        city="Lisbon",
        date=datetime(2026, 12, 31, 22, 0, 0),
    )
    event_a2 = Event(organization_id=org_a.id, slug="e1-afterparty", name="Afterparty")
    event_b = Event(organization_id=org_b.id, slug="e2", name="Event Two")
    db_session.add_all([event_a, event_a2, event_b])
    db_session.flush()

    db_session.add_all(
        [
            UserProfile(user_id="admin-a", organization_id=org_a.id, role=RoleEnum.ADMIN.value),
            UserProfile(user_id="rrpp-a", organization_id=org_a.id, role=RoleEnum.RRPP.value),
            UserProfile(user_id="door-a", organization_id=org_a.id, role=RoleEnum.DOOR.value),
            UserProfile(user_id="admin-b", organization_id=org_b.id, role=RoleEnum.ADMIN.value),
            EventStaff(event_id=event_a.id, user_id="rrpp-a", quota_limit=2, quota_used=0),
        ]
    )
    device_a = Device(alias="gate-1", pin="1234", organization_id=org_a.id, enabled=True)
    device_off = Device(alias="gate-2", pin="9999", organization_id=org_a.id, enabled=False)
    device_b = Device(alias="gate-b", pin="4321", organization_id=org_b.id, enabled=True)
    db_session.add_all([device_a, device_off, device_b])
    db_session.commit()

    admin_a = make_principal("admin-a", org_a.id, "admin")
    # Organization and role come from the profile for these principals.
    rrpp_a = make_principal("rrpp-a")
    door_a = make_principal("door-a")
    admin_b = make_principal("admin-b", org_b.id, "admin")

    return SimpleNamespace(
        org_a=org_a,
        org_b=org_b,
        event_a=event_a,
        event_a2=event_a2,
        event_b=event_b,
        device_a=device_a,
        device_off=device_off,
        device_b=device_b,
        admin_a=admin_a,
        rrpp_a=rrpp_a,
        door_a=door_a,
        admin_b=admin_b,
        tenant_admin_a=Tenant(admin_a, org_a.id, "admin"),
        tenant_rrpp_a=Tenant(rrpp_a, org_a.id, "rrpp"),
        tenant_door_a=Tenant(door_a, org_a.id, "door"),
        tenant_admin_b=Tenant(admin_b, org_b.id, "admin"),
    )


@pytest.fixture()
def issue_ticket(db_session, signer, world):
    def _issue(tenant=None, **overrides):
        fields = {
            "event_slug": "e1",
            "type": "ga",
            "price": "25.00",
            "buyer_name": "Ana Buyer",
            "buyer_email": "a@x.com",
            "buyer_doc": "DOC-1",
        }
        fields.update(overrides)
        ticket, _ = TicketStore(db_session).issue(
            tenant or world.tenant_admin_a, TicketCreate(**fields), signer
        )
        return ticket

    return _issue
