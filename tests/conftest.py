"""
Pytest configuration and fixtures.
Provides an in-memory database, seeded identities and an API client.
"""
import os

# Must be set before tender_ledger is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

import uuid
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tender_ledger.db.session import Base, get_db
from tender_ledger.db.models import Employee, Organization, OrganizationResponsible
from tender_ledger.utils.choices import OrganizationType
from tender_ledger.main import app
from tender_ledger.services.bid_service import BidService
from tender_ledger.services.tender_service import TenderService


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def identities(db):
    """
    alice and bob are responsible for O1, carol for O2.
    dave exists but belongs to no organization.
    """
    employees = {}
    for username in ("alice", "bob", "carol", "dave"):
        employee = Employee(id=uuid.uuid4(), username=username)
        db.add(employee)
        employees[username] = employee

    o1 = Organization(id=uuid.uuid4(), name="O1", type=OrganizationType.LLC)
    o2 = Organization(id=uuid.uuid4(), name="O2", type=OrganizationType.JSC)
    db.add_all([o1, o2])
    db.flush()

    db.add_all([
        OrganizationResponsible(id=uuid.uuid4(), organization_id=o1.id, user_id=employees["alice"].id),
        OrganizationResponsible(id=uuid.uuid4(), organization_id=o1.id, user_id=employees["bob"].id),
        OrganizationResponsible(id=uuid.uuid4(), organization_id=o2.id, user_id=employees["carol"].id),
    ])
    db.commit()

    return SimpleNamespace(o1=o1, o2=o2, **employees)


@pytest.fixture
def tender_service(db):
    return TenderService(db)


@pytest.fixture
def bid_service(db):
    return BidService(db)


@pytest.fixture
def tender(tender_service, identities):
    """A fresh tender of O1 created by alice"""
    return tender_service.create_tender(
        name="Road repair",
        description="Fix the main road",
        service_type="Construction",
        organization_id=str(identities.o1.id),
        creator_username="alice",
    )


@pytest.fixture
def bid(bid_service, tender, identities):
    """A fresh bid on ``tender`` by carol as a user"""
    return bid_service.create_bid(
        name="Carol's offer",
        description="Asphalt in two weeks",
        tender_id=str(tender.id),
        author_type="User",
        author_id=str(identities.carol.id),
    )


@pytest.fixture
def client(db):
    """Test client sharing the test session"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
