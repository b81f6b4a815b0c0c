import os

# db.py fails fast without a URL; the tests swap in their own engine below
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""
os.environ["DASHBOARD_API_TOKEN"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from main import app  # noqa: E402
from portal_analytics.db import Base, get_db  # noqa: E402
from portal_analytics.models import Organization, Project  # noqa: E402
from portal_analytics.services.store import SqlStore  # noqa: E402

ACME_ORG_ID = "6a0c7a57-2f0e-4c1e-9c53-0d8f3b1f0a01"
ACME_PROJECT_ID = "1f2e3d4c-5b6a-4798-8a9b-0c1d2e3f4a5b"
OPERATOR_ORG_ID = "0b9a8c7d-6e5f-4a3b-8c2d-1e0f9a8b7c6d"
OPERATOR_PROJECT_ID = "9d8c7b6a-5f4e-4d3c-8b2a-190817161514"


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def db(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db):
    return SqlStore(db)


@pytest.fixture()
def tenants(db):
    """Two orgs: a client agency site and the operator's own marketing site."""
    db.add_all(
        [
            Organization(id=ACME_ORG_ID, name="Acme Plumbing", slug="acme-plumbing", domain="acmeplumbing.com"),
            Organization(id=OPERATOR_ORG_ID, name="Uptrade Media", slug="uptrade-media", domain="uptrademedia.com"),
        ]
    )
    db.add_all(
        [
            Project(
                id=ACME_PROJECT_ID,
                org_id=ACME_ORG_ID,
                title="Acme website",
                is_tenant=True,
                tenant_tracking_id="AP-0001",
                tenant_domain="acmeplumbing.com",
            ),
            Project(
                id=OPERATOR_PROJECT_ID,
                org_id=OPERATOR_ORG_ID,
                title="Uptrade Media website",
                is_tenant=True,
                tenant_tracking_id="UM-MAIN0001",
                tenant_domain="uptrademedia.com",
            ),
            Project(
                org_id=ACME_ORG_ID,
                title="Acme brochure redesign",
                is_tenant=False,
                tenant_tracking_id="AP-INTERNAL",
            ),
        ]
    )
    db.commit()
    return {
        "acme_org": ACME_ORG_ID,
        "acme_project": ACME_PROJECT_ID,
        "operator_org": OPERATOR_ORG_ID,
        "operator_project": OPERATOR_PROJECT_ID,
    }


@pytest.fixture()
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
