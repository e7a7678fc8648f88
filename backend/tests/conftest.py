"""Pytest configuration and fixtures."""

import os

# Must be set before kindred is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["ENVIRONMENT"] = "development"
os.environ["APP_URL"] = "http://testserver"
os.environ.pop("SMTP_HOST", None)

from datetime import timedelta  # noqa: E402
from unittest.mock import patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import kindred.models  # noqa: E402,F401
from kindred.core import auth as auth_core  # noqa: E402
from kindred.core.config import SESSION_COOKIE_NAME  # noqa: E402
from kindred.core.database import Base, SessionLocal, engine  # noqa: E402
from kindred.core.rate_limit import limiter  # noqa: E402
from kindred.core.timeutils import utcnow  # noqa: E402
from kindred.models import (  # noqa: E402
    Brand, InviteLink, Member, Organisation, OrganisationMember, OrganisationRole, OrganisationType, Supplier,
    ClaimStatus, User, UserRole,
)
from kindred.services import identity as identity_provider  # noqa: E402
from kindred.services.invite_links import generate_invite_token  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    """Fresh schema and clean in-process state for every test."""
    Base.metadata.create_all(bind=engine)
    limiter.reset()
    auth_core._sessions.clear()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def no_email():
    """Email is best effort; tests never talk to SMTP."""
    with patch("kindred.services.email.send_email", return_value=True) as sender:
        yield sender


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app():
    from kindred.main import app
    return app


@pytest.fixture
def client(app):
    """Anonymous test client."""
    return TestClient(app)


@pytest.fixture
def client_for(app):
    """Factory: a test client logged in as the given user."""
    def _client_for(user):
        test_client = TestClient(app)
        test_client.cookies.set(SESSION_COOKIE_NAME, auth_core.create_session(user.id, user.email, user.role.value))
        return test_client
    return _client_for


@pytest.fixture
def make_user(db):
    """Factory: identity plus application user, optionally with a member profile."""
    counter = {"n": 0}

    def _make_user(email=None, role=UserRole.MEMBER, first_name=None, last_name=None, password="password123",
                   invite_token=None):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        identity = identity_provider.create_identity(email, password)
        user = User(id=identity.id, email=identity.email, role=role, invite_link_token=invite_token)
        db.add(user)
        db.commit()
        if first_name or last_name:
            db.add(Member(user_id=user.id, first_name=first_name or "User", last_name=last_name or ""))
            db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@kindred.example.com", role=UserRole.ADMIN)


@pytest.fixture
def make_invite(db, admin):
    """Factory: invite link issued by the admin fixture."""
    def _make_invite(**fields):
        invite = InviteLink(token=fields.pop("token", None) or generate_invite_token(), created_by=admin.id, **fields)
        db.add(invite)
        db.commit()
        db.refresh(invite)
        return invite
    return _make_invite


@pytest.fixture
def make_brand(db):
    def _make_brand(user, name="Wild Gin Co"):
        brand = Brand(user_id=user.id, name=name, slug=f"{name.lower().replace(' ', '-')}-{user.id[:8]}")
        db.add(brand)
        db.commit()
        db.refresh(brand)
        return brand
    return _make_brand


@pytest.fixture
def make_supplier(db):
    def _make_supplier(name="Bottle Works", user=None, contact_email="hello@bottleworks.example.com"):
        supplier = Supplier(
            company_name=name,
            slug=name.lower().replace(" ", "-"),
            contact_email=contact_email,
            user_id=user.id if user else None,
            claim_status=ClaimStatus.CLAIMED if user else ClaimStatus.UNCLAIMED,
        )
        db.add(supplier)
        db.commit()
        db.refresh(supplier)
        return supplier
    return _make_supplier


@pytest.fixture
def make_organisation(db, make_brand):
    """Factory: BRAND organisation owned by `owner`, with extra members as {user: role}."""
    def _make_organisation(owner, members=None, name="Wild Gin Co"):
        brand = make_brand(owner, name)
        organisation = Organisation(name=name, slug=brand.slug, type=OrganisationType.BRAND, brand_id=brand.id)
        db.add(organisation)
        db.flush()
        db.add(OrganisationMember(organisation_id=organisation.id, user_id=owner.id, role=OrganisationRole.OWNER))
        for user, role in (members or {}).items():
            db.add(OrganisationMember(organisation_id=organisation.id, user_id=user.id, role=role))
        db.commit()
        db.refresh(organisation)
        return organisation
    return _make_organisation


@pytest.fixture
def past():
    return utcnow() - timedelta(days=1)


@pytest.fixture
def future():
    return utcnow() + timedelta(days=1)
