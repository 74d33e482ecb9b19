"""
Pytest configuration and fixtures for testing.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.actor import AuthenticatedActor
from app.database.session import Base, get_db
from app.models.admin import Admin, AdminRoleEnum
from app.models.agency import Agency
from app.models.escort import Escort
from app.models.user import User, UserTypeEnum
from common_utils.auth.token_validation import TokenCache
from common_utils.auth.utils import create_access_token
from main import app


# Test database URL - using in-memory SQLite for tests
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def test_db():
    """
    Create a fresh test database for each test function.
    """
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(test_db):
    """
    Create a test client bound to the per-test database.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    TokenCache().clear()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    TokenCache().clear()


# =====================================================================
# USERS AND PROFILES
# =====================================================================

@pytest.fixture(scope="function")
def make_user(test_db):
    """Factory creating a user of the given type together with its profile row."""
    counter = {"n": 0}

    def _make(user_type: UserTypeEnum, first_name: str = None, **fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=f"{user_type.value.lower()}{n}@example.com",
            username=f"{user_type.value.lower()}_{n}",
            first_name=first_name or f"{user_type.value.title()}{n}",
            last_name="Test",
            user_type=user_type,
            **fields,
        )
        test_db.add(user)
        test_db.flush()
        if user_type == UserTypeEnum.ESCORT:
            test_db.add(Escort(user_id=user.id))
        elif user_type == UserTypeEnum.AGENCY:
            test_db.add(Agency(user_id=user.id))
        elif user_type == UserTypeEnum.ADMIN:
            test_db.add(Admin(user_id=user.id, role=AdminRoleEnum.SUPER_ADMIN))
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make


@pytest.fixture(scope="function")
def escort_user(make_user):
    return make_user(UserTypeEnum.ESCORT, first_name="Lena", city="Madrid", country="Spain")


@pytest.fixture(scope="function")
def escort(escort_user):
    return escort_user.escort


@pytest.fixture(scope="function")
def agency_user(make_user):
    return make_user(UserTypeEnum.AGENCY, first_name="Velvet", city="Madrid", country="Spain")


@pytest.fixture(scope="function")
def agency(agency_user):
    return agency_user.agency


@pytest.fixture(scope="function")
def second_agency_user(make_user):
    return make_user(UserTypeEnum.AGENCY, first_name="Orchid", city="Barcelona", country="Spain")


@pytest.fixture(scope="function")
def second_agency(second_agency_user):
    return second_agency_user.agency


@pytest.fixture(scope="function")
def admin_user(make_user):
    return make_user(UserTypeEnum.ADMIN, first_name="Root")


@pytest.fixture(scope="function")
def client_user(make_user):
    return make_user(UserTypeEnum.CLIENT, first_name="Carlos")


# =====================================================================
# ACTORS AND TOKENS
# =====================================================================

def actor_for(user: User) -> AuthenticatedActor:
    return AuthenticatedActor.from_user(user)


def bearer(user: User) -> str:
    token = create_access_token(user_id=user.id, user_type=user.user_type.value)
    return f"Bearer {token}"


@pytest.fixture(scope="function")
def token_for():
    """Mint a bearer header for any user."""
    return bearer


@pytest.fixture(scope="function")
def actor_of():
    return actor_for


@pytest.fixture(scope="function")
def escort_actor(escort_user):
    return actor_for(escort_user)


@pytest.fixture(scope="function")
def agency_actor(agency_user):
    return actor_for(agency_user)


@pytest.fixture(scope="function")
def second_agency_actor(second_agency_user):
    return actor_for(second_agency_user)


@pytest.fixture(scope="function")
def admin_actor(admin_user):
    return actor_for(admin_user)


@pytest.fixture(scope="function")
def escort_token(escort_user):
    return bearer(escort_user)


@pytest.fixture(scope="function")
def agency_token(agency_user):
    return bearer(agency_user)


@pytest.fixture(scope="function")
def second_agency_token(second_agency_user):
    return bearer(second_agency_user)


@pytest.fixture(scope="function")
def admin_token(admin_user):
    return bearer(admin_user)


@pytest.fixture(scope="function")
def client_token(client_user):
    return bearer(client_user)


# =====================================================================
# MEMBERSHIP STATE
# =====================================================================

@pytest.fixture(scope="function")
def make_active_membership(test_db):
    """Insert an ACTIVE membership directly, keeping the agency counters in step."""
    from app.models.agency_membership import AgencyMembership, MembershipStatusEnum
    from app.utils.time_utils import utc_now

    def _make(escort: Escort, agency: Agency, commission_rate: float = 0.15) -> AgencyMembership:
        membership = AgencyMembership(
            escort_id=escort.id,
            agency_id=agency.id,
            status=MembershipStatusEnum.ACTIVE,
            commission_rate=commission_rate,
            approved_by=agency.user_id,
            approved_at=utc_now(),
        )
        test_db.add(membership)
        agency.total_escorts += 1
        agency.active_escorts += 1
        test_db.commit()
        test_db.refresh(membership)
        return membership

    return _make


@pytest.fixture(scope="function")
def active_membership(make_active_membership, escort, agency):
    return make_active_membership(escort, agency)
