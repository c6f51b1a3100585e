"""
Pytest configuration and fixtures.

Provides:
- an in-memory SQLite engine/session per test (foreign keys on)
- a seeded choir: Soprano/Alto/Tenor/Bass, Soprano split into 1st/2nd
- a FastAPI TestClient wired to the same engine
"""

import os
from datetime import timedelta

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

# Set test environment variables before importing app modules
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STRICT_TARGETING"] = "false"
os.environ["FREEZE_RESPONSES_AFTER_MARKING"] = "true"

from choirhub.database import enable_sqlite_foreign_keys, get_db, init_db  # noqa: E402
from choirhub.models import Choir, Member, MembershipType, VoiceGroup, VoiceType  # noqa: E402
from choirhub.models.choir import utcnow  # noqa: E402


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite engine shared by the session and the test client."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    enable_sqlite_foreign_keys(engine)

    init_db(bind=engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session(engine):
    with Session(engine) as session:
        yield session


# ============================================================================
# Sample Data
# ============================================================================

@pytest.fixture
def choir(session):
    """
    Choir "c1":
      groups  g1 Soprano, g2 Alto, g3 Tenor, g4 Bass
      types   sop1, sop2 under g1; alt1 under g2
      membership types: mt_active (counts), mt_passive (inactive membership)
      members A (g1, -), B (g1, sop1), C (g3, -), all mt_active
    """
    session.add(Choir(id="c1", name="Test Choir"))
    session.add(MembershipType(id="mt_active", choir_id="c1", name="active", display_name="Active"))
    session.add(
        MembershipType(
            id="mt_passive",
            choir_id="c1",
            name="passive",
            display_name="Passive",
            is_active_membership=False,
        )
    )
    session.flush()

    for i, (gid, name) in enumerate([("g1", "Soprano"), ("g2", "Alto"), ("g3", "Tenor"), ("g4", "Bass")]):
        session.add(VoiceGroup(id=gid, choir_id="c1", value=name.lower(), display_name=name, sort_order=i))
    session.flush()

    session.add(VoiceType(id="sop1", choir_id="c1", voice_group_id="g1", value="sop1", display_name="1st Soprano", sort_order=0))
    session.add(VoiceType(id="sop2", choir_id="c1", voice_group_id="g1", value="sop2", display_name="2nd Soprano", sort_order=1))
    session.add(VoiceType(id="alt1", choir_id="c1", voice_group_id="g2", value="alt1", display_name="1st Alto"))
    session.flush()

    session.add(Member(id="A", choir_id="c1", name="Anna", membership_type_id="mt_active", voice_group_id="g1"))
    session.add(
        Member(
            id="B",
            choir_id="c1",
            name="Berit",
            membership_type_id="mt_active",
            voice_group_id="g1",
            voice_type_id="sop1",
        )
    )
    session.add(Member(id="C", choir_id="c1", name="Carl", membership_type_id="mt_active", voice_group_id="g3"))
    session.commit()

    return session.get(Choir, "c1")


@pytest.fixture
def passive_member(session, choir):
    """Soprano whose membership type is not an active membership."""
    member = Member(id="P", choir_id="c1", name="Pia", membership_type_id="mt_passive", voice_group_id="g1")
    session.add(member)
    session.commit()
    return member


@pytest.fixture
def next_week():
    return utcnow() + timedelta(days=7)


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def client(engine):
    from fastapi.testclient import TestClient

    from choirhub.main import app

    def _override_get_db():
        with Session(engine) as db:
            yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
