import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Keep app startup (init_db, schema patch) off the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from ladder.database import get_session  # noqa: E402
from ladder.main import app  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models MUST be imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables are dropped after every test so brackets never leak between tests
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on the standard schema (reason column: end_reason)"""
    # Import all models to ensure they're registered BEFORE create_all
    from ladder.models.final_bracket import FinalBracket  # noqa: F401
    from ladder.models.final_match import FinalMatch  # noqa: F401
    from ladder.models.final_round_entry import FinalRoundEntry  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place
    for the entire duration. This ensures the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def make_legacy_engine(reason_column):
    """In-memory database whose final_matches table predates end_reason.

    ``reason_column`` is the reason column to create (e.g. "finish_reason"),
    or None for a table with no reason column at all.
    """
    from ladder.models.final_bracket import FinalBracket
    from ladder.models.final_round_entry import FinalRoundEntry

    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    FinalBracket.__table__.create(engine)
    FinalRoundEntry.__table__.create(engine)
    reason_ddl = f", {reason_column} TEXT" if reason_column else ""
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE final_matches ("
                "id INTEGER PRIMARY KEY, "
                "bracket_id INTEGER NOT NULL, "
                "round_no INTEGER NOT NULL, "
                "match_no INTEGER NOT NULL, "
                "winner_id TEXT, "
                "loser_id TEXT, "
                "winner_score INTEGER, "
                "loser_score INTEGER"
                f"{reason_ddl}, "
                "created_at DATETIME, "
                "UNIQUE (bracket_id, round_no, match_no))"
            )
        )
    return engine


@pytest.fixture(name="legacy_session")
def legacy_session_fixture():
    """Session on a database whose reason column is finish_reason"""
    engine = make_legacy_engine("finish_reason")
    with Session(engine) as session:
        yield session
    engine.dispose()


@pytest.fixture(name="seeded_bracket")
def seeded_bracket_fixture(session: Session):
    """Four-player bracket: R1-1 alice vs bob, R1-2 carol vs dave."""
    from ladder.services.slot_service import assign_slot, create_bracket

    bracket = create_bracket(session, "tour-1", "Spring Finals")
    for slot_no, player in enumerate(["alice", "bob", "carol", "dave"], start=1):
        assign_slot(session, bracket.id, 1, slot_no, player)
    return bracket
