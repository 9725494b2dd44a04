"""Startup schema checks for final_matches."""
from sqlalchemy import text
from sqlmodel import Session

from ladder.db_schema_patch import detect_reason_columns, ensure_final_match_columns, get_existing_columns
from tests.conftest import make_legacy_engine, test_engine


def test_detects_standard_reason_column(session: Session):
    assert detect_reason_columns(test_engine) == ["end_reason"]


def test_detects_legacy_reason_column():
    engine = make_legacy_engine("finish_reason")
    assert detect_reason_columns(engine) == ["finish_reason"]
    engine.dispose()


def test_no_reason_column():
    engine = make_legacy_engine(None)
    assert detect_reason_columns(engine) == []
    engine.dispose()


def test_missing_table_reports_nothing():
    engine = make_legacy_engine(None)
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE final_matches"))
    assert get_existing_columns(engine, "final_matches") == {}
    assert detect_reason_columns(engine) == []
    ensure_final_match_columns(engine)  # no table: nothing to patch
    engine.dispose()


def test_adds_missing_result_columns():
    engine = make_legacy_engine("end_reason")
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE final_matches"))
        conn.execute(
            text(
                "CREATE TABLE final_matches ("
                "id INTEGER PRIMARY KEY, bracket_id INTEGER NOT NULL, "
                "round_no INTEGER NOT NULL, match_no INTEGER NOT NULL, "
                "winner_id TEXT, end_reason TEXT, created_at DATETIME)"
            )
        )

    ensure_final_match_columns(engine)
    ensure_final_match_columns(engine)  # idempotent

    columns = get_existing_columns(engine, "final_matches")
    for name in ("winner_id", "loser_id", "winner_score", "loser_score"):
        assert name in columns
    engine.dispose()
