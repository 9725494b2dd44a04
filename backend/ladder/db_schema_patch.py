from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Result columns we must ensure exist in the "final_matches" table.
# (name, sqlite_type, postgres_type)
# The reason column is deliberately absent: deployments name it end_reason or
# finish_reason and MatchResultStore copes with either.
REQUIRED_FINAL_MATCH_COLUMNS: List[Tuple[str, str, str]] = [
    ("winner_id", "TEXT", "TEXT"),
    ("loser_id", "TEXT", "TEXT"),
    ("winner_score", "INTEGER", "INTEGER"),
    ("loser_score", "INTEGER", "INTEGER"),
]

REASON_COLUMN_CANDIDATES: Tuple[str, ...] = ("end_reason", "finish_reason")


def _is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name.lower() == "sqlite"


def _get_existing_columns_sqlite(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    with engine.connect() as conn:
        res = conn.execute(text(f"PRAGMA table_info({table_name});")).fetchall()
        # PRAGMA table_info returns rows: (cid, name, type, notnull, dflt_value, pk)
        for row in res:
            cols[str(row[1])] = str(row[2])
    return cols


def _get_existing_columns_postgres(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    sql = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = :table_name;
    """
    with engine.connect() as conn:
        res = conn.execute(text(sql), {"table_name": table_name}).fetchall()
        for row in res:
            cols[str(row[0])] = str(row[1])
    return cols


def _table_exists(engine: Engine, table_name: str) -> bool:
    with engine.connect() as conn:
        if _is_sqlite(engine):
            result = conn.execute(
                text("SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name"),
                {"table_name": table_name},
            ).fetchone()
            return bool(result)
        result = conn.execute(
            text("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public' AND table_name = :table_name
            )
        """),
            {"table_name": table_name},
        ).fetchone()
        return bool(result and result[0])


def get_existing_columns(engine: Engine, table_name: str) -> Dict[str, str]:
    """Column name -> declared type for a table ({} if the table is missing)."""
    if not _table_exists(engine, table_name):
        return {}
    if _is_sqlite(engine):
        return _get_existing_columns_sqlite(engine, table_name)
    return _get_existing_columns_postgres(engine, table_name)


def detect_reason_columns(engine: Engine) -> List[str]:
    """Which of the known reason column names the final_matches table actually has."""
    from ladder.models.final_match import FinalMatch

    existing = get_existing_columns(engine, FinalMatch.__table__.name)
    return [name for name in REASON_COLUMN_CANDIDATES if name in existing]


def ensure_final_match_columns(engine: Engine) -> None:
    """
    Idempotently adds required result columns to the 'final_matches' table if missing.
    Safe to run at every startup.
    """
    try:
        from ladder.models.final_match import FinalMatch

        table = FinalMatch.__table__.name

        if not _table_exists(engine, table):
            # Table doesn't exist yet, skip (create_all should create it)
            return

        if _is_sqlite(engine):
            existing = _get_existing_columns_sqlite(engine, table)
            with engine.begin() as conn:
                for name, sqlite_type, _pg_type in REQUIRED_FINAL_MATCH_COLUMNS:
                    if name in existing:
                        continue
                    # SQLite supports ADD COLUMN without IF NOT EXISTS
                    conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {sqlite_type};"))
                    logger.info(f"Added missing column {table}.{name}")
        else:
            existing = _get_existing_columns_postgres(engine, table)
            with engine.begin() as conn:
                for name, _sqlite_type, pg_type in REQUIRED_FINAL_MATCH_COLUMNS:
                    if name in existing:
                        continue
                    # Postgres supports IF NOT EXISTS
                    conn.execute(text(f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {name} {pg_type};"))
                    logger.info(f"Added missing column {table}.{name}")
    except Exception as e:
        # Log error but don't crash the server
        logger.warning(f"Failed to ensure final_matches columns (this is OK if table doesn't exist yet): {e}")
