#!/usr/bin/env python3
"""Operator check: are the finals tables migrated, and which reason column does final_matches use?

Usage: python check_migrations.py   (reads DATABASE_URL like the app does)
Exit code 0 when the schema is usable, 1 otherwise.
"""

import sys

from sqlalchemy import inspect

from ladder.database import engine
from ladder.db_schema_patch import REQUIRED_FINAL_MATCH_COLUMNS, detect_reason_columns
from ladder.services.match_result_store import DEFAULT_REASON_COLUMNS

REQUIRED_TABLES = ("final_brackets", "final_round_entries", "final_matches")


def missing_tables(inspector):
    present = set(inspector.get_table_names())
    return [t for t in REQUIRED_TABLES if t not in present]


def missing_result_columns(inspector):
    present = {c["name"] for c in inspector.get_columns("final_matches")}
    return [name for name, _sqlite, _pg in REQUIRED_FINAL_MATCH_COLUMNS if name not in present]


def check_schema() -> bool:
    inspector = inspect(engine)
    print(f"Database: {engine.url}")

    absent = missing_tables(inspector)
    for table in REQUIRED_TABLES:
        print(f"{'✗' if table in absent else '✓'} {table}")
    if absent:
        print("\nERROR: finals tables missing. Run migrations with: alembic upgrade head")
        return False

    columns = missing_result_columns(inspector)
    if columns:
        # The app patches these at startup; report so operators know why
        print(f"WARNING: final_matches lacks {', '.join(columns)} (added on next app start)")

    reason_columns = detect_reason_columns(engine)
    usable = [c for c in DEFAULT_REASON_COLUMNS if c in reason_columns]
    if not usable:
        print(f"\nERROR: final_matches has none of the reason columns {list(DEFAULT_REASON_COLUMNS)}")
        return False
    print(f"Reason column in use: {usable[0]}")
    if len(usable) > 1:
        print(f"NOTE: {', '.join(usable[1:])} also exists and is ignored for writes")
    return True


if __name__ == "__main__":
    try:
        sys.exit(0 if check_schema() else 1)
    except Exception as e:
        print(f"Error checking schema: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
