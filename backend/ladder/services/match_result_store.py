"""
Drift-tolerant persistence for finals match results.

Deployed databases expose the encoded reason under one of two column names
(``end_reason`` or ``finish_reason``). Each write is tried against the column
variants in order; only a "that column does not exist" failure moves on to the
next variant. Every other storage error propagates unchanged.

Lookup and write are not wrapped in one transaction: two editors saving the
same match concurrently resolve as last write wins (or an IntegrityError from
the unique key on a duplicate insert).
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import sqlalchemy as sa
from sqlalchemy.exc import DBAPIError
from sqlmodel import Session

from ladder.models.final_match import FinalMatch

logger = logging.getLogger(__name__)

MISSING_COLUMN_SQLSTATE = "42703"

DEFAULT_REASON_COLUMNS: Tuple[str, ...] = tuple(
    c.strip() for c in os.getenv("FINAL_MATCH_REASON_COLUMNS", "end_reason,finish_reason").split(",") if c.strip()
)

_KEY_COLUMNS = ("bracket_id", "round_no", "match_no")
_RESULT_COLUMNS = ("winner_id", "loser_id", "winner_score", "loser_score")


class AttemptStatus(str, Enum):
    OK = "ok"
    COLUMN_MISSING = "column_missing"
    FATAL = "fatal"


@dataclass
class AttemptOutcome:
    status: AttemptStatus
    column: Optional[str]
    value: Any = None
    error: Optional[BaseException] = None


class ReasonColumnUnavailableError(RuntimeError):
    """None of the configured reason column names exist on the table."""


@dataclass(frozen=True)
class MatchResultRow:
    bracket_id: int
    round_no: int
    match_no: int
    winner_id: Optional[str]
    loser_id: Optional[str]
    winner_score: Optional[int]
    loser_score: Optional[int]
    reason: str = "normal"

    def result_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in _RESULT_COLUMNS}

    def key_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in _KEY_COLUMNS}


@dataclass(frozen=True)
class StoredMatch:
    id: int
    bracket_id: int
    round_no: int
    match_no: int
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    winner_score: Optional[int] = None
    loser_score: Optional[int] = None
    reason: str = "normal"
    reason_column: Optional[str] = None  # Column the reason was read from (None = absent)

    @property
    def is_complete(self) -> bool:
        return bool(self.winner_id) and bool(self.loser_id)


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    for attr in ("pgcode", "sqlstate"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    return None


def is_missing_column_error(exc: DBAPIError, column: str) -> bool:
    """True if ``exc`` means exactly that ``column`` does not exist."""
    message = str(getattr(exc, "orig", None) or exc).lower()
    col = column.lower()
    code = _sqlstate(exc)
    if code is not None:
        return code == MISSING_COLUMN_SQLSTATE and col in message
    # SQLite carries no SQLSTATE; its messages for this case are fixed.
    # SELECTs name the column with its table ("no such column: final_matches.end_reason")
    col_re = re.escape(col)
    return bool(
        re.search(rf"no such column: (?:\w+\.)?{col_re}\b", message)
        or re.search(rf"has no column named {col_re}\b", message)
    )


def _table(*columns: str) -> sa.TableClause:
    return sa.table(
        FinalMatch.__tablename__,
        *(sa.column(c, sa.DateTime(timezone=True)) if c == "created_at" else sa.column(c) for c in columns),
    )


class MatchResultStore:
    def __init__(self, session: Session, reason_columns: Sequence[str] = DEFAULT_REASON_COLUMNS):
        if not reason_columns:
            raise ValueError("At least one reason column name is required")
        self.session = session
        self.reason_columns = tuple(reason_columns)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def find_id(self, bracket_id: int, round_no: int, match_no: int) -> Optional[int]:
        t = _table("id", *_KEY_COLUMNS)
        stmt = sa.select(t.c.id).where(
            t.c.bracket_id == bracket_id,
            t.c.round_no == round_no,
            t.c.match_no == match_no,
        )
        return self.session.connection().execute(stmt).scalar()

    def upsert(self, row: MatchResultRow) -> int:
        """Insert or update the result for the row's (bracket, round, match) key. Returns the match id."""
        match_id = self.find_id(row.bracket_id, row.round_no, row.match_no)

        def write(column: str) -> AttemptOutcome:
            if match_id is not None:
                return self._attempt_update(match_id, row, column)
            return self._attempt_insert(row, column)

        outcome = self._run_attempts(write)
        self.session.commit()
        logger.info(
            "Saved final match bracket=%s R%s-%s (id=%s, reason column=%s): %s %s-%s %s",
            row.bracket_id,
            row.round_no,
            row.match_no,
            outcome.value,
            outcome.column,
            row.winner_id,
            row.winner_score,
            row.loser_score,
            row.loser_id,
        )
        return outcome.value

    def clear_results(self, bracket_id: int, from_round: int) -> int:
        """Blank winner/loser/scores for ``from_round`` and every later round. Returns rows touched."""

        def write(column: str) -> AttemptOutcome:
            t = _table("bracket_id", "round_no", *_RESULT_COLUMNS, column)
            stmt = (
                sa.update(t)
                .where(t.c.bracket_id == bracket_id, t.c.round_no >= from_round)
                .values({**{c: None for c in _RESULT_COLUMNS}, column: "normal"})
            )
            return self._attempt(column, lambda conn: conn.execute(stmt).rowcount)

        outcome = self._run_attempts(write)
        self.session.commit()
        if outcome.value:
            logger.info("Cleared %s final match result(s) in bracket %s from R%s", outcome.value, bracket_id, from_round)
        return outcome.value

    def _attempt_update(self, match_id: int, row: MatchResultRow, column: str) -> AttemptOutcome:
        t = _table("id", *_RESULT_COLUMNS, column)
        stmt = sa.update(t).where(t.c.id == match_id).values({**row.result_values(), column: row.reason})

        def run(conn):
            conn.execute(stmt)
            return match_id

        return self._attempt(column, run)

    def _attempt_insert(self, row: MatchResultRow, column: str) -> AttemptOutcome:
        t = _table(*_KEY_COLUMNS, *_RESULT_COLUMNS, column, "created_at")
        stmt = sa.insert(t).values(
            {**row.key_values(), **row.result_values(), column: row.reason, "created_at": datetime.now(timezone.utc)}
        )

        def run(conn):
            conn.execute(stmt)
            return self.find_id(row.bracket_id, row.round_no, row.match_no)

        return self._attempt(column, run)

    def _attempt(self, column: Optional[str], run) -> AttemptOutcome:
        try:
            value = run(self.session.connection())
        except DBAPIError as exc:
            self.session.rollback()
            if column is not None and is_missing_column_error(exc, column):
                return AttemptOutcome(AttemptStatus.COLUMN_MISSING, column, error=exc)
            return AttemptOutcome(AttemptStatus.FATAL, column, error=exc)
        return AttemptOutcome(AttemptStatus.OK, column, value=value)

    def _run_attempts(self, write) -> AttemptOutcome:
        last: Optional[AttemptOutcome] = None
        for column in self.reason_columns:
            last = write(column)
            if last.status is AttemptStatus.OK:
                return last
            if last.status is AttemptStatus.FATAL:
                raise last.error
            logger.warning("Column %s.%s is missing; trying next reason column", FinalMatch.__tablename__, column)
        raise ReasonColumnUnavailableError(
            f"None of the reason columns {list(self.reason_columns)} exist on {FinalMatch.__tablename__}"
        ) from (last.error if last else None)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def fetch_matches(self, bracket_id: int) -> List[StoredMatch]:
        """All stored results for a bracket, ordered by round then match.

        Tries each reason column, then a projection without one; rows read
        without a reason column report ``normal``.
        """
        candidates: List[Optional[str]] = [*self.reason_columns, None]
        for column in candidates:
            extra = (column,) if column else ()
            t = _table("id", *_KEY_COLUMNS, *_RESULT_COLUMNS, *extra)
            stmt = (
                sa.select(*t.c)
                .where(t.c.bracket_id == bracket_id)
                .order_by(t.c.round_no, t.c.match_no)
            )
            outcome = self._attempt(column, lambda conn: conn.execute(stmt).mappings().all())
            if outcome.status is AttemptStatus.OK:
                return [self._to_stored(r, column) for r in outcome.value]
            if outcome.status is AttemptStatus.FATAL:
                raise outcome.error
            logger.warning("Column %s.%s is missing; reading with next projection", FinalMatch.__tablename__, column)
        return []

    @staticmethod
    def _to_stored(r, column: Optional[str]) -> StoredMatch:
        reason = r.get(column) if column else None
        return StoredMatch(
            id=r["id"],
            bracket_id=r["bracket_id"],
            round_no=int(r["round_no"]),
            match_no=int(r["match_no"]),
            winner_id=r["winner_id"],
            loser_id=r["loser_id"],
            winner_score=r["winner_score"],
            loser_score=r["loser_score"],
            reason=str(reason) if reason is not None and str(reason).strip() else "normal",
            reason_column=column,
        )
