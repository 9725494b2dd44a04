"""
Bracket creation and slot seeding.

Changing who sits in a slot invalidates every recorded result of that round
and all later rounds; stored advantage holders that no longer match are
dropped when the bracket is next loaded.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlmodel import Session, select

from ladder.models.final_bracket import FinalBracket
from ladder.models.final_round_entry import FinalRoundEntry
from ladder.services.bracket_loader import BracketNotFoundError
from ladder.services.match_result_store import MatchResultStore
from ladder.services.reason_codec import ADV_SEPARATOR

logger = logging.getLogger(__name__)


def create_bracket(session: Session, tournament_id: str, title: Optional[str] = None) -> FinalBracket:
    bracket = FinalBracket(tournament_id=tournament_id, title=title)
    session.add(bracket)
    session.commit()
    session.refresh(bracket)
    logger.info("Created final bracket %s for tournament %s", bracket.id, tournament_id)
    return bracket


def rename_bracket(session: Session, bracket_id: int, title: Optional[str]) -> FinalBracket:
    bracket = session.get(FinalBracket, bracket_id)
    if not bracket:
        raise BracketNotFoundError(f"Final bracket {bracket_id} not found")
    bracket.title = title
    session.add(bracket)
    session.commit()
    session.refresh(bracket)
    return bracket


def latest_bracket(session: Session, tournament_id: str) -> Optional[FinalBracket]:
    return session.exec(
        select(FinalBracket)
        .where(FinalBracket.tournament_id == tournament_id)
        .order_by(FinalBracket.created_at.desc(), FinalBracket.id.desc())
    ).first()


def assign_slot(
    session: Session,
    bracket_id: int,
    round_no: int,
    slot_no: int,
    player_id: Optional[str],
    store: Optional[MatchResultStore] = None,
) -> int:
    """Set (or clear) the player in a slot. Returns the number of match results invalidated."""
    if round_no < 1 or slot_no < 1:
        raise ValueError("round_no and slot_no must be >= 1")
    if session.get(FinalBracket, bracket_id) is None:
        raise BracketNotFoundError(f"Final bracket {bracket_id} not found")

    player_id = (player_id or "").strip() or None
    if player_id and ADV_SEPARATOR in player_id:
        # Ids are embedded in the encoded finish reason, which reserves the separator
        raise ValueError(f"player_id may not contain '{ADV_SEPARATOR}': {player_id!r}")
    entry = session.exec(
        select(FinalRoundEntry).where(
            FinalRoundEntry.bracket_id == bracket_id,
            FinalRoundEntry.round_no == round_no,
            FinalRoundEntry.slot_no == slot_no,
        )
    ).first()

    if entry is not None and entry.player_id == player_id:
        return 0
    if entry is None:
        entry = FinalRoundEntry(bracket_id=bracket_id, round_no=round_no, slot_no=slot_no)
    entry.player_id = player_id
    session.add(entry)
    # Commit before clearing: a drift retry in the store rolls back the session
    session.commit()

    store = store or MatchResultStore(session)
    cleared = store.clear_results(bracket_id, from_round=round_no)
    logger.info(
        "Slot R%s-%s of bracket %s set to %s; %s result(s) invalidated",
        round_no,
        slot_no,
        bracket_id,
        player_id,
        cleared,
    )
    return cleared
