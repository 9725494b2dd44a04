"""
Finals result entry: validate the administrator's choice against the current
pair, reconcile the series, encode the reason and persist the row.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from sqlmodel import Session, select

from ladder.models.final_bracket import FinalBracket
from ladder.models.final_round_entry import FinalRoundEntry
from ladder.services.bracket_addressing import MatchPair, pair_for
from ladder.services.bracket_loader import BracketNotFoundError
from ladder.services.match_result_store import MatchResultRow, MatchResultStore
from ladder.services.reason_codec import ADV_SEPARATOR, BaseReason, EncodedReason, encode_reason
from ladder.services.series_engine import (
    DEFAULT_MODE,
    GameTally,
    InvalidResultError,
    SeriesInput,
    SeriesResult,
    reconcile_series,
    resolve_advantage,
    tally_observed_games,
)

logger = logging.getLogger(__name__)

GameScore = Tuple[Optional[int], Optional[int]]


@dataclass(frozen=True)
class ResultCommand:
    bracket_id: int
    round_no: int
    match_no: int
    winner_id: str
    base_reason: BaseReason = BaseReason.NORMAL
    advantage_holder: Optional[str] = None
    mode: str = DEFAULT_MODE
    # Optional per-game (score_a, score_b), oriented to the pair; display only, never stored
    game_scores: Tuple[Optional[GameScore], ...] = ()


@dataclass(frozen=True)
class RecordedResult:
    match_id: Optional[int]
    pair: MatchPair
    series: SeriesResult
    reason: str
    advantage_holder: Optional[str]
    tally: GameTally = GameTally()
    suggested_winner: Optional[str] = None


def current_pair(session: Session, bracket_id: int, round_no: int, match_no: int) -> MatchPair:
    if session.get(FinalBracket, bracket_id) is None:
        raise BracketNotFoundError(f"Final bracket {bracket_id} not found")
    if round_no < 1 or match_no < 1:
        raise InvalidResultError("round_no and match_no must be >= 1")
    entries = session.exec(
        select(FinalRoundEntry).where(
            FinalRoundEntry.bracket_id == bracket_id,
            FinalRoundEntry.round_no == round_no,
        )
    ).all()
    return pair_for(entries, round_no, match_no)


def preview_result(session: Session, command: ResultCommand) -> RecordedResult:
    """Compute what record_result would store, without writing anything."""
    pair = current_pair(session, command.bracket_id, command.round_no, command.match_no)
    if not pair.is_playable:
        raise InvalidResultError(
            f"R{command.round_no}-{command.match_no} does not have two contestants assigned"
        )

    holder = resolve_advantage(pair.player_a, pair.player_b, command.advantage_holder)
    if command.advantage_holder and holder is None:
        logger.debug("Ignoring advantage holder %s: not a contestant of this match", command.advantage_holder)
    if holder and ADV_SEPARATOR in holder:
        raise InvalidResultError(f"Advantage holder id {holder!r} cannot be stored (contains '{ADV_SEPARATOR}')")

    series = reconcile_series(
        SeriesInput(
            player_a=pair.player_a,
            player_b=pair.player_b,
            winner_id=command.winner_id,
            advantage_holder=holder,
            mode=command.mode,
        )
    )
    reason = encode_reason(EncodedReason(base=command.base_reason, advantage_holder=holder))
    tally = tally_observed_games(pair.player_a, pair.player_b, command.game_scores, holder)
    return RecordedResult(
        match_id=None,
        pair=pair,
        series=series,
        reason=reason,
        advantage_holder=holder,
        tally=tally,
        suggested_winner=tally.leader(pair.player_a, pair.player_b),
    )


def record_result(session: Session, command: ResultCommand, store: Optional[MatchResultStore] = None) -> RecordedResult:
    preview = preview_result(session, command)
    store = store or MatchResultStore(session)
    match_id = store.upsert(
        MatchResultRow(
            bracket_id=command.bracket_id,
            round_no=command.round_no,
            match_no=command.match_no,
            winner_id=preview.series.winner_id,
            loser_id=preview.series.loser_id,
            winner_score=preview.series.winner_score,
            loser_score=preview.series.loser_score,
            reason=preview.reason,
        )
    )
    return replace(preview, match_id=match_id)
