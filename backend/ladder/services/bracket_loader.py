"""
Rebuild editable finals state from persisted rows.

For every match of every round: resolve the current pair from the round
entries, decode the stored reason, drop an advantage holder that is no longer
one of the two contestants, infer the 2-0 / 2-1 mode from the stored scores,
and re-run the series engine so the game breakdown matches what was saved.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sqlmodel import Session, select

from ladder.models.final_bracket import FinalBracket
from ladder.models.final_round_entry import FinalRoundEntry
from ladder.services.bracket_addressing import (
    MatchPair,
    finals_size,
    match_count_for_round,
    pair_for,
    round_count,
    round_label,
)
from ladder.services.match_result_store import MatchResultStore, StoredMatch
from ladder.services.reason_codec import BaseReason, decode_reason, reason_label
from ladder.services.series_engine import (
    DEFAULT_MODE,
    MODE_2_0,
    MODE_2_1,
    SeriesInput,
    SeriesResult,
    reconcile_series,
    resolve_advantage,
)

logger = logging.getLogger(__name__)


class BracketNotFoundError(LookupError):
    pass


@dataclass
class MatchState:
    round_no: int
    match_no: int
    pair: MatchPair
    stored: Optional[StoredMatch] = None
    base_reason: BaseReason = BaseReason.NORMAL
    reason_label: str = "Normal"
    advantage_holder: Optional[str] = None
    inferred_mode: Optional[str] = None
    mode: str = DEFAULT_MODE
    stale: bool = False
    # Stored scores disagree with what the rules allow for this pair and advantage
    inconsistent: bool = False
    series: Optional[SeriesResult] = None

    @property
    def is_complete(self) -> bool:
        return self.stored is not None and self.stored.is_complete


@dataclass
class RoundState:
    round_no: int
    label: str
    matches: List[MatchState] = field(default_factory=list)


@dataclass
class BracketState:
    bracket: FinalBracket
    size: int
    rounds: List[RoundState] = field(default_factory=list)

    def match(self, round_no: int, match_no: int) -> Optional[MatchState]:
        for rnd in self.rounds:
            if rnd.round_no != round_no:
                continue
            for m in rnd.matches:
                if m.match_no == match_no:
                    return m
        return None


def infer_series_mode(winner_score: Optional[int], loser_score: Optional[int]) -> Optional[str]:
    """Mode implied by a stored aggregate; None for anything that is not a best-of-three result."""
    pair = (winner_score, loser_score)
    if pair in ((2, 0), (0, 2)):
        return MODE_2_0
    if pair in ((2, 1), (1, 2)):
        return MODE_2_1
    return None


def reconstruct_match(round_no: int, match_no: int, pair: MatchPair, stored: Optional[StoredMatch]) -> MatchState:
    state = MatchState(round_no=round_no, match_no=match_no, pair=pair, stored=stored)
    if stored is None:
        return state

    decoded = decode_reason(stored.reason)
    state.base_reason = decoded.base
    state.reason_label = reason_label(stored.reason)
    state.advantage_holder = resolve_advantage(pair.player_a, pair.player_b, decoded.advantage_holder)
    if decoded.advantage_holder and state.advantage_holder is None:
        logger.debug(
            "Dropping stale advantage holder %s for R%s-%s (pair %s / %s)",
            decoded.advantage_holder,
            round_no,
            match_no,
            pair.player_a,
            pair.player_b,
        )

    state.inferred_mode = infer_series_mode(stored.winner_score, stored.loser_score)
    state.mode = state.inferred_mode or DEFAULT_MODE

    if not stored.is_complete:
        return state

    if not pair.is_playable or {stored.winner_id, stored.loser_id} != {pair.player_a, pair.player_b}:
        state.stale = True
        return state

    state.series = reconcile_series(
        SeriesInput(
            player_a=pair.player_a,
            player_b=pair.player_b,
            winner_id=stored.winner_id,
            advantage_holder=state.advantage_holder,
            mode=state.mode,
        )
    )
    if state.inferred_mode is not None and state.series.mode != state.inferred_mode:
        state.inconsistent = True
        logger.warning(
            "Stored score %s-%s for R%s-%s contradicts the advantage rules (re-derived %s)",
            stored.winner_score,
            stored.loser_score,
            round_no,
            match_no,
            state.series.mode,
        )
    return state


def load_bracket_state(session: Session, bracket_id: int) -> BracketState:
    bracket = session.get(FinalBracket, bracket_id)
    if not bracket:
        raise BracketNotFoundError(f"Final bracket {bracket_id} not found")

    entries = session.exec(select(FinalRoundEntry).where(FinalRoundEntry.bracket_id == bracket_id)).all()
    stored_rows = MatchResultStore(session).fetch_matches(bracket_id)
    by_key: Dict[Tuple[int, int], StoredMatch] = {(m.round_no, m.match_no): m for m in stored_rows}

    size = finals_size(entries)
    keys = set()
    for round_no in range(1, round_count(size) + 1):
        for match_no in range(1, match_count_for_round(size, round_no) + 1):
            keys.add((round_no, match_no))
    # Rows outside the current bracket size still surface so nothing stored is hidden
    keys.update(by_key.keys())

    rounds: Dict[int, RoundState] = {}
    for round_no, match_no in sorted(keys):
        rnd = rounds.setdefault(round_no, RoundState(round_no=round_no, label=round_label(round_no)))
        pair = pair_for(entries, round_no, match_no)
        rnd.matches.append(reconstruct_match(round_no, match_no, pair, by_key.get((round_no, match_no))))

    return BracketState(bracket=bracket, size=size, rounds=[rounds[r] for r in sorted(rounds)])
