"""Rebuilding editable state from stored finals rows."""
import pytest
from sqlmodel import Session

from ladder.services.bracket_addressing import MatchPair
from ladder.services.bracket_loader import (
    BracketNotFoundError,
    infer_series_mode,
    load_bracket_state,
    reconstruct_match,
)
from ladder.services.match_result_store import MatchResultRow, MatchResultStore, StoredMatch
from ladder.services.reason_codec import BaseReason, EncodedReason, encode_reason
from ladder.services.result_service import ResultCommand, record_result
from ladder.services.slot_service import assign_slot, create_bracket


def _stored(winner="alice", loser="bob", ws=2, ls=0, reason="normal"):
    return StoredMatch(
        id=1,
        bracket_id=1,
        round_no=1,
        match_no=1,
        winner_id=winner,
        loser_id=loser,
        winner_score=ws,
        loser_score=ls,
        reason=reason,
    )


@pytest.mark.parametrize(
    "ws,ls,mode",
    [(2, 0, "2-0"), (0, 2, "2-0"), (2, 1, "2-1"), (1, 2, "2-1"), (15, 0, None), (None, None, None), (1, 1, None)],
)
def test_infer_series_mode(ws, ls, mode):
    assert infer_series_mode(ws, ls) == mode


def test_reconstruct_advantage_loser_wins_is_two_one():
    """Stored (2,1) with advantage=alice and winner=bob comes back as 2-1, not 2-0."""
    reason = encode_reason(EncodedReason(BaseReason.NORMAL, "alice"))
    state = reconstruct_match(1, 1, MatchPair("alice", "bob"), _stored(winner="bob", loser="alice", ls=1, reason=reason))
    assert state.inferred_mode == "2-1"
    assert state.mode == "2-1"
    assert state.advantage_holder == "alice"
    assert [g.winner_id for g in state.series.games] == ["alice", "bob", "bob"]
    assert state.inconsistent is False


def test_reconstruct_flags_score_contradicting_advantage():
    """Stored (2,0) although the advantage holder lost: the rules only allow 2-1."""
    reason = encode_reason(EncodedReason(BaseReason.NORMAL, "alice"))
    state = reconstruct_match(1, 1, MatchPair("alice", "bob"), _stored(winner="bob", loser="alice", ls=0, reason=reason))
    assert state.inferred_mode == "2-0"
    assert state.series.mode == "2-1"
    assert state.inconsistent is True
    assert state.stale is False


def test_reconstruct_drops_stale_advantage():
    reason = encode_reason(EncodedReason(BaseReason.TIME_LIMIT, "zed"))
    state = reconstruct_match(1, 1, MatchPair("alice", "bob"), _stored(reason=reason))
    assert state.advantage_holder is None
    assert state.base_reason is BaseReason.TIME_LIMIT
    assert state.series.games[0].note == ""


def test_reconstruct_legacy_score_keeps_default_mode():
    state = reconstruct_match(1, 1, MatchPair("alice", "bob"), _stored(ws=15, ls=3))
    assert state.inferred_mode is None
    assert state.mode == "2-0"
    assert state.is_complete


def test_reconstruct_marks_result_of_reseeded_pair_stale():
    state = reconstruct_match(1, 1, MatchPair("alice", "carol"), _stored())
    assert state.stale
    assert state.series is None


def test_reconstruct_without_row():
    state = reconstruct_match(1, 2, MatchPair("carol", None), None)
    assert not state.is_complete
    assert state.mode == "2-0"
    assert state.series is None


def test_load_bracket_state_shape(session: Session, seeded_bracket):
    state = load_bracket_state(session, seeded_bracket.id)

    assert state.size == 4
    assert [r.label for r in state.rounds] == ["R1", "R2"]
    assert [len(r.matches) for r in state.rounds] == [2, 1]
    assert state.match(1, 2).pair == MatchPair("carol", "dave")
    assert state.match(2, 1).pair == MatchPair(None, None)


def test_load_bracket_state_round_trips_recorded_results(session: Session, seeded_bracket):
    record_result(
        session,
        ResultCommand(seeded_bracket.id, 1, 1, winner_id="bob", advantage_holder="alice", mode="2-0"),
    )
    record_result(
        session,
        ResultCommand(seeded_bracket.id, 1, 2, winner_id="carol", base_reason=BaseReason.FORFEIT, mode="2-1"),
    )

    state = load_bracket_state(session, seeded_bracket.id)

    first = state.match(1, 1)
    assert first.advantage_holder == "alice"
    assert first.mode == "2-1"
    assert (first.stored.winner_score, first.stored.loser_score) == (2, 1)

    second = state.match(1, 2)
    assert second.base_reason is BaseReason.FORFEIT
    assert second.reason_label == "Forfeit"
    assert second.mode == "2-1"
    assert [g.winner_id for g in second.series.games] == ["carol", "dave", "carol"]


def test_load_surfaces_rows_outside_current_size(session: Session):
    bracket = create_bracket(session, "tour-2")
    assign_slot(session, bracket.id, 1, 1, "alice")
    assign_slot(session, bracket.id, 1, 2, "bob")
    MatchResultStore(session).upsert(
        MatchResultRow(bracket.id, 3, 1, "x", "y", 2, 0, "normal")
    )

    state = load_bracket_state(session, bracket.id)

    assert state.size == 2
    assert state.match(3, 1) is not None
    assert state.match(3, 1).stale


def test_load_reads_legacy_reason_column(legacy_session: Session):
    bracket = create_bracket(legacy_session, "tour-legacy")
    for slot_no, player in enumerate(["alice", "bob"], start=1):
        assign_slot(legacy_session, bracket.id, 1, slot_no, player)
    record_result(legacy_session, ResultCommand(bracket.id, 1, 1, winner_id="alice", advantage_holder="bob"))

    state = load_bracket_state(legacy_session, bracket.id)

    match = state.match(1, 1)
    assert match.stored.reason_column == "finish_reason"
    assert match.advantage_holder == "bob"
    assert (match.stored.winner_score, match.stored.loser_score) == (2, 1)


def test_load_unknown_bracket(session: Session):
    with pytest.raises(BracketNotFoundError):
        load_bracket_state(session, 9999)
