"""
Finals bracket admin endpoints: bracket setup, slot seeding, result entry and
the reconstructed bracket view.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from ladder.database import get_session
from ladder.services.bracket_loader import BracketNotFoundError, BracketState, MatchState, load_bracket_state
from ladder.services.reason_codec import BaseReason
from ladder.services.result_service import RecordedResult, ResultCommand, preview_result, record_result
from ladder.services.series_engine import DEFAULT_MODE, InvalidResultError, SeriesResult
from ladder.services.slot_service import assign_slot, create_bracket, latest_bracket, rename_bracket

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Schemas
# ============================================================================


class BracketCreate(BaseModel):
    tournament_id: str
    title: Optional[str] = None


class BracketUpdate(BaseModel):
    title: Optional[str] = None


class BracketRead(BaseModel):
    id: int
    tournament_id: str
    title: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SlotAssignment(BaseModel):
    round_no: int
    slot_no: int
    player_id: Optional[str] = None


class SlotAssignmentResponse(BaseModel):
    round_no: int
    slot_no: int
    player_id: Optional[str] = None
    results_cleared: int = 0


class GameScoreInput(BaseModel):
    score_a: Optional[int] = None
    score_b: Optional[int] = None


class ResultInput(BaseModel):
    winner_id: str
    base_reason: BaseReason = BaseReason.NORMAL
    advantage_holder: Optional[str] = None
    mode: str = DEFAULT_MODE
    # Per-game scores as entered, player_a first; used for the running tally only
    game_scores: List[Optional[GameScoreInput]] = Field(default_factory=list, max_length=3)


class TallyRead(BaseModel):
    wins_a: int
    wins_b: int
    score_text: str
    leader: Optional[str] = None


class GameRead(BaseModel):
    label: str
    winner_id: Optional[str] = None
    note: str = ""


class SeriesRead(BaseModel):
    winner_id: str
    loser_id: str
    winner_score: int
    loser_score: int
    mode: str
    games: List[GameRead]


class ResultResponse(BaseModel):
    match_id: Optional[int] = None
    player_a: Optional[str] = None
    player_b: Optional[str] = None
    advantage_holder: Optional[str] = None
    reason: str
    series: SeriesRead
    tally: TallyRead


class MatchRead(BaseModel):
    round_no: int
    match_no: int
    player_a: Optional[str] = None
    player_b: Optional[str] = None
    is_complete: bool = False
    stale: bool = False
    inconsistent: bool = False
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    winner_score: Optional[int] = None
    loser_score: Optional[int] = None
    base_reason: BaseReason = BaseReason.NORMAL
    reason_label: str = "Normal"
    advantage_holder: Optional[str] = None
    inferred_mode: Optional[str] = None
    mode: str = DEFAULT_MODE
    series: Optional[SeriesRead] = None


class RoundRead(BaseModel):
    round_no: int
    label: str
    matches: List[MatchRead]


class BracketStateRead(BaseModel):
    bracket: BracketRead
    size: int
    rounds: List[RoundRead]


def _series_to_read(series: SeriesResult) -> SeriesRead:
    return SeriesRead(
        winner_id=series.winner_id,
        loser_id=series.loser_id,
        winner_score=series.winner_score,
        loser_score=series.loser_score,
        mode=series.mode,
        games=[GameRead(label=g.label, winner_id=g.winner_id, note=g.note) for g in series.games],
    )


def _match_to_read(m: MatchState) -> MatchRead:
    stored = m.stored
    return MatchRead(
        round_no=m.round_no,
        match_no=m.match_no,
        player_a=m.pair.player_a,
        player_b=m.pair.player_b,
        is_complete=m.is_complete,
        stale=m.stale,
        inconsistent=m.inconsistent,
        winner_id=stored.winner_id if stored else None,
        loser_id=stored.loser_id if stored else None,
        winner_score=stored.winner_score if stored else None,
        loser_score=stored.loser_score if stored else None,
        base_reason=m.base_reason,
        reason_label=m.reason_label,
        advantage_holder=m.advantage_holder,
        inferred_mode=m.inferred_mode,
        mode=m.mode,
        series=_series_to_read(m.series) if m.series else None,
    )


def _state_to_read(state: BracketState) -> BracketStateRead:
    return BracketStateRead(
        bracket=BracketRead.model_validate(state.bracket),
        size=state.size,
        rounds=[
            RoundRead(round_no=r.round_no, label=r.label, matches=[_match_to_read(m) for m in r.matches])
            for r in state.rounds
        ],
    )


def _result_to_response(result: RecordedResult) -> ResultResponse:
    return ResultResponse(
        match_id=result.match_id,
        player_a=result.pair.player_a,
        player_b=result.pair.player_b,
        advantage_holder=result.advantage_holder,
        reason=result.reason,
        series=_series_to_read(result.series),
        tally=TallyRead(
            wins_a=result.tally.wins_a,
            wins_b=result.tally.wins_b,
            score_text=result.tally.score_text,
            leader=result.suggested_winner,
        ),
    )


# ============================================================================
# Brackets
# ============================================================================


@router.post("/finals/brackets", response_model=BracketRead, status_code=201)
def create_final_bracket(payload: BracketCreate, session: Session = Depends(get_session)) -> BracketRead:
    tournament_id = payload.tournament_id.strip()
    if not tournament_id:
        raise HTTPException(status_code=422, detail="tournament_id is required")
    bracket = create_bracket(session, tournament_id, payload.title)
    return BracketRead.model_validate(bracket)


@router.patch("/finals/brackets/{bracket_id}", response_model=BracketRead)
def update_final_bracket(
    bracket_id: int, payload: BracketUpdate, session: Session = Depends(get_session)
) -> BracketRead:
    try:
        bracket = rename_bracket(session, bracket_id, payload.title)
    except BracketNotFoundError:
        raise HTTPException(status_code=404, detail="Final bracket not found")
    return BracketRead.model_validate(bracket)


@router.get("/tournaments/{tournament_id}/finals/bracket", response_model=BracketRead)
def get_latest_bracket(tournament_id: str, session: Session = Depends(get_session)) -> BracketRead:
    """Newest finals bracket for a tournament."""
    bracket = latest_bracket(session, tournament_id)
    if not bracket:
        raise HTTPException(status_code=404, detail="No finals bracket has been created for this tournament")
    return BracketRead.model_validate(bracket)


@router.get("/finals/brackets/{bracket_id}", response_model=BracketStateRead)
def get_bracket_state(bracket_id: int, session: Session = Depends(get_session)) -> BracketStateRead:
    """Bracket with every match rebuilt from stored rows (decoded reason, sanitized advantage, inferred mode)."""
    try:
        state = load_bracket_state(session, bracket_id)
    except BracketNotFoundError:
        raise HTTPException(status_code=404, detail="Final bracket not found")
    return _state_to_read(state)


# ============================================================================
# Slots
# ============================================================================


@router.put("/finals/brackets/{bracket_id}/slots", response_model=SlotAssignmentResponse)
def put_slot(
    bracket_id: int, payload: SlotAssignment, session: Session = Depends(get_session)
) -> SlotAssignmentResponse:
    """Seed a slot. Results of that round and later rounds are cleared when the slot changes."""
    try:
        cleared = assign_slot(session, bracket_id, payload.round_no, payload.slot_no, payload.player_id)
    except BracketNotFoundError:
        raise HTTPException(status_code=404, detail="Final bracket not found")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return SlotAssignmentResponse(
        round_no=payload.round_no,
        slot_no=payload.slot_no,
        player_id=(payload.player_id or "").strip() or None,
        results_cleared=cleared,
    )


# ============================================================================
# Results
# ============================================================================


def _command(bracket_id: int, round_no: int, match_no: int, payload: ResultInput) -> ResultCommand:
    return ResultCommand(
        bracket_id=bracket_id,
        round_no=round_no,
        match_no=match_no,
        winner_id=payload.winner_id.strip(),
        base_reason=payload.base_reason,
        advantage_holder=payload.advantage_holder,
        mode=payload.mode,
        game_scores=tuple((g.score_a, g.score_b) if g else None for g in payload.game_scores),
    )


@router.post(
    "/finals/brackets/{bracket_id}/rounds/{round_no}/matches/{match_no}/preview",
    response_model=ResultResponse,
)
def preview_match_result(
    bracket_id: int,
    round_no: int,
    match_no: int,
    payload: ResultInput,
    session: Session = Depends(get_session),
) -> ResultResponse:
    """Reconcile a result without saving it (the breakdown the admin sees before confirming)."""
    try:
        result = preview_result(session, _command(bracket_id, round_no, match_no, payload))
    except BracketNotFoundError:
        raise HTTPException(status_code=404, detail="Final bracket not found")
    except ValueError as e:
        # InvalidResultError included; also unrepresentable advantage holder ids
        raise HTTPException(status_code=422, detail=str(e))
    return _result_to_response(result)


@router.put(
    "/finals/brackets/{bracket_id}/rounds/{round_no}/matches/{match_no}/result",
    response_model=ResultResponse,
)
def put_match_result(
    bracket_id: int,
    round_no: int,
    match_no: int,
    payload: ResultInput,
    session: Session = Depends(get_session),
) -> ResultResponse:
    """Record the winner of a finals match. Scores and the encoded reason are derived, never entered."""
    try:
        result = record_result(session, _command(bracket_id, round_no, match_no, payload))
    except BracketNotFoundError:
        raise HTTPException(status_code=404, detail="Final bracket not found")
    except ValueError as e:
        # InvalidResultError included; also unrepresentable advantage holder ids
        raise HTTPException(status_code=422, detail=str(e))
    except Exception:
        logger.exception("Failed to save result for bracket %s R%s-%s", bracket_id, round_no, match_no)
        raise
    return _result_to_response(result)
