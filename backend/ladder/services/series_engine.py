"""
Best-of-three series reconciliation for finals matches.

The administrator only chooses the winner (and optionally 2-0 / 2-1). The
engine derives the aggregate score and a three-game breakdown that is
consistent with the competition rules:

  - No advantage: 2-0 is (W, W, -), 2-1 is (W, L, W).
  - Advantage held by the eventual winner: game 1 is the carried-over win,
    then 2-0 is (H, H, -) and 2-1 is (H, O, H).
  - Advantage held by the eventual loser: the opponent must take both
    remaining games, so the result is always 2-1 (H, W, W). A requested 2-0
    is corrected, not rejected.

Everything here is pure and side-effect free.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

MODE_2_0 = "2-0"
MODE_2_1 = "2-1"
SERIES_MODES = (MODE_2_0, MODE_2_1)
DEFAULT_MODE = MODE_2_0

GAME_LABELS = ("Game 1", "Game 2", "Game 3")
NOTE_ADVANTAGE = "advantage (not replayed)"
NOTE_UNPLAYED = "not played"


class InvalidResultError(ValueError):
    """Administrator input that cannot describe a finals result."""


@dataclass(frozen=True)
class SeriesInput:
    player_a: Optional[str]
    player_b: Optional[str]
    winner_id: Optional[str]
    advantage_holder: Optional[str] = None
    mode: str = DEFAULT_MODE


@dataclass(frozen=True)
class GameOutcome:
    label: str
    winner_id: Optional[str]
    note: str = ""


@dataclass(frozen=True)
class SeriesResult:
    winner_id: str
    loser_id: str
    winner_score: int
    loser_score: int
    mode: str
    games: Tuple[GameOutcome, GameOutcome, GameOutcome]


@dataclass(frozen=True)
class GameTally:
    wins_a: int = 0
    wins_b: int = 0

    @property
    def score_text(self) -> str:
        return f"{self.wins_a}-{self.wins_b}"

    def leader(self, player_a: str, player_b: str) -> Optional[str]:
        """Player who has already taken two games, if any (display hint only)."""
        if self.wins_a >= 2 and self.wins_a != self.wins_b:
            return player_a
        if self.wins_b >= 2 and self.wins_a != self.wins_b:
            return player_b
        return None


def resolve_advantage(
    player_a: Optional[str], player_b: Optional[str], advantage_holder: Optional[str]
) -> Optional[str]:
    """Return the advantage holder only if it is exactly one of the two contestants.

    Doubles as the sanitizer for holders decoded from storage: a holder left
    over from a previous seeding resolves to None.
    """
    holder = str(advantage_holder or "").strip()
    if not holder or not player_a or not player_b or player_a == player_b:
        return None
    if holder == player_a or holder == player_b:
        return holder
    return None


def _validate(data: SeriesInput) -> None:
    if not data.player_a or not data.player_b:
        raise InvalidResultError("Both contestants must be assigned before recording a result")
    if data.player_a == data.player_b:
        raise InvalidResultError("Contestants must be two different players")
    if data.winner_id not in (data.player_a, data.player_b):
        raise InvalidResultError(f"Winner {data.winner_id!r} is not one of the two contestants")
    if data.advantage_holder is not None and data.advantage_holder not in (data.player_a, data.player_b):
        raise InvalidResultError(f"Advantage holder {data.advantage_holder!r} is not one of the two contestants")
    if data.mode not in SERIES_MODES:
        raise InvalidResultError(f"Invalid series mode: {data.mode!r}")


def effective_mode(data: SeriesInput) -> str:
    """Requested mode after applying the advantage rule."""
    if data.advantage_holder and data.winner_id != data.advantage_holder:
        if data.mode != MODE_2_1:
            logger.debug("Forcing 2-1: advantage holder %s lost the series", data.advantage_holder)
        return MODE_2_1
    return data.mode


def reconcile_series(data: SeriesInput) -> SeriesResult:
    _validate(data)

    winner = data.winner_id
    loser = data.player_b if winner == data.player_a else data.player_a
    holder = data.advantage_holder
    mode = effective_mode(data)

    if not holder:
        if mode == MODE_2_0:
            winners = (winner, winner, None)
        else:
            winners = (winner, loser, winner)
        notes = ("", "", NOTE_UNPLAYED if winners[2] is None else "")
    elif holder == winner:
        if mode == MODE_2_0:
            winners = (holder, holder, None)
        else:
            winners = (holder, loser, holder)
        notes = (NOTE_ADVANTAGE, "", NOTE_UNPLAYED if winners[2] is None else "")
    else:
        winners = (holder, winner, winner)
        notes = (NOTE_ADVANTAGE, "", "")

    games = tuple(GameOutcome(label=label, winner_id=w, note=n) for label, w, n in zip(GAME_LABELS, winners, notes))
    return SeriesResult(
        winner_id=winner,
        loser_id=loser,
        winner_score=2,
        loser_score=1 if mode == MODE_2_1 else 0,
        mode=mode,
        games=games,
    )


def tally_observed_games(
    player_a: str,
    player_b: str,
    game_scores: Sequence[Optional[Tuple[Optional[int], Optional[int]]]],
    advantage_holder: Optional[str] = None,
) -> GameTally:
    """Count games won so far from optionally entered per-game scores.

    With an advantage holder, game 1 is credited to the holder whatever was
    entered for it. Missing or tied games are not counted.
    """
    wins_a = 0
    wins_b = 0
    holder = resolve_advantage(player_a, player_b, advantage_holder)

    scores = list(game_scores)[:3]
    while len(scores) < 3:
        scores.append(None)

    for index, score in enumerate(scores):
        if index == 0 and holder:
            if holder == player_a:
                wins_a += 1
            else:
                wins_b += 1
            continue
        if score is None:
            continue
        a, b = score
        if a is None or b is None or a == b:
            continue
        if a > b:
            wins_a += 1
        else:
            wins_b += 1

    return GameTally(wins_a=wins_a, wins_b=wins_b)
