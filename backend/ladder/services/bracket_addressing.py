"""
Bracket addressing: which roster slots feed which match.

Match m of any round is fed by slots 2m-1 (side A) and 2m (side B). This holds
for every round regardless of how many matches it contains, and is the only
place "who plays whom" is decided.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from ladder.models.final_round_entry import FinalRoundEntry

MAX_FIRST_ROUND_SLOTS = 32
MAX_ROUNDS = 5


@dataclass(frozen=True)
class MatchPair:
    player_a: Optional[str]
    player_b: Optional[str]

    @property
    def is_playable(self) -> bool:
        """Both sides assigned and not the same player."""
        return bool(self.player_a) and bool(self.player_b) and self.player_a != self.player_b

    def other(self, player_id: str) -> Optional[str]:
        if player_id == self.player_a:
            return self.player_b
        if player_id == self.player_b:
            return self.player_a
        return None


def slots_for(match_no: int) -> Tuple[int, int]:
    if match_no < 1:
        raise ValueError(f"match_no must be >= 1, got {match_no}")
    return 2 * match_no - 1, 2 * match_no


def match_for_slot(slot_no: int) -> int:
    """Inverse of slots_for: the match a slot feeds."""
    if slot_no < 1:
        raise ValueError(f"slot_no must be >= 1, got {slot_no}")
    return (slot_no + 1) // 2


def entry_map(entries: Iterable[FinalRoundEntry]) -> Dict[Tuple[int, int], Optional[str]]:
    """(round_no, slot_no) -> player_id for a bracket's entries."""
    return {(e.round_no, e.slot_no): (e.player_id or None) for e in entries}


def pair_for(entries: Iterable[FinalRoundEntry], round_no: int, match_no: int) -> MatchPair:
    slot_a, slot_b = slots_for(match_no)
    by_slot = entry_map(entries)
    return MatchPair(
        player_a=by_slot.get((round_no, slot_a)),
        player_b=by_slot.get((round_no, slot_b)),
    )


def _pow2ceil(n: int) -> int:
    x = 1
    while x < n:
        x *= 2
    return x


def finals_size(entries: Iterable[FinalRoundEntry]) -> int:
    """Bracket size from the filled round-1 slots (power of two, capped at 32).

    Returns 0 while fewer than two players are seeded.
    """
    filled = sum(1 for e in entries if e.round_no == 1 and e.player_id)
    if filled <= 1:
        return 0
    return min(MAX_FIRST_ROUND_SLOTS, _pow2ceil(filled))


def round_count(size: int) -> int:
    if size <= 1:
        return 0
    return min(MAX_ROUNDS, size.bit_length() - 1)


def slot_count_for_round(size: int, round_no: int) -> int:
    return max(1, size // (2 ** (round_no - 1)))


def match_count_for_round(size: int, round_no: int) -> int:
    return max(1, slot_count_for_round(size, round_no) // 2)


def round_label(round_no: int) -> str:
    return f"R{round_no}"
