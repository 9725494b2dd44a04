from ladder.models.final_bracket import FinalBracket
from ladder.models.final_match import FinalMatch
from ladder.models.final_round_entry import FinalRoundEntry

__all__ = [
    "FinalBracket",
    "FinalRoundEntry",
    "FinalMatch",
]
