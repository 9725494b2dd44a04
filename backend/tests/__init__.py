# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from ladder.models.final_bracket import FinalBracket  # noqa: F401
from ladder.models.final_match import FinalMatch  # noqa: F401
from ladder.models.final_round_entry import FinalRoundEntry  # noqa: F401
