from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class FinalMatch(SQLModel, table=True):
    """Finals match result row.

    Deployed databases name the reason column either ``end_reason`` or
    ``finish_reason``. The model declares ``end_reason``; reads and writes of
    results go through ``MatchResultStore`` which tolerates either name.
    """

    __tablename__ = "final_matches"
    __table_args__ = (SAUniqueConstraint("bracket_id", "round_no", "match_no", name="uq_final_match_key"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    bracket_id: int = Field(foreign_key="final_brackets.id", index=True)
    round_no: int
    match_no: int  # 1-based within the round

    winner_id: Optional[str] = Field(default=None)
    loser_id: Optional[str] = Field(default=None)
    winner_score: Optional[int] = Field(default=None)  # 2 once complete
    loser_score: Optional[int] = Field(default=None)  # 0 or 1 once complete

    # Encoded finish reason, see ladder.services.reason_codec
    end_reason: Optional[str] = Field(default="normal")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
