from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from ladder.models.final_bracket import FinalBracket


class FinalRoundEntry(SQLModel, table=True):
    __tablename__ = "final_round_entries"
    __table_args__ = (SAUniqueConstraint("bracket_id", "round_no", "slot_no", name="uq_final_entry_slot"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    bracket_id: int = Field(foreign_key="final_brackets.id", index=True)
    round_no: int  # 1-based
    slot_no: int  # 1-based within the round; match m is fed by slots 2m-1 and 2m
    player_id: Optional[str] = Field(default=None)

    bracket: "FinalBracket" = Relationship(back_populates="entries")
