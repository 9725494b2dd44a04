from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from ladder.models.final_round_entry import FinalRoundEntry


class FinalBracket(SQLModel, table=True):
    __tablename__ = "final_brackets"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: str = Field(index=True)  # Opaque reference to the surrounding tournament
    title: Optional[str] = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )

    # Relationships
    entries: List["FinalRoundEntry"] = Relationship(back_populates="bracket")
