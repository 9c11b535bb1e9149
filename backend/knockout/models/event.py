from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from knockout.models.match import Match
    from knockout.models.player import Player


class Event(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    # Relationships
    players: List["Player"] = Relationship(back_populates="event")
    matches: List["Match"] = Relationship(back_populates="event")
