from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from knockout.models.event import Event


class Player(SQLModel, table=True):
    __table_args__ = (
        # Enforce unique seeds within an event (where seed is not null)
        SAUniqueConstraint("event_id", "seed", name="uq_event_player_seed"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    name: str
    seed: Optional[int] = Field(default=None)  # 1..16, 1 = top seed
    created_at: datetime = Field(default_factory=datetime.utcnow)

    event: "Event" = Relationship(back_populates="players")
