from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from knockout.models.event import Event


class Bracket(str, Enum):
    MAIN = "MAIN"
    LOWER = "LOWER"
    DOUBLES = "DOUBLES"


class Stage(str, Enum):
    R1 = "R1"
    QF = "QF"
    SF = "SF"
    F = "F"


class Side(str, Enum):
    A = "A"
    B = "B"


# Chronological rank of each stage (used for stable ordering)
ROUND_NUM = {Stage.R1: 1, Stage.QF: 2, Stage.SF: 3, Stage.F: 4}


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    bracket: Bracket = Field(sa_column=Column(String, nullable=False))
    stage: Stage = Field(sa_column=Column(String, nullable=False))
    round_num: int
    sequence_in_round: int = Field(default=1)  # 1-based position within bracket+stage
    is_doubles: bool = Field(default=False)

    # Participant groups: ordered player ids (1 for singles, 2 for doubles)
    side_a: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    side_b: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    winner: Optional[Side] = Field(default=None, sa_column=Column(String, nullable=True))

    # Fixed topology once built; plain ids, never relationships
    feeds_winner_to: Optional[int] = Field(default=None, foreign_key="match.id")
    feeds_loser_to: Optional[int] = Field(default=None, foreign_key="match.id")

    # Bumped by every side/winner write (compare-and-swap guard)
    row_version: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    event: "Event" = Relationship(back_populates="matches")

    def group_for(self, side: Side) -> List[int]:
        return list(self.side_a if side == Side.A else self.side_b)

    def winner_and_loser_groups(self):
        """(winner_group, loser_group) for a decided match, else two empty lists."""
        if self.winner is None:
            return [], []
        won = Side(self.winner)
        lost = Side.B if won == Side.A else Side.A
        return self.group_for(won), self.group_for(lost)
