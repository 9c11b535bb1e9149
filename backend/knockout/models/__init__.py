from knockout.models.event import Event
from knockout.models.match import Bracket, Match, Side, Stage
from knockout.models.player import Player

__all__ = [
    "Event",
    "Player",
    "Match",
    "Bracket",
    "Stage",
    "Side",
]
