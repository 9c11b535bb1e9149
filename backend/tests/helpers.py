"""Shared builders for bracket tests."""
from typing import Dict, List

from sqlmodel import Session, select

from knockout.models.event import Event
from knockout.models.match import Bracket, Match, Stage
from knockout.models.player import Player


def make_event(session: Session, name: str = "Club Championship") -> Event:
    event = Event(name=name)
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


def seed_players(session: Session, event_id: int, count: int = 16) -> Dict[int, int]:
    """Create players seeded 1..count. Returns seed -> player id."""
    players = [Player(event_id=event_id, name=f"Player {seed}", seed=seed) for seed in range(1, count + 1)]
    session.add_all(players)
    session.commit()
    return {p.seed: p.id for p in players}


def matches(session: Session, event_id: int, bracket: Bracket, stage: Stage) -> List[Match]:
    session.expire_all()
    rows = session.exec(
        select(Match).where(
            Match.event_id == event_id,
            Match.bracket == bracket.value,
            Match.stage == stage.value,
        )
    ).all()
    return sorted(rows, key=lambda m: (m.sequence_in_round, m.id))


def round1_match(session: Session, event_id: int, seed_ids: Dict[int, int], seed_a: int, seed_b: int) -> Match:
    for m in matches(session, event_id, Bracket.MAIN, Stage.R1):
        if m.side_a == [seed_ids[seed_a]] and m.side_b == [seed_ids[seed_b]]:
            return m
    raise AssertionError(f"No R1 match {seed_a} vs {seed_b}")
