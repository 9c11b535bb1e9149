"""
Runtime: recording and clearing match results.
Recording a winner advances both groups downstream; clearing retracts them.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from knockout.database import get_session
from knockout.models.event import Event
from knockout.models.match import Bracket, Match, Side, Stage
from knockout.services.advancement_service import clear_result, set_winner
from knockout.services.bracket_errors import BracketError, ConcurrentUpdateError
from knockout.utils.http_errors import to_http_error

router = APIRouter()


class WinnerUpdate(BaseModel):
    side: Side


class MatchState(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    bracket: Bracket
    stage: Stage
    round_num: int
    sequence_in_round: int
    is_doubles: bool
    side_a: List[int]
    side_b: List[int]
    winner: Optional[Side] = None
    feeds_winner_to: Optional[int] = None
    feeds_loser_to: Optional[int] = None


@router.get("/events/{event_id}/matches", response_model=List[MatchState])
def get_event_matches(
    event_id: int,
    bracket: Optional[Bracket] = None,
    session: Session = Depends(get_session),
) -> List[MatchState]:
    """List matches for an event. Stable order: round_num, bracket, sequence_in_round, id."""
    event = session.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    query = select(Match).where(Match.event_id == event_id)
    if bracket is not None:
        query = query.where(Match.bracket == bracket.value)
    matches = session.exec(query.order_by(Match.round_num, Match.bracket, Match.sequence_in_round, Match.id)).all()

    return [MatchState.model_validate(m) for m in matches]


@router.post("/matches/{match_id}/winner", response_model=MatchState)
def record_winner(match_id: int, payload: WinnerUpdate, session: Session = Depends(get_session)) -> MatchState:
    """Record the winning side and advance winner/loser groups into downstream matches."""
    try:
        match = set_winner(session, match_id, payload.side)
    except (BracketError, ConcurrentUpdateError) as e:
        raise to_http_error(e)
    return MatchState.model_validate(match)


@router.delete("/matches/{match_id}/winner", response_model=MatchState)
def clear_winner(match_id: int, session: Session = Depends(get_session)) -> MatchState:
    """Clear the recorded winner and retract exact placements from undecided downstream matches."""
    try:
        match = clear_result(session, match_id)
    except (BracketError, ConcurrentUpdateError) as e:
        raise to_http_error(e)
    return MatchState.model_validate(match)
