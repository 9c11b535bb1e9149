"""
Bracket construction routes: singles skeleton, doubles bracket, full reset.
All three are idempotent or explicitly destructive, and run against one event.
"""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from knockout.database import get_session
from knockout.services.bracket_builder import build_singles_skeleton, reset_matches
from knockout.services.bracket_errors import BracketError, ConcurrentUpdateError
from knockout.services.doubles_builder import build_doubles
from knockout.utils.http_errors import to_http_error

router = APIRouter()


class SinglesBuildResponse(BaseModel):
    ok: bool = True
    message: str
    round1_created: bool
    wired: int
    repropagated: int


class DoublesBuildResponse(BaseModel):
    ok: bool = True
    message: str
    created: bool
    match_ids: List[int] = []


class ResetRequest(BaseModel):
    regenerate_round1: bool = False


class ResetResponse(BaseModel):
    ok: bool = True
    message: str
    deleted: int
    round1_regenerated: bool


@router.post("/events/{event_id}/brackets/singles", response_model=SinglesBuildResponse)
def ensure_singles_skeleton(event_id: int, session: Session = Depends(get_session)) -> SinglesBuildResponse:
    """Ensure R1, the MAIN and LOWER QF/SF/F skeletons, and R1 wiring. Safe to repeat."""
    try:
        result = build_singles_skeleton(session, event_id)
    except (BracketError, ConcurrentUpdateError) as e:
        raise to_http_error(e)
    return SinglesBuildResponse(**result)


@router.post("/events/{event_id}/brackets/doubles", response_model=DoublesBuildResponse)
def build_doubles_bracket(event_id: int, session: Session = Depends(get_session)) -> DoublesBuildResponse:
    """Build doubles SF/F from the 8 singles QF losers. Second call is a no-op."""
    try:
        result = build_doubles(session, event_id)
    except BracketError as e:
        raise to_http_error(e)
    return DoublesBuildResponse(**result)


@router.post("/events/{event_id}/matches/reset", response_model=ResetResponse)
def reset_all_matches(
    event_id: int,
    payload: ResetRequest,
    session: Session = Depends(get_session),
) -> ResetResponse:
    """
    Delete every match of the event (one statement; matches reference each other).
    With regenerate_round1, R1 is rebuilt from the current seeding in the same transaction.
    """
    try:
        result = reset_matches(session, event_id, regenerate_round1=payload.regenerate_round1)
    except BracketError as e:
        raise to_http_error(e)
    return ResetResponse(**result)
