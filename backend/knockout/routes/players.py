"""
Player Management API Routes
Registration and seeding of the 16 singles entrants of an event.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from knockout.database import get_session
from knockout.models.event import Event
from knockout.models.player import Player
from knockout.services.seeding import DRAW_SIZE

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


def _validate_seed(v: Optional[int]) -> Optional[int]:
    if v is not None and not 1 <= v <= DRAW_SIZE:
        raise ValueError(f"Seed must be an integer 1..{DRAW_SIZE}")
    return v


class PlayerCreateRequest(BaseModel):
    name: str
    seed: int

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name required")
        return v.strip()

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, v):
        return _validate_seed(v)


class PlayerUpdateRequest(BaseModel):
    name: Optional[str] = None
    seed: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        # Blank names are ignored rather than rejected
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, v):
        return _validate_seed(v)


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    name: str
    seed: Optional[int] = None
    created_at: datetime


def _seed_taken(session: Session, event_id: int, seed: int, exclude_id: Optional[int] = None) -> bool:
    query = select(Player).where(Player.event_id == event_id, Player.seed == seed)
    if exclude_id is not None:
        query = query.where(Player.id != exclude_id)
    return session.exec(query).first() is not None


# ============================================================================
# Player CRUD Endpoints
# ============================================================================


@router.get("/events/{event_id}/players", response_model=List[PlayerResponse])
def get_players(event_id: int, session: Session = Depends(get_session)):
    """Get all players for an event, seed ascending (unseeded last), then id."""
    event = session.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    players = session.exec(select(Player).where(Player.event_id == event_id)).all()
    return sorted(players, key=lambda p: (p.seed is None, p.seed or 0, p.id))


@router.post("/events/{event_id}/players", response_model=PlayerResponse, status_code=201)
def create_player(event_id: int, request: PlayerCreateRequest, session: Session = Depends(get_session)):
    """
    Register a player.

    Constraints:
    - at most 16 players per event
    - (event_id, seed) must be unique
    """
    event = session.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    count = len(session.exec(select(Player.id).where(Player.event_id == event_id)).all())
    if count >= DRAW_SIZE:
        raise HTTPException(status_code=400, detail=f"Already have {DRAW_SIZE} players")

    if _seed_taken(session, event_id, request.seed):
        raise HTTPException(status_code=400, detail=f"Seed {request.seed} already taken")

    player = Player(event_id=event_id, name=request.name, seed=request.seed)
    session.add(player)
    session.commit()
    session.refresh(player)

    return player


@router.put("/players/{player_id}", response_model=PlayerResponse)
def update_player(player_id: int, request: PlayerUpdateRequest, session: Session = Depends(get_session)):
    """Rename and/or reseed a player. Seed must stay unique within the event."""
    player = session.get(Player, player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")

    update_data = request.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="Nothing to update")

    if "seed" in update_data and _seed_taken(session, player.event_id, update_data["seed"], exclude_id=player.id):
        raise HTTPException(status_code=400, detail=f"Seed {update_data['seed']} already taken")

    for field, value in update_data.items():
        setattr(player, field, value)

    session.add(player)
    session.commit()
    session.refresh(player)

    return player


@router.delete("/players/{player_id}", status_code=204)
def delete_player(player_id: int, session: Session = Depends(get_session)):
    player = session.get(Player, player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")

    session.delete(player)
    session.commit()

    return None
