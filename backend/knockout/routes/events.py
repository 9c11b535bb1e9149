from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from knockout.database import get_session
from knockout.models.event import Event

router = APIRouter()


class EventCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()


class EventResponse(BaseModel):
    id: int
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("/events", response_model=List[EventResponse])
def get_events(session: Session = Depends(get_session)):
    """Get all events, newest first"""
    events = session.exec(select(Event)).all()
    return sorted(events, key=lambda e: (e.created_at, e.id), reverse=True)


@router.post("/events", response_model=EventResponse, status_code=201)
def create_event(event_data: EventCreate, session: Session = Depends(get_session)):
    """Create a new event"""
    event = Event(name=event_data.name)
    session.add(event)
    session.commit()
    session.refresh(event)

    return event


@router.get("/events/{event_id}", response_model=EventResponse)
def get_event(event_id: int, session: Session = Depends(get_session)):
    event = session.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event
