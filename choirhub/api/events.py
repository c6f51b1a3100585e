from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field as PydField, field_validator
from sqlmodel import Session, select

from ..config import settings
from ..database import get_db
from ..models.attendance import EventAttendance
from ..models.choir import Choir, naive_utc
from ..models.event import AttendanceMode, Event
from ..models.member import Member
from ..services.attendance_records import mark_actual, record_response
from ..services.attendance_summary import load_event_attendance, summarize, summarize_by_voice_group
from ..services.attendance_sync import get_eligible_members_for_event, get_event, reconcile
from ..services.events import create_event, delete_event, update_event_targeting
from .shared import TargetingIn

router = APIRouter(prefix="/events", tags=["events"])


# -----------------------------
# Schemas (do NOT use DB model as input)
# -----------------------------

class EventCreate(TargetingIn):
    choir_id: str
    title: str = PydField(..., min_length=1)
    description: Optional[str] = None
    location: str = ""

    start_time: datetime
    end_time: Optional[datetime] = None

    attendance_mode: AttendanceMode = AttendanceMode.OPT_OUT
    notes: Optional[str] = None
    created_by: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Stored as naive UTC; clients may send either form
        return naive_utc(v) if v is not None else None


class EventPatch(BaseModel):
    """
    Partial update. Any field omitted is left unchanged.

    Targeting fields are all-or-nothing: if any of them is present the
    event's targeting is replaced (missing lists become empty) and
    attendance is reconciled.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    attendance_mode: Optional[AttendanceMode] = None
    notes: Optional[str] = None

    include_all_active: Optional[bool] = None
    target_membership_types: Optional[List[str]] = None
    target_voice_groups: Optional[List[str]] = None
    target_voice_types: Optional[List[str]] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(v) if v is not None else None

    def targeting(self) -> Optional[TargetingIn]:
        fields = (
            self.include_all_active,
            self.target_membership_types,
            self.target_voice_groups,
            self.target_voice_types,
        )
        if all(f is None for f in fields):
            return None
        return TargetingIn(
            include_all_active=bool(self.include_all_active),
            target_membership_types=self.target_membership_types or [],
            target_voice_groups=self.target_voice_groups or [],
            target_voice_types=self.target_voice_types or [],
        )


class MemberResponse(BaseModel):
    intended_status: Literal["attending", "not_attending", "tentative"]
    intended_reason: Optional[str] = None


class MarkAttendance(BaseModel):
    actual_status: Literal["present", "absent", "late"]
    marked_by: str = PydField(..., min_length=1)
    notes: Optional[str] = None


class ReconcileOut(BaseModel):
    event_id: str
    created: int


# -----------------------------
# Routes
# -----------------------------

@router.post("/", response_model=Event)
def create_event_route(payload: EventCreate, db: Session = Depends(get_db)) -> Event:
    if not db.get(Choir, payload.choir_id):
        raise HTTPException(status_code=404, detail="Choir not found")

    if payload.end_time is not None and payload.end_time < payload.start_time:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    event = create_event(
        db,
        choir_id=payload.choir_id,
        title=payload.title,
        description=payload.description,
        location=payload.location,
        start_time=payload.start_time,
        end_time=payload.end_time,
        attendance_mode=payload.attendance_mode,
        notes=payload.notes,
        created_by=payload.created_by,
        target=payload.to_spec(),
        strict=settings.strict_targeting,
    )
    db.commit()
    db.refresh(event)
    return event


@router.get("/", response_model=List[Event])
def list_events(
    choir_id: str,
    start_from: Optional[datetime] = None,
    limit: int = 200,
    offset: int = 0,
    db: Session = Depends(get_db),
) -> List[Event]:
    limit = max(1, min(limit, 1000))
    offset = max(0, offset)

    q = select(Event).where(Event.choir_id == choir_id)
    if start_from is not None:
        q = q.where(Event.start_time >= naive_utc(start_from))
    q = q.order_by(Event.start_time.desc()).offset(offset).limit(limit)
    return list(db.exec(q).all())


@router.get("/{event_id}", response_model=Event)
def read_event(event_id: str, db: Session = Depends(get_db)) -> Event:
    return get_event(db, event_id)


@router.patch("/{event_id}", response_model=Event)
def patch_event(event_id: str, payload: EventPatch, db: Session = Depends(get_db)) -> Event:
    event = get_event(db, event_id)

    if payload.title is not None:
        event.title = payload.title
    if payload.description is not None:
        event.description = payload.description
    if payload.location is not None:
        event.location = payload.location
    if payload.start_time is not None:
        event.start_time = payload.start_time
    if payload.end_time is not None:
        event.end_time = payload.end_time
    if payload.attendance_mode is not None:
        event.attendance_mode = payload.attendance_mode
    if payload.notes is not None:
        event.notes = payload.notes

    if event.end_time is not None and naive_utc(event.end_time) < naive_utc(event.start_time):
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    targeting = payload.targeting()
    if targeting is not None:
        update_event_targeting(db, event, targeting.to_spec(), strict=settings.strict_targeting)

    db.add(event)
    db.commit()
    db.refresh(event)
    return event


@router.delete("/{event_id}")
def delete_event_route(event_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    delete_event(db, event_id)
    db.commit()
    return {"ok": True, "event_id": event_id}


@router.post("/{event_id}/reconcile", response_model=ReconcileOut)
def reconcile_event(event_id: str, db: Session = Depends(get_db)) -> ReconcileOut:
    created = reconcile(db, event_id)
    db.commit()
    return ReconcileOut(event_id=event_id, created=created)


@router.get("/{event_id}/eligible-members", response_model=List[Member])
def eligible_members(event_id: str, db: Session = Depends(get_db)) -> List[Member]:
    return get_eligible_members_for_event(db, event_id)


@router.get("/{event_id}/attendance")
def event_attendance(event_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Attendance rows with member info, overall summary and per-section
    breakdown. Opt-out events count non-responders as attending in
    `effective_attending`.
    """
    event = get_event(db, event_id)
    pairs = load_event_attendance(db, event_id)

    return {
        "event_id": event.id,
        "event_title": event.title,
        "attendance_mode": event.attendance_mode,
        "attendance": [
            {
                "id": row.id,
                "member_id": member.id,
                "member_name": member.name,
                "voice_group_id": member.voice_group_id,
                "voice_type_id": member.voice_type_id,
                "intended_status": row.intended_status,
                "intended_reason": row.intended_reason,
                "actual_status": row.actual_status,
                "notes": row.notes,
                "member_response_at": row.member_response_at,
                "marked_at": row.marked_at,
                "marked_by": row.marked_by,
            }
            for row, member in pairs
        ],
        "summary": asdict(summarize([row for row, _ in pairs], event.attendance_mode)),
        "voice_group_breakdown": [asdict(g) for g in summarize_by_voice_group(pairs, event.attendance_mode)],
    }


@router.post("/{event_id}/attendance/{member_id}/response", response_model=EventAttendance)
def respond(event_id: str, member_id: str, payload: MemberResponse, db: Session = Depends(get_db)) -> EventAttendance:
    row = record_response(
        db,
        event_id=event_id,
        member_id=member_id,
        intended_status=payload.intended_status,
        reason=payload.intended_reason,
        freeze_after_marking=settings.freeze_responses_after_marking,
    )
    db.commit()
    db.refresh(row)
    return row


@router.put("/{event_id}/attendance/{member_id}", response_model=EventAttendance)
def mark(event_id: str, member_id: str, payload: MarkAttendance, db: Session = Depends(get_db)) -> EventAttendance:
    row = mark_actual(
        db,
        event_id=event_id,
        member_id=member_id,
        actual_status=payload.actual_status,
        marked_by=payload.marked_by,
        notes=payload.notes,
    )
    db.commit()
    db.refresh(row)
    return row
