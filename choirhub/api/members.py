from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field as PydField
from sqlmodel import Session

from ..database import get_db
from ..models.attendance import ActualStatus, IntendedStatus
from ..models.chat import Chat
from ..models.event import AttendanceMode
from ..models.info_feed import InfoFeedPost
from ..models.member import Member
from ..services.events import get_events_for_member, reconcile_choir_events
from ..services.members import create_member, get_member, update_member_voice
from ..services.messaging import get_chats_for_member, get_info_feed_for_member

router = APIRouter(prefix="/members", tags=["members"])


# -----------------------------
# Schemas (do NOT use DB model as input)
# -----------------------------

class MemberCreate(BaseModel):
    choir_id: str
    name: str = PydField(..., min_length=1)
    email: Optional[str] = None

    membership_type_id: str
    voice_group_id: str
    voice_type_id: Optional[str] = None

    notes: Optional[str] = None


class MemberPatch(BaseModel):
    """
    Partial update. Any field omitted is left unchanged.
    Set clear_voice_type to drop the sub-voice and keep only the section.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None

    membership_type_id: Optional[str] = None
    voice_group_id: Optional[str] = None
    voice_type_id: Optional[str] = None
    clear_voice_type: bool = False


class MemberEventOut(BaseModel):
    event_id: str
    title: str
    start_time: datetime
    end_time: Optional[datetime] = None
    location: str
    attendance_mode: AttendanceMode
    intended_status: Optional[IntendedStatus] = None
    actual_status: Optional[ActualStatus] = None


# -----------------------------
# Routes
# -----------------------------

@router.post("/", response_model=Member)
def add_member(payload: MemberCreate, db: Session = Depends(get_db)) -> Member:
    """
    Create a member and give them placeholders for upcoming events that
    already target them.
    """
    member = create_member(
        db,
        choir_id=payload.choir_id,
        name=payload.name,
        email=payload.email,
        membership_type_id=payload.membership_type_id,
        voice_group_id=payload.voice_group_id,
        voice_type_id=payload.voice_type_id,
        notes=payload.notes,
    )
    reconcile_choir_events(db, member.choir_id)

    db.commit()
    db.refresh(member)
    return member


@router.get("/{member_id}", response_model=Member)
def read_member(member_id: str, db: Session = Depends(get_db)) -> Member:
    return get_member(db, member_id)


@router.patch("/{member_id}", response_model=Member)
def patch_member(member_id: str, payload: MemberPatch, db: Session = Depends(get_db)) -> Member:
    member = get_member(db, member_id)

    if payload.name is not None:
        member.name = payload.name
    if payload.email is not None:
        member.email = payload.email
    if payload.notes is not None:
        member.notes = payload.notes

    voice_change = (
        payload.voice_group_id is not None
        or payload.voice_type_id is not None
        or payload.clear_voice_type
        or payload.membership_type_id is not None
    )
    if voice_change:
        update_member_voice(
            db,
            member,
            voice_group_id=payload.voice_group_id,
            voice_type_id=payload.voice_type_id,
            clear_voice_type=payload.clear_voice_type,
            membership_type_id=payload.membership_type_id,
        )
        reconcile_choir_events(db, member.choir_id)

    db.add(member)
    db.commit()
    db.refresh(member)
    return member


@router.get("/{member_id}/events", response_model=List[MemberEventOut])
def my_events(member_id: str, db: Session = Depends(get_db)) -> List[MemberEventOut]:
    out: List[MemberEventOut] = []
    for item in get_events_for_member(db, member_id):
        ev, att = item.event, item.attendance
        out.append(
            MemberEventOut(
                event_id=ev.id,
                title=ev.title,
                start_time=ev.start_time,
                end_time=ev.end_time,
                location=ev.location,
                attendance_mode=ev.attendance_mode,
                intended_status=att.intended_status if att else None,
                actual_status=att.actual_status if att else None,
            )
        )
    return out


@router.get("/{member_id}/feed", response_model=List[InfoFeedPost])
def my_feed(member_id: str, db: Session = Depends(get_db)) -> List[InfoFeedPost]:
    return get_info_feed_for_member(db, member_id)


@router.get("/{member_id}/chats", response_model=List[Chat])
def my_chats(member_id: str, db: Session = Depends(get_db)) -> List[Chat]:
    return get_chats_for_member(db, member_id)

