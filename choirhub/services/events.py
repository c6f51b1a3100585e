from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import and_
from sqlmodel import Session, select

from ..models.attendance import EventAttendance
from ..models.choir import naive_utc, utcnow
from ..models.event import AttendanceMode, Event
from .attendance_sync import get_event, reconcile
from .eligibility import is_eligible
from .members import get_member, has_active_membership
from .targeting import TargetSpec, apply_targeting, refresh_choir_closures

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberEvent:
    event: Event
    attendance: Optional[EventAttendance]


def create_event(
    session: Session,
    *,
    choir_id: str,
    title: str,
    start_time: datetime,
    target: TargetSpec,
    end_time: Optional[datetime] = None,
    location: str = "",
    description: Optional[str] = None,
    attendance_mode: Union[AttendanceMode, str] = AttendanceMode.OPT_OUT,
    notes: Optional[str] = None,
    created_by: Optional[str] = None,
    strict: bool = False,
) -> Event:
    """
    Create an event with its expanded targeting, then create attendance
    placeholders for everyone on the roster. Nothing is committed here.
    """
    event = Event(
        choir_id=choir_id,
        title=title,
        description=description,
        location=location,
        start_time=start_time,
        end_time=end_time,
        attendance_mode=AttendanceMode(attendance_mode),
        notes=notes,
        created_by=created_by,
    )
    apply_targeting(session, event, target, strict=strict)
    session.flush()

    created = reconcile(session, event.id)
    logger.info("created event %s (%s) with %d attendance rows", event.id, title, created)
    return event


def update_event_targeting(session: Session, event: Event, target: TargetSpec, *, strict: bool = False) -> int:
    """
    Replace an event's targeting and reconcile. Returns rows created.
    Members who drop out of the audience keep their rows.
    """
    apply_targeting(session, event, target, strict=strict)
    session.flush()
    return reconcile(session, event.id)


def delete_event(session: Session, event_id: str) -> None:
    """
    Delete an event together with its attendance rows (the only path that
    ever removes attendance).
    """
    event = get_event(session, event_id)
    rows = session.exec(select(EventAttendance).where(EventAttendance.event_id == event_id)).all()
    for row in rows:
        session.delete(row)
    session.flush()

    session.delete(event)
    session.flush()


def reconcile_choir_events(session: Session, choir_id: str, *, upcoming_only: bool = True) -> int:
    """
    Reconcile every (upcoming) event of a choir. Used after member changes,
    since a member moving into a targeted section needs a placeholder too.
    """
    q = select(Event.id).where(Event.choir_id == choir_id)
    if upcoming_only:
        q = q.where(Event.start_time >= utcnow())

    total = 0
    for event_id in session.exec(q).all():
        total += reconcile(session, event_id)
    return total


def on_hierarchy_changed(session: Session, choir_id: str) -> int:
    """
    Re-expand stored closures after a voice type changed, then reconcile the
    upcoming events whose closure moved. Returns attendance rows created.

    Past events get the new closure stored but keep the roster they had.
    """
    now = naive_utc(utcnow())
    total = 0
    for event in refresh_choir_closures(session, choir_id):
        if naive_utc(event.start_time) >= now:
            total += reconcile(session, event.id)
    return total


def get_events_for_member(session: Session, member_id: str) -> List[MemberEvent]:
    """
    Events of the member's choir that target them, ordered by start time,
    each with the member's attendance row if one exists.

    Members without an active, system-accessible membership see nothing.
    """
    member = get_member(session, member_id)
    if not has_active_membership(session, member):
        return []

    q = (
        select(Event, EventAttendance)
        .join(
            EventAttendance,
            and_(EventAttendance.event_id == Event.id, EventAttendance.member_id == member_id),
            isouter=True,
        )
        .where(Event.choir_id == member.choir_id)
        .order_by(Event.start_time)
    )

    return [
        MemberEvent(event=event, attendance=attendance)
        for event, attendance in session.exec(q).all()
        if is_eligible(member, TargetSpec.from_stored(event))
    ]
