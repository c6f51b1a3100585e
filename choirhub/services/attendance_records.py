from __future__ import annotations

import logging
from typing import Optional, Union

from sqlmodel import Session, select

from ..models.attendance import ActualStatus, EventAttendance, IntendedStatus
from ..models.choir import utcnow
from .attendance_sync import get_event
from .errors import AttendanceLockedError, NotFoundError
from .members import get_member

logger = logging.getLogger(__name__)


def _clean_text(raw: Optional[str], max_len: int = 500) -> Optional[str]:
    if raw is None:
        return None
    s = str(raw).strip()
    if not s:
        return None
    return s[:max_len]


def _find_row(session: Session, event_id: str, member_id: str) -> Optional[EventAttendance]:
    return session.exec(
        select(EventAttendance).where(
            EventAttendance.event_id == event_id,
            EventAttendance.member_id == member_id,
        )
    ).first()


def record_response(
    session: Session,
    *,
    event_id: str,
    member_id: str,
    intended_status: Union[IntendedStatus, str],
    reason: Optional[str] = None,
    freeze_after_marking: bool = True,
) -> EventAttendance:
    """
    Store a member's own answer (attending / not attending / tentative).

    - NOT_RESPONDED is not an answer and is rejected.
    - A missing placeholder row is created on the fly.
    - With freeze_after_marking, the answer is locked once a recorder has set
      the actual status.
    """
    status = IntendedStatus(intended_status)
    if status is IntendedStatus.NOT_RESPONDED:
        raise ValueError("not_responded is not a valid response")

    event = get_event(session, event_id)
    member = get_member(session, member_id)
    if member.choir_id != event.choir_id:
        raise NotFoundError("Member", member_id)

    row = _find_row(session, event_id, member_id)
    if row is None:
        row = EventAttendance(event_id=event_id, member_id=member_id)
    elif freeze_after_marking and row.is_marked():
        logger.info("response refused for member %s on event %s: attendance already marked", member_id, event_id)
        raise AttendanceLockedError("Attendance has already been recorded for this event")

    row.intended_status = status
    row.intended_reason = _clean_text(reason)
    row.member_response_at = utcnow()

    session.add(row)
    session.flush()
    return row


def mark_actual(
    session: Session,
    *,
    event_id: str,
    member_id: str,
    actual_status: Union[ActualStatus, str],
    marked_by: str,
    notes: Optional[str] = None,
) -> EventAttendance:
    """
    Record whether the member actually came. Independent of the intended
    status. The attendance row must already exist.
    """
    status = ActualStatus(actual_status)

    event = get_event(session, event_id)
    member = get_member(session, member_id)
    if member.choir_id != event.choir_id:
        raise NotFoundError("Member", member_id)

    row = _find_row(session, event_id, member_id)
    if row is None:
        raise NotFoundError("Attendance record", f"{event_id}/{member_id}")

    row.actual_status = status
    row.notes = _clean_text(notes)
    row.marked_by = marked_by
    row.marked_at = utcnow()

    session.add(row)
    session.flush()
    return row
