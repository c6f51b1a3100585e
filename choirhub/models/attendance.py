from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from .choir import new_id


class IntendedStatus(str, Enum):
    """
    A member's own plan. NOT_RESPONDED is the placeholder value written by
    reconciliation; members can only answer with the other three.
    """

    ATTENDING = "attending"
    NOT_ATTENDING = "not_attending"
    TENTATIVE = "tentative"
    NOT_RESPONDED = "not_responded"


class ActualStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


class EventAttendance(SQLModel, table=True):
    """
    One row per (event, member).

    Lifecycle:
    - Born as a NOT_RESPONDED placeholder by attendance reconciliation.
    - intended_* fields are written by the member, actual_* by a recorder.
    - Never removed by reconciliation, even if the member stops matching the
      event's targeting. Rows only disappear with the event itself.
    """

    __tablename__ = "event_attendance"

    __table_args__ = (
        UniqueConstraint("event_id", "member_id", name="uq_event_attendance_event_member"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)

    event_id: str = Field(foreign_key="events.id", index=True, ondelete="CASCADE")
    member_id: str = Field(foreign_key="members.id", index=True)

    intended_status: IntendedStatus = Field(default=IntendedStatus.NOT_RESPONDED, index=True)
    intended_reason: Optional[str] = Field(default=None, max_length=500)
    member_response_at: Optional[datetime] = Field(default=None)

    actual_status: Optional[ActualStatus] = Field(default=None, index=True)
    marked_by: Optional[str] = Field(default=None)
    marked_at: Optional[datetime] = Field(default=None)

    notes: Optional[str] = Field(default=None, max_length=500)

    def is_marked(self) -> bool:
        return self.actual_status is not None
