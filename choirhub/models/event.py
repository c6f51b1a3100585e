from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field

from .choir import new_id, utcnow
from .targeting import TargetingFields


class AttendanceMode(str, Enum):
    """
    OPT_IN: members must actively register; silence counts as absent.
    OPT_OUT: members are assumed attending unless they decline.
    """

    OPT_IN = "opt_in"
    OPT_OUT = "opt_out"


class Event(TargetingFields, table=True):
    __tablename__ = "events"

    id: str = Field(default_factory=new_id, primary_key=True)
    choir_id: str = Field(foreign_key="choirs.id", index=True)

    title: str
    description: Optional[str] = Field(default=None)
    location: str = Field(default="")

    start_time: datetime = Field(index=True)
    end_time: Optional[datetime] = Field(default=None, index=True)

    attendance_mode: AttendanceMode = Field(default=AttendanceMode.OPT_OUT, index=True)

    notes: Optional[str] = Field(default=None)
    created_by: Optional[str] = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)
