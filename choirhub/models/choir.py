from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def naive_utc(dt: datetime) -> datetime:
    """UTC wall time without tzinfo, the form SQLite hands datetimes back in."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


class Choir(SQLModel, table=True):
    """
    Tenant root. Every other row is scoped to exactly one choir.
    """

    __tablename__ = "choirs"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    description: Optional[str] = Field(default=None)
    organization_type: str = Field(default="choir")

    created_at: datetime = Field(default_factory=utcnow, index=True)


class MembershipType(SQLModel, table=True):
    """
    Per-choir membership category (e.g. "Active", "Supporting", "On leave").

    Only members whose type is an active membership AND grants system access
    are considered for targeting at all; the eligibility predicates assume
    callers have already applied that filter.
    """

    __tablename__ = "membership_types"

    id: str = Field(default_factory=new_id, primary_key=True)
    choir_id: str = Field(foreign_key="choirs.id", index=True)

    name: str
    display_name: str

    is_active_membership: bool = Field(default=True, index=True)
    can_access_system: bool = Field(default=True, index=True)
    can_vote: bool = Field(default=True)

    sort_order: int = Field(default=0)
    description: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)

    def grants_access(self) -> bool:
        return bool(self.is_active_membership and self.can_access_system)
