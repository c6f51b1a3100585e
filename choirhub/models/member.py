from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from .choir import new_id, utcnow


class Member(SQLModel, table=True):
    """
    A singer's membership in one choir.

    Notes:
    - voice_group_id is required; voice_type_id is optional (a member can sit
      directly in a section without a sub-voice).
    - When voice_type_id is set its parent group must equal voice_group_id.
      The API enforces this on write (see services.voice_hierarchy).
    """

    __tablename__ = "members"

    id: str = Field(default_factory=new_id, primary_key=True)
    choir_id: str = Field(foreign_key="choirs.id", index=True)

    name: str
    email: Optional[str] = Field(default=None, index=True)

    membership_type_id: str = Field(foreign_key="membership_types.id", index=True)
    voice_group_id: str = Field(foreign_key="voice_groups.id", index=True)
    voice_type_id: Optional[str] = Field(default=None, foreign_key="voice_types.id", index=True)

    notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
