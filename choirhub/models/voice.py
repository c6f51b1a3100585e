from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from .choir import new_id, utcnow


class VoiceCategory(str, Enum):
    GROUP = "voice_group"
    TYPE = "voice_type"


class VoiceGroup(SQLModel, table=True):
    """
    Top-level choir section (Soprano, Alto, Tenor, Bass).

    A group never has a parent; the hierarchy is exactly two levels deep.
    """

    __tablename__ = "voice_groups"

    id: str = Field(default_factory=new_id, primary_key=True)
    choir_id: str = Field(foreign_key="choirs.id", index=True)

    value: str = Field(index=True)
    display_name: str
    sort_order: int = Field(default=0)

    # Retired rows stay for history but no longer participate in expansion
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)

    @property
    def category(self) -> VoiceCategory:
        return VoiceCategory.GROUP

    @property
    def parent_id(self) -> Optional[str]:
        return None


class VoiceType(SQLModel, table=True):
    """
    Subdivision of a voice group (1st Soprano, 2nd Soprano, ...).

    Always references exactly one VoiceGroup; a type can never be the
    parent of another type.
    """

    __tablename__ = "voice_types"

    id: str = Field(default_factory=new_id, primary_key=True)
    choir_id: str = Field(foreign_key="choirs.id", index=True)
    voice_group_id: str = Field(foreign_key="voice_groups.id", index=True)

    value: str = Field(index=True)
    display_name: str
    sort_order: int = Field(default=0)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)

    @property
    def category(self) -> VoiceCategory:
        return VoiceCategory.TYPE

    @property
    def parent_id(self) -> str:
        return self.voice_group_id
