from __future__ import annotations

from typing import List

from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field


class TargetingFields(SQLModel):
    """
    Audience columns shared by events and info-feed posts.

    - target_voice_types holds the expanded closure (explicit types plus every
      active type under a targeted group), computed at write time.
    - selected_voice_types keeps the raw explicit selection so the closure can
      be recomputed when the voice hierarchy changes.
    - Lists are JSON columns; always assign a new list, never mutate in place.
    """

    include_all_active: bool = Field(default=False, index=True)

    target_membership_types: List[str] = Field(default_factory=list, sa_type=JSON)
    target_voice_groups: List[str] = Field(default_factory=list, sa_type=JSON)
    target_voice_types: List[str] = Field(default_factory=list, sa_type=JSON)

    selected_voice_types: List[str] = Field(default_factory=list, sa_type=JSON)
