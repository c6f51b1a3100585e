from __future__ import annotations

from typing import List

from pydantic import BaseModel

from ..services.targeting import TargetSpec


class TargetingIn(BaseModel):
    """
    Raw audience selection as sent by clients. Voice types are the explicit
    picks only; the expansion under targeted groups happens server-side.
    """

    include_all_active: bool = False
    target_membership_types: List[str] = []
    target_voice_groups: List[str] = []
    target_voice_types: List[str] = []

    def to_spec(self) -> TargetSpec:
        return TargetSpec(
            include_all_active=self.include_all_active,
            membership_type_ids=self.target_membership_types,
            voice_group_ids=self.target_voice_groups,
            voice_type_ids=self.target_voice_types,
        )
