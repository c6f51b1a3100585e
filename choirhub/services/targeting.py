from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, List, Union

from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from ..models.choir import MembershipType
from ..models.event import Event
from ..models.info_feed import InfoFeedPost
from ..models.voice import VoiceType
from .errors import InvalidTargetingError
from .voice_hierarchy import VoiceHierarchy

logger = logging.getLogger(__name__)

Targeted = Union[Event, InfoFeedPost]


class TargetSpec(BaseModel):
    """
    Validated audience selection for an event, post or eligibility check.

    Id lists are normalized at the boundary: stripped, blanks dropped,
    duplicates removed. Membership tests against the frozensets are O(1).

    Note the semantics of membership_type_ids: empty means "no restriction"
    for the full eligibility predicate, not "nobody".
    """

    model_config = ConfigDict(frozen=True)

    include_all_active: bool = False
    membership_type_ids: FrozenSet[str] = frozenset()
    voice_group_ids: FrozenSet[str] = frozenset()
    voice_type_ids: FrozenSet[str] = frozenset()

    @field_validator("membership_type_ids", "voice_group_ids", "voice_type_ids", mode="before")
    @classmethod
    def _norm_ids(cls, v: Any) -> FrozenSet[str]:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(s for s in (str(x).strip() for x in v) if s)

    @classmethod
    def from_stored(cls, entity: Targeted) -> "TargetSpec":
        """
        Spec as persisted on an entity; voice_type_ids is the expanded closure.
        """
        return cls(
            include_all_active=bool(entity.include_all_active),
            membership_type_ids=entity.target_membership_types or [],
            voice_group_ids=entity.target_voice_groups or [],
            voice_type_ids=entity.target_voice_types or [],
        )

    @property
    def is_unrestricted(self) -> bool:
        """True when no membership/group/type criterion is set at all."""
        return not (self.membership_type_ids or self.voice_group_ids or self.voice_type_ids)


@dataclass(frozen=True)
class ExpandedTargeting:
    voice_group_ids: List[str]
    voice_type_ids: List[str]


def expand(session: Session, voice_group_ids: Iterable[str], voice_type_ids: Iterable[str]) -> ExpandedTargeting:
    """
    Expand a raw group/type selection into a closed set of voice-type ids.

    - Every active VoiceType whose parent is one of voice_group_ids is added
      to the explicit voice_type_ids (set union, sorted for stable storage).
    - voice_group_ids passes through unchanged: members sitting directly in a
      group without a sub-voice must still match on the group itself.
    - Unknown or retired ids contribute nothing; nothing is raised.
    """
    groups = list(voice_group_ids)
    explicit = set(voice_type_ids)

    children: List[str] = []
    if groups:
        children = list(
            session.exec(
                select(VoiceType.id).where(
                    VoiceType.voice_group_id.in_(groups),
                    VoiceType.is_active == True,  # noqa: E712
                )
            ).all()
        )

    return ExpandedTargeting(
        voice_group_ids=groups,
        voice_type_ids=sorted(explicit.union(children)),
    )


def validate_target_ids(session: Session, choir_id: str, spec: TargetSpec) -> None:
    """
    Strict-mode boundary check: every id must be an active group/type or a
    membership type of the choir. Raises InvalidTargetingError otherwise.
    """
    hierarchy = VoiceHierarchy.load(session, choir_id)
    unknown = hierarchy.unknown_ids(spec.voice_group_ids, spec.voice_type_ids)

    if spec.membership_type_ids:
        known_mt = set(
            session.exec(select(MembershipType.id).where(MembershipType.choir_id == choir_id)).all()
        )
        unknown += [m for m in spec.membership_type_ids if m not in known_mt]

    if unknown:
        raise InvalidTargetingError(unknown)


def apply_targeting(session: Session, entity: Targeted, spec: TargetSpec, *, strict: bool = False) -> ExpandedTargeting:
    """
    Expand `spec` and write both the raw selection and the closure onto the
    entity. Does not commit; reconciliation (for events) must follow in the
    same transaction.
    """
    if strict:
        validate_target_ids(session, entity.choir_id, spec)

    expanded = expand(session, sorted(spec.voice_group_ids), spec.voice_type_ids)

    entity.include_all_active = spec.include_all_active
    entity.target_membership_types = sorted(spec.membership_type_ids)
    entity.target_voice_groups = expanded.voice_group_ids
    entity.selected_voice_types = sorted(spec.voice_type_ids)
    entity.target_voice_types = expanded.voice_type_ids

    session.add(entity)
    return expanded


def refresh_choir_closures(session: Session, choir_id: str) -> List[Event]:
    """
    Recompute stored closures for every event and post of a choir after the
    voice hierarchy changed (type added, retired, re-activated or moved).

    Returns the events whose closure changed; the caller reconciles them.
    """
    changed_events: List[Event] = []
    changed_posts = 0

    for model in (Event, InfoFeedPost):
        rows = session.exec(select(model).where(model.choir_id == choir_id)).all()
        for row in rows:
            expanded = expand(session, row.target_voice_groups or [], row.selected_voice_types or [])
            if expanded.voice_type_ids == sorted(row.target_voice_types or []):
                continue
            row.target_voice_types = expanded.voice_type_ids
            session.add(row)
            if isinstance(row, Event):
                changed_events.append(row)
            else:
                changed_posts += 1

    logger.info(
        "refreshed targeting closures for choir %s: %d events, %d posts changed",
        choir_id,
        len(changed_events),
        changed_posts,
    )
    return changed_events
