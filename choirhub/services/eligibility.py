from __future__ import annotations

from typing import Optional, Protocol

from ..models.chat import Chat
from .targeting import TargetSpec


class VoicedMember(Protocol):
    """Anything shaped like a Member row (ORM model, schema, test double)."""

    membership_type_id: str
    voice_group_id: str
    voice_type_id: Optional[str]


# -------------------------
# Clauses
# -------------------------


def _matches_membership_type(member: VoicedMember, target: TargetSpec, *, empty_matches_all: bool) -> bool:
    if not target.membership_type_ids:
        return empty_matches_all
    return member.membership_type_id in target.membership_type_ids


def _matches_voice(member: VoicedMember, target: TargetSpec) -> bool:
    if member.voice_group_id in target.voice_group_ids:
        return True
    return member.voice_type_id is not None and member.voice_type_id in target.voice_type_ids


# -------------------------
# Predicates
# -------------------------


def is_eligible(member: VoicedMember, target: TargetSpec) -> bool:
    """
    Full eligibility check used for event listings and the info feed.

    Pure OR of:
      1. target.include_all_active
      2. no membership-type restriction (empty list), or the member's type is listed
      3. the member's voice group is targeted
      4. the member has a voice type and it is in the (expanded) type list

    The caller must already have filtered to members whose membership type is
    active and grants system access; this function does not re-check it.
    """
    if target.include_all_active:
        return True
    if _matches_membership_type(member, target, empty_matches_all=True):
        return True
    return _matches_voice(member, target)


def is_on_roster(member: VoicedMember, target: TargetSpec) -> bool:
    """
    Attendance-roster rule used when creating attendance placeholders.

    Same clauses as is_eligible, except the empty membership-type list is only
    a wildcard when nothing else is targeted either. A selection of Soprano
    only therefore rosters the sopranos, not the whole choir.
    """
    if target.include_all_active or target.is_unrestricted:
        return True
    if _matches_membership_type(member, target, empty_matches_all=False):
        return True
    return _matches_voice(member, target)


def is_chat_participant(member: VoicedMember, chat: Chat) -> bool:
    """
    Chat membership: no include-all shortcut and no empty-list wildcard.

    - voice_group_id set and voice_type_id empty: every member of that group,
      whatever their sub-voice
    - voice_type_id set: only members holding exactly that type
    - membership_type_ids (if non-empty): members of those membership types
    """
    if chat.voice_type_id is None and chat.voice_group_id is not None:
        if member.voice_group_id == chat.voice_group_id:
            return True

    if chat.voice_type_id is not None and member.voice_type_id == chat.voice_type_id:
        return True

    return member.membership_type_id in (chat.membership_type_ids or [])
