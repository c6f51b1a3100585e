from __future__ import annotations

import logging
from typing import Optional

from sqlmodel import Session, select

from ..models.choir import MembershipType, utcnow
from ..models.member import Member
from .errors import InvalidVoiceAssignmentError, NotFoundError
from .voice_hierarchy import VoiceHierarchy

logger = logging.getLogger(__name__)


def get_member(session: Session, member_id: str) -> Member:
    member = session.get(Member, member_id)
    if not member:
        raise NotFoundError("Member", member_id)
    return member


def has_active_membership(session: Session, member: Member) -> bool:
    """
    Targeting precondition: the member's membership type is an active
    membership with system access.
    """
    mt = session.get(MembershipType, member.membership_type_id)
    return bool(mt and mt.grants_access())


def _check_membership_type(session: Session, choir_id: str, membership_type_id: str) -> None:
    mt = session.get(MembershipType, membership_type_id)
    if not mt or mt.choir_id != choir_id:
        raise InvalidVoiceAssignmentError(f"Membership type {membership_type_id} is not part of this choir")


def create_member(
    session: Session,
    *,
    choir_id: str,
    name: str,
    membership_type_id: str,
    voice_group_id: str,
    voice_type_id: Optional[str] = None,
    email: Optional[str] = None,
    notes: Optional[str] = None,
) -> Member:
    """
    Add a member. The voice type (if any) must sit under the voice group,
    and everything must belong to the same choir.
    """
    _check_membership_type(session, choir_id, membership_type_id)
    VoiceHierarchy.load(session, choir_id).check_assignment(voice_group_id, voice_type_id)

    member = Member(
        choir_id=choir_id,
        name=name,
        email=email,
        membership_type_id=membership_type_id,
        voice_group_id=voice_group_id,
        voice_type_id=voice_type_id,
        notes=notes,
    )
    session.add(member)
    session.flush()
    return member


def follow_voice_type_move(session: Session, voice_type_id: str, voice_group_id: str) -> int:
    """
    A voice type was moved under another group: move every member holding it
    along, so their type still sits under their group. Returns members moved.
    """
    members = session.exec(
        select(Member).where(Member.voice_type_id == voice_type_id, Member.voice_group_id != voice_group_id)
    ).all()

    now = utcnow()
    for member in members:
        member.voice_group_id = voice_group_id
        member.updated_at = now
        session.add(member)

    if members:
        session.flush()
        logger.info("moved %d members with voice type %s to group %s", len(members), voice_type_id, voice_group_id)
    return len(members)


def update_member_voice(
    session: Session,
    member: Member,
    *,
    voice_group_id: Optional[str] = None,
    voice_type_id: Optional[str] = None,
    clear_voice_type: bool = False,
    membership_type_id: Optional[str] = None,
) -> Member:
    """
    Change a member's section, sub-voice or membership type.

    Moving to another group without naming a type drops the old type, since
    it would no longer sit under the new group.
    """
    new_group = voice_group_id or member.voice_group_id
    if clear_voice_type:
        new_type = None
    elif voice_type_id is not None:
        new_type = voice_type_id
    elif new_group != member.voice_group_id:
        new_type = None
    else:
        new_type = member.voice_type_id

    VoiceHierarchy.load(session, member.choir_id).check_assignment(new_group, new_type)

    if membership_type_id is not None:
        _check_membership_type(session, member.choir_id, membership_type_id)
        member.membership_type_id = membership_type_id

    member.voice_group_id = new_group
    member.voice_type_id = new_type
    member.updated_at = utcnow()

    session.add(member)
    session.flush()
    return member
