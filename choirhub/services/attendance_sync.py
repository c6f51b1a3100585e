from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, select

from ..models.attendance import EventAttendance, IntendedStatus
from ..models.choir import MembershipType
from ..models.event import Event
from ..models.member import Member
from .errors import NotFoundError
from .targeting import TargetSpec

logger = logging.getLogger(__name__)


def active_members_query(choir_id: str):
    """
    Members of a choir whose membership type is active and grants system
    access. Everything targeting-related starts from this candidate set.
    """
    return (
        select(Member)
        .join(MembershipType, MembershipType.id == Member.membership_type_id)
        .where(
            Member.choir_id == choir_id,
            MembershipType.is_active_membership == True,  # noqa: E712
            MembershipType.can_access_system == True,  # noqa: E712
        )
    )


def _roster_clause(target: TargetSpec) -> Optional[ColumnElement]:
    """
    Store-side version of eligibility.is_on_roster. None means "no filter".
    """
    if target.include_all_active or target.is_unrestricted:
        return None

    clauses = []
    if target.membership_type_ids:
        clauses.append(Member.membership_type_id.in_(sorted(target.membership_type_ids)))
    if target.voice_group_ids:
        clauses.append(Member.voice_group_id.in_(sorted(target.voice_group_ids)))
    if target.voice_type_ids:
        clauses.append(Member.voice_type_id.in_(sorted(target.voice_type_ids)))
    return or_(*clauses)


def get_eligible_members(session: Session, target: TargetSpec, choir_id: str) -> List[Member]:
    """
    Active members of `choir_id` that belong on the roster for `target`.

    `target` must carry the expanded voice-type closure (TargetSpec.from_stored
    on a persisted event does).
    """
    q = active_members_query(choir_id)
    clause = _roster_clause(target)
    if clause is not None:
        q = q.where(clause)
    return list(session.exec(q.order_by(Member.name)).all())


def get_event(session: Session, event_id: str) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise NotFoundError("Event", event_id)
    return event


def get_eligible_members_for_event(session: Session, event_id: str) -> List[Member]:
    event = get_event(session, event_id)
    return get_eligible_members(session, TargetSpec.from_stored(event), event.choir_id)


def reconcile(session: Session, event_id: str) -> int:
    """
    Create NOT_RESPONDED placeholders for every eligible member that has no
    attendance row for the event yet. Returns the number of rows created.

    Additive only:
    - existing rows are never updated
    - rows of members who no longer match are kept (history)

    Idempotent: a second call with unchanged targeting creates nothing.
    Flushes but does not commit; the caller's transaction decides atomicity.
    """
    event = get_event(session, event_id)
    eligible = get_eligible_members(session, TargetSpec.from_stored(event), event.choir_id)

    existing_member_ids = set(
        session.exec(select(EventAttendance.member_id).where(EventAttendance.event_id == event_id)).all()
    )

    created = 0
    for member in eligible:
        if member.id in existing_member_ids:
            continue
        session.add(
            EventAttendance(
                event_id=event_id,
                member_id=member.id,
                intended_status=IntendedStatus.NOT_RESPONDED,
            )
        )
        existing_member_ids.add(member.id)
        created += 1

    if created:
        session.flush()

    logger.info(
        "reconciled attendance for event %s: %d eligible, %d created",
        event_id,
        len(eligible),
        created,
    )
    return created
