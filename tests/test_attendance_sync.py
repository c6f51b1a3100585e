"""
Tests for attendance reconciliation and the eligible-member query.
"""

import pytest
from sqlmodel import select

from choirhub.models import EventAttendance, IntendedStatus, Member
from choirhub.services.attendance_sync import (
    active_members_query,
    get_eligible_members,
    get_eligible_members_for_event,
    reconcile,
)
from choirhub.services.eligibility import is_on_roster
from choirhub.services.errors import NotFoundError
from choirhub.services.events import create_event, reconcile_choir_events, update_event_targeting
from choirhub.services.members import create_member, update_member_voice
from choirhub.services.targeting import TargetSpec


def _rows(session, event_id):
    return session.exec(select(EventAttendance).where(EventAttendance.event_id == event_id)).all()


def _soprano_event(session, start_time):
    return create_event(
        session,
        choir_id="c1",
        title="Soprano sectional",
        start_time=start_time,
        target=TargetSpec(voice_group_ids=["g1"], include_all_active=False),
    )


class TestEndToEnd:
    def test_soprano_sectional(self, session, choir, next_week):
        event = _soprano_event(session, next_week)

        assert event.target_voice_types == ["sop1", "sop2"]
        assert {m.id for m in get_eligible_members_for_event(session, event.id)} == {"A", "B"}

        rows = _rows(session, event.id)
        assert sorted(r.member_id for r in rows) == ["A", "B"]
        assert all(r.intended_status == IntendedStatus.NOT_RESPONDED for r in rows)
        assert all(r.actual_status is None for r in rows)

    def test_reconcile_is_idempotent(self, session, choir, next_week):
        event = _soprano_event(session, next_week)

        assert reconcile(session, event.id) == 0
        assert reconcile(session, event.id) == 0
        assert len(_rows(session, event.id)) == 2


class TestReconcile:
    def test_include_all_active_rosters_active_members_only(self, session, choir, passive_member, next_week):
        event = create_event(
            session,
            choir_id="c1",
            title="Concert",
            start_time=next_week,
            target=TargetSpec(include_all_active=True),
        )
        assert sorted(r.member_id for r in _rows(session, event.id)) == ["A", "B", "C"]

    def test_inactive_membership_excluded_even_when_section_targeted(self, session, choir, passive_member, next_week):
        event = _soprano_event(session, next_week)
        assert "P" not in {r.member_id for r in _rows(session, event.id)}

    def test_targeting_edit_is_additive(self, session, choir, next_week):
        event = _soprano_event(session, next_week)

        created = update_event_targeting(session, event, TargetSpec(voice_group_ids=["g3"]))

        assert created == 1
        # A and B no longer match but keep their rows
        assert sorted(r.member_id for r in _rows(session, event.id)) == ["A", "B", "C"]

    def test_existing_rows_are_not_touched(self, session, choir, next_week):
        event = _soprano_event(session, next_week)
        row = next(r for r in _rows(session, event.id) if r.member_id == "A")
        row.intended_status = IntendedStatus.ATTENDING
        session.add(row)
        session.flush()

        update_event_targeting(session, event, TargetSpec(include_all_active=True))

        row = next(r for r in _rows(session, event.id) if r.member_id == "A")
        assert row.intended_status == IntendedStatus.ATTENDING

    def test_type_only_selection(self, session, choir, next_week):
        event = create_event(
            session,
            choir_id="c1",
            title="1st sopranos",
            start_time=next_week,
            target=TargetSpec(voice_type_ids=["sop1"]),
        )
        assert [r.member_id for r in _rows(session, event.id)] == ["B"]

    def test_new_member_joining_targeted_section(self, session, choir, next_week):
        event = _soprano_event(session, next_week)

        create_member(
            session,
            choir_id="c1",
            name="Dora",
            membership_type_id="mt_active",
            voice_group_id="g1",
            voice_type_id="sop2",
        )
        assert reconcile_choir_events(session, "c1") == 1
        assert len(_rows(session, event.id)) == 3

    def test_member_moving_into_section(self, session, choir, next_week):
        event = _soprano_event(session, next_week)

        carl = session.get(Member, "C")
        update_member_voice(session, carl, voice_group_id="g1")
        reconcile_choir_events(session, "c1")

        assert "C" in {r.member_id for r in _rows(session, event.id)}

    def test_unknown_event(self, session, choir):
        with pytest.raises(NotFoundError):
            reconcile(session, "missing")


class TestEligibleMembersQuery:
    @pytest.mark.parametrize(
        "target",
        [
            TargetSpec(),
            TargetSpec(include_all_active=True),
            TargetSpec(voice_group_ids=["g1"], voice_type_ids=["sop1", "sop2"]),
            TargetSpec(voice_type_ids=["sop1"]),
            TargetSpec(voice_group_ids=["g3", "g4"]),
            TargetSpec(membership_type_ids=["mt_active"]),
            TargetSpec(membership_type_ids=["mt_other"], voice_type_ids=["alt1"]),
        ],
    )
    def test_store_filter_agrees_with_predicate(self, session, choir, passive_member, target):
        candidates = session.exec(active_members_query("c1")).all()
        expected = {m.id for m in candidates if is_on_roster(m, target)}

        assert {m.id for m in get_eligible_members(session, target, "c1")} == expected

    def test_other_choir_members_are_excluded(self, session, choir):
        assert {m.id for m in get_eligible_members(session, TargetSpec(include_all_active=True), "c2")} == set()
