"""
A few hundred members across all sections, several events and posts.

Seeding (on top of the fixture's A, B, C), for i in 0..359:
  section     g1, g2, g3, g4 by i % 4
  sub-voice   sopranos alternate sop1/sop2; every third alto holds alt1
  membership  i % 10 == 9 passive, i % 10 == 3 board, everyone else active
"""

from datetime import timedelta

import pytest
from sqlalchemy import func
from sqlmodel import select

from choirhub.models import EventAttendance, Member, MembershipType
from choirhub.services.attendance_sync import active_members_query, get_eligible_members_for_event, reconcile
from choirhub.services.eligibility import is_on_roster
from choirhub.services.events import create_event, get_events_for_member, reconcile_choir_events
from choirhub.services.messaging import create_info_feed_post, get_info_feed_for_member
from choirhub.services.targeting import TargetSpec

SIZE = 360
GROUPS = ["g1", "g2", "g3", "g4"]


def _seed_member(i):
    group = GROUPS[i % 4]
    k = i // 4
    voice_type = None
    if group == "g1":
        voice_type = "sop1" if k % 2 == 0 else "sop2"
    elif group == "g2" and k % 3 == 0:
        voice_type = "alt1"

    if i % 10 == 9:
        membership = "mt_passive"
    elif i % 10 == 3:
        membership = "mt_board"
    else:
        membership = "mt_active"

    return Member(
        id=f"m{i:03d}",
        choir_id="c1",
        name=f"Member {i:03d}",
        membership_type_id=membership,
        voice_group_id=group,
        voice_type_id=voice_type,
    )


@pytest.fixture
def large_choir(session, choir):
    session.add(MembershipType(id="mt_board", choir_id="c1", name="board", display_name="Board"))
    session.flush()
    session.add_all([_seed_member(i) for i in range(SIZE)])
    session.commit()
    return choir


@pytest.fixture
def season(session, large_choir, next_week):
    specs = [
        ("Full rehearsal", TargetSpec(include_all_active=True)),
        ("Soprano sectional", TargetSpec(voice_group_ids=["g1"])),
        ("1st Alto coaching", TargetSpec(voice_type_ids=["alt1"])),
        ("Board meeting", TargetSpec(membership_type_ids=["mt_board"])),
        ("Tenors and board", TargetSpec(membership_type_ids=["mt_board"], voice_group_ids=["g3"])),
    ]
    events = {}
    for hours, (title, target) in enumerate(specs):
        events[title] = create_event(
            session,
            choir_id="c1",
            title=title,
            start_time=next_week + timedelta(hours=hours),
            target=target,
        )
    session.commit()
    return events


def _row_count(session, event_id):
    q = select(func.count()).select_from(EventAttendance).where(EventAttendance.event_id == event_id)
    return session.exec(q).one()


class TestRosterAtScale:
    def test_reconcile_counts(self, session, season):
        # 324 active seeded members plus A, B, C
        assert _row_count(session, season["Full rehearsal"].id) == 327
        # 90 seeded sopranos (none passive) plus A, B
        assert _row_count(session, season["Soprano sectional"].id) == 92
        # 30 alt1 holders, 6 of them passive
        assert _row_count(session, season["1st Alto coaching"].id) == 24
        assert _row_count(session, season["Board meeting"].id) == 36
        # 90 seeded tenors, 36 board members, plus C
        assert _row_count(session, season["Tenors and board"].id) == 127

        assert session.exec(select(func.count()).select_from(EventAttendance)).one() == 606

    def test_second_reconcile_creates_nothing(self, session, season):
        assert reconcile_choir_events(session, "c1") == 0
        for event in season.values():
            assert reconcile(session, event.id) == 0

    def test_eligible_members_follow_roster_rule(self, session, season):
        candidates = session.exec(active_members_query("c1")).all()
        assert len(candidates) == 327

        for event in season.values():
            target = TargetSpec.from_stored(event)
            expected = sorted(m.id for m in candidates if is_on_roster(m, target))
            got = sorted(m.id for m in get_eligible_members_for_event(session, event.id))
            assert got == expected, event.title

            rows = session.exec(select(EventAttendance.member_id).where(EventAttendance.event_id == event.id)).all()
            assert sorted(rows) == expected, event.title

    def test_passive_members_have_no_rows(self, session, season):
        passive_ids = [f"m{i:03d}" for i in range(SIZE) if i % 10 == 9]
        q = select(EventAttendance).where(EventAttendance.member_id.in_(passive_ids))
        assert session.exec(q).all() == []


class TestMemberViewsAtScale:
    def test_events_for_soprano(self, session, season):
        # m000: active, g1/sop1
        items = get_events_for_member(session, "m000")
        assert [i.event.title for i in items] == ["Full rehearsal", "Soprano sectional", "1st Alto coaching"]
        # Listed through the empty membership wildcard, but not on the alto roster
        assert [i.attendance is not None for i in items] == [True, True, False]

    def test_events_for_board_bass(self, session, season):
        # m003: board, g4
        items = get_events_for_member(session, "m003")
        assert [i.event.title for i in items] == [
            "Full rehearsal",
            "Soprano sectional",
            "1st Alto coaching",
            "Board meeting",
            "Tenors and board",
        ]
        assert [i.attendance is not None for i in items] == [True, False, False, True, True]

    def test_events_for_tenor(self, session, season):
        # m002: active, g3
        titles = [i.event.title for i in get_events_for_member(session, "m002")]
        assert titles == ["Full rehearsal", "Soprano sectional", "1st Alto coaching", "Tenors and board"]

    def test_passive_member_sees_nothing(self, session, season):
        assert get_events_for_member(session, "m009") == []
        assert get_info_feed_for_member(session, "m009") == []

    def test_info_feed(self, session, large_choir):
        posts = [
            ("Season plan", TargetSpec(include_all_active=True)),
            ("Alto notes", TargetSpec(voice_group_ids=["g2"])),
            ("Board minutes", TargetSpec(membership_type_ids=["mt_board"])),
            ("Bass parts for active members", TargetSpec(membership_type_ids=["mt_active"], voice_group_ids=["g4"])),
            ("Tenor parts for the board", TargetSpec(membership_type_ids=["mt_board"], voice_group_ids=["g3"])),
        ]
        for title, target in posts:
            create_info_feed_post(session, choir_id="c1", author_id="admin", title=title, content="...", target=target)
        session.commit()

        def titles(member_id):
            return {p.title for p in get_info_feed_for_member(session, member_id)}

        # m000: active soprano
        assert titles("m000") == {"Season plan", "Alto notes", "Bass parts for active members"}
        # m003: board bass
        assert titles("m003") == {
            "Season plan",
            "Alto notes",
            "Board minutes",
            "Bass parts for active members",
            "Tenor parts for the board",
        }
        # m002: active tenor
        assert titles("m002") == {
            "Season plan",
            "Alto notes",
            "Bass parts for active members",
            "Tenor parts for the board",
        }
