"""
Tests for attendance counting.
"""

from types import SimpleNamespace

from choirhub.models import ActualStatus, AttendanceMode, IntendedStatus
from choirhub.services.attendance_summary import load_event_attendance, summarize, summarize_by_voice_group
from choirhub.services.events import create_event
from choirhub.services.targeting import TargetSpec


def _row(intended, actual=None):
    return SimpleNamespace(intended_status=intended, actual_status=actual)


ROWS = [
    _row(IntendedStatus.ATTENDING, ActualStatus.PRESENT),
    _row(IntendedStatus.ATTENDING, ActualStatus.LATE),
    _row(IntendedStatus.NOT_ATTENDING),
    _row(IntendedStatus.TENTATIVE, ActualStatus.PRESENT),
    _row(IntendedStatus.NOT_RESPONDED),
    _row(IntendedStatus.NOT_RESPONDED, ActualStatus.ABSENT),
]


def test_opt_out_counts_silence_as_attending():
    s = summarize(ROWS, AttendanceMode.OPT_OUT)

    assert s.total == 6
    assert s.attending == 2
    assert s.not_attending == 1
    assert s.tentative == 1
    assert s.not_responded == 2
    assert s.effective_attending == 4


def test_opt_in_counts_explicit_answers_only():
    s = summarize(ROWS, AttendanceMode.OPT_IN)

    assert s.attending == 2
    assert s.effective_attending == 2


def test_actual_counts_are_independent_of_intent():
    s = summarize(ROWS, "opt_in")

    assert (s.present, s.absent, s.late) == (2, 1, 1)


def test_accepts_raw_string_statuses():
    rows = [_row("attending", "present"), _row("not_responded")]
    s = summarize(rows, "opt_out")

    assert s.attending == 1
    assert s.not_responded == 1
    assert s.effective_attending == 2
    assert s.present == 1


def test_empty_event():
    s = summarize([], AttendanceMode.OPT_OUT)
    assert s.total == 0
    assert s.effective_attending == 0


def test_breakdown_by_voice_group():
    pairs = [
        (_row(IntendedStatus.ATTENDING), SimpleNamespace(voice_group_id="g1")),
        (_row(IntendedStatus.NOT_RESPONDED), SimpleNamespace(voice_group_id="g1")),
        (_row(IntendedStatus.NOT_ATTENDING), SimpleNamespace(voice_group_id="g3")),
    ]

    groups = summarize_by_voice_group(pairs, AttendanceMode.OPT_OUT)

    assert [g.voice_group_id for g in groups] == ["g1", "g3"]
    assert groups[0].summary.total == 2
    assert groups[0].summary.effective_attending == 2
    assert groups[1].summary.not_attending == 1
    assert groups[1].summary.effective_attending == 0


def test_load_event_attendance_joins_members(session, choir, next_week):
    event = create_event(
        session,
        choir_id="c1",
        title="Concert",
        start_time=next_week,
        target=TargetSpec(include_all_active=True),
    )

    pairs = load_event_attendance(session, event.id)

    assert [(row.member_id, member.voice_group_id) for row, member in pairs] == [
        ("A", "g1"),
        ("B", "g1"),
        ("C", "g3"),
    ]
    assert summarize([row for row, _ in pairs], event.attendance_mode).not_responded == 3
