from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, Union

from sqlmodel import Session, select

from ..models.attendance import ActualStatus, EventAttendance, IntendedStatus
from ..models.event import AttendanceMode
from ..models.member import Member


class AttendanceLike(Protocol):
    intended_status: Union[IntendedStatus, str]
    actual_status: Optional[Union[ActualStatus, str]]


@dataclass(frozen=True)
class AttendanceSummary:
    """
    Counts for one event (or one voice group of an event).

    - attending is the explicit "attending" answers only.
    - effective_attending adds the non-responders on opt-out events, where
      silence means "will attend".
    - present/absent/late are counted independently of the intended status.
    """

    total: int
    attending: int
    not_attending: int
    tentative: int
    not_responded: int
    effective_attending: int
    present: int
    absent: int
    late: int


@dataclass(frozen=True)
class VoiceGroupAttendance:
    voice_group_id: str
    summary: AttendanceSummary


def summarize(rows: Iterable[AttendanceLike], attendance_mode: Union[AttendanceMode, str]) -> AttendanceSummary:
    intended: Counter = Counter()
    actual: Counter = Counter()
    total = 0

    for row in rows:
        total += 1
        intended[IntendedStatus(row.intended_status)] += 1
        if row.actual_status is not None:
            actual[ActualStatus(row.actual_status)] += 1

    attending = intended[IntendedStatus.ATTENDING]
    not_responded = intended[IntendedStatus.NOT_RESPONDED]
    opt_out = AttendanceMode(attendance_mode) is AttendanceMode.OPT_OUT

    return AttendanceSummary(
        total=total,
        attending=attending,
        not_attending=intended[IntendedStatus.NOT_ATTENDING],
        tentative=intended[IntendedStatus.TENTATIVE],
        not_responded=not_responded,
        effective_attending=attending + (not_responded if opt_out else 0),
        present=actual[ActualStatus.PRESENT],
        absent=actual[ActualStatus.ABSENT],
        late=actual[ActualStatus.LATE],
    )


def summarize_by_voice_group(
    pairs: Iterable[Tuple[AttendanceLike, Member]],
    attendance_mode: Union[AttendanceMode, str],
) -> List[VoiceGroupAttendance]:
    """
    Per-section breakdown, keyed by the member's current voice group.
    Groups appear in order of first occurrence.
    """
    buckets: Dict[str, List[AttendanceLike]] = {}
    for row, member in pairs:
        buckets.setdefault(member.voice_group_id, []).append(row)

    return [
        VoiceGroupAttendance(voice_group_id=group_id, summary=summarize(rows, attendance_mode))
        for group_id, rows in buckets.items()
    ]


def load_event_attendance(session: Session, event_id: str) -> List[Tuple[EventAttendance, Member]]:
    q = (
        select(EventAttendance, Member)
        .join(Member, Member.id == EventAttendance.member_id)
        .where(EventAttendance.event_id == event_id)
        .order_by(Member.voice_group_id, Member.name)
    )
    return [(row, member) for row, member in session.exec(q).all()]
