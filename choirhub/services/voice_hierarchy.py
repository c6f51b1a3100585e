from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from sqlalchemy import or_
from sqlmodel import Session, select

from ..models.member import Member
from ..models.voice import VoiceCategory, VoiceGroup, VoiceType
from .errors import InvalidVoiceAssignmentError

VoiceRow = Union[VoiceGroup, VoiceType]


def _display_order(row: VoiceRow):
    return (row.sort_order or 0, row.display_name or "")


class VoiceHierarchy:
    """
    Read-only view over one choir's voice groups and voice types.

    Loads both tables once; every accessor after that is a dict lookup. Retired
    rows are kept in the view (members may still point at them) but are
    skipped by the `active_only` accessors.
    """

    def __init__(self, choir_id: str, groups: Iterable[VoiceGroup], types: Iterable[VoiceType]) -> None:
        self.choir_id = choir_id
        self._groups: Dict[str, VoiceGroup] = {g.id: g for g in groups}
        self._types: Dict[str, VoiceType] = {t.id: t for t in types}

    @classmethod
    def load(cls, session: Session, choir_id: str) -> "VoiceHierarchy":
        groups = session.exec(select(VoiceGroup).where(VoiceGroup.choir_id == choir_id)).all()
        types = session.exec(select(VoiceType).where(VoiceType.choir_id == choir_id)).all()
        return cls(choir_id, groups, types)

    # -------------------------
    # Accessors
    # -------------------------

    def groups(self, *, active_only: bool = True) -> List[VoiceGroup]:
        rows = [g for g in self._groups.values() if g.is_active or not active_only]
        return sorted(rows, key=_display_order)

    def types_for_group(self, group_id: str, *, active_only: bool = True) -> List[VoiceType]:
        rows = [
            t
            for t in self._types.values()
            if t.voice_group_id == group_id and (t.is_active or not active_only)
        ]
        return sorted(rows, key=_display_order)

    def parent_of(self, type_id: str) -> Optional[str]:
        t = self._types.get(type_id)
        return t.voice_group_id if t else None

    def category_of(self, voice_id: str) -> Optional[VoiceCategory]:
        if voice_id in self._groups:
            return VoiceCategory.GROUP
        if voice_id in self._types:
            return VoiceCategory.TYPE
        return None

    def unknown_ids(self, group_ids: Iterable[str], type_ids: Iterable[str]) -> List[str]:
        """Ids that are not an active group/type of this choir, respectively."""
        bad = [g for g in group_ids if not (g in self._groups and self._groups[g].is_active)]
        bad += [t for t in type_ids if not (t in self._types and self._types[t].is_active)]
        return bad

    def tree(self) -> List[Dict[str, Any]]:
        """
        Display hierarchy: active groups in order, each with its active types.
        """
        out: List[Dict[str, Any]] = []
        for g in self.groups():
            out.append(
                {
                    "id": g.id,
                    "category": g.category.value,
                    "value": g.value,
                    "display_name": g.display_name,
                    "sort_order": g.sort_order,
                    "voice_types": [
                        {
                            "id": t.id,
                            "category": t.category.value,
                            "parent_id": t.parent_id,
                            "value": t.value,
                            "display_name": t.display_name,
                            "sort_order": t.sort_order,
                        }
                        for t in self.types_for_group(g.id)
                    ],
                }
            )
        return out

    # -------------------------
    # Guards
    # -------------------------

    def check_assignment(self, voice_group_id: str, voice_type_id: Optional[str]) -> None:
        """
        Raise InvalidVoiceAssignmentError unless the group belongs to this choir
        and the (optional) type sits directly under that group.
        """
        if voice_group_id not in self._groups:
            raise InvalidVoiceAssignmentError(f"Voice group {voice_group_id} is not part of this choir")

        if voice_type_id is None:
            return

        parent = self.parent_of(voice_type_id)
        if parent is None:
            raise InvalidVoiceAssignmentError(f"Voice type {voice_type_id} is not part of this choir")
        if parent != voice_group_id:
            raise InvalidVoiceAssignmentError(
                f"Voice type {voice_type_id} belongs to group {parent}, not {voice_group_id}"
            )


def get_voice_types_for_group(session: Session, voice_group_id: str) -> List[VoiceType]:
    q = (
        select(VoiceType)
        .where(VoiceType.voice_group_id == voice_group_id, VoiceType.is_active == True)  # noqa: E712
        .order_by(VoiceType.sort_order, VoiceType.display_name)
    )
    return list(session.exec(q).all())


def get_members_by_voice_group(session: Session, choir_id: str, voice_group_ids: Sequence[str]) -> List[Member]:
    """
    Members directly in one of the groups, or holding an active type under one
    of them.
    """
    if not voice_group_ids:
        return []

    type_ids = session.exec(
        select(VoiceType.id).where(
            VoiceType.voice_group_id.in_(voice_group_ids),
            VoiceType.is_active == True,  # noqa: E712
        )
    ).all()

    clauses = [Member.voice_group_id.in_(voice_group_ids)]
    if type_ids:
        clauses.append(Member.voice_type_id.in_(list(type_ids)))

    q = select(Member).where(Member.choir_id == choir_id, or_(*clauses)).order_by(Member.name)
    return list(session.exec(q).all())
