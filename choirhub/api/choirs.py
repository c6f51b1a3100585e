from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field as PydField
from sqlmodel import Session, select

from ..database import get_db
from ..models.choir import Choir, MembershipType
from ..models.member import Member
from ..services.voice_hierarchy import VoiceHierarchy, get_members_by_voice_group

router = APIRouter(prefix="/choirs", tags=["choirs"])


# -----------------------------
# Schemas
# -----------------------------

class ChoirCreate(BaseModel):
    name: str = PydField(..., min_length=1)
    description: Optional[str] = None
    organization_type: str = "choir"


class MembershipTypeCreate(BaseModel):
    name: str = PydField(..., min_length=1)
    display_name: Optional[str] = None
    is_active_membership: bool = True
    can_access_system: bool = True
    can_vote: bool = True
    sort_order: int = 0
    description: Optional[str] = None


# -----------------------------
# Helpers
# -----------------------------

def _get_choir(db: Session, choir_id: str) -> Choir:
    choir = db.get(Choir, choir_id)
    if not choir:
        raise HTTPException(status_code=404, detail="Choir not found")
    return choir


# -----------------------------
# Routes
# -----------------------------

@router.post("/", response_model=Choir)
def create_choir(payload: ChoirCreate, db: Session = Depends(get_db)) -> Choir:
    choir = Choir(
        name=payload.name,
        description=payload.description,
        organization_type=payload.organization_type,
    )
    db.add(choir)
    db.commit()
    db.refresh(choir)
    return choir


@router.get("/{choir_id}", response_model=Choir)
def get_choir(choir_id: str, db: Session = Depends(get_db)) -> Choir:
    return _get_choir(db, choir_id)


@router.post("/{choir_id}/membership-types", response_model=MembershipType)
def create_membership_type(choir_id: str, payload: MembershipTypeCreate, db: Session = Depends(get_db)) -> MembershipType:
    _get_choir(db, choir_id)

    mt = MembershipType(
        choir_id=choir_id,
        name=payload.name,
        display_name=payload.display_name or payload.name,
        is_active_membership=payload.is_active_membership,
        can_access_system=payload.can_access_system,
        can_vote=payload.can_vote,
        sort_order=payload.sort_order,
        description=payload.description,
    )
    db.add(mt)
    db.commit()
    db.refresh(mt)
    return mt


@router.get("/{choir_id}/membership-types", response_model=List[MembershipType])
def list_membership_types(choir_id: str, db: Session = Depends(get_db)) -> List[MembershipType]:
    _get_choir(db, choir_id)
    q = (
        select(MembershipType)
        .where(MembershipType.choir_id == choir_id)
        .order_by(MembershipType.sort_order, MembershipType.name)
    )
    return list(db.exec(q).all())


@router.get("/{choir_id}/voices")
def get_voice_hierarchy(choir_id: str, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    """
    Active voice groups in display order, each with its active voice types.
    """
    _get_choir(db, choir_id)
    return VoiceHierarchy.load(db, choir_id).tree()


@router.get("/{choir_id}/members", response_model=List[Member])
def list_members(
    choir_id: str,
    voice_group_id: Optional[List[str]] = Query(default=None),
    limit: int = 500,
    offset: int = 0,
    db: Session = Depends(get_db),
) -> List[Member]:
    """
    List a choir's members. With voice_group_id, only members of those
    sections (directly or through a sub-voice).
    """
    _get_choir(db, choir_id)

    if voice_group_id:
        return get_members_by_voice_group(db, choir_id, voice_group_id)

    limit = max(1, min(limit, 2000))
    offset = max(0, offset)
    q = select(Member).where(Member.choir_id == choir_id).order_by(Member.name).offset(offset).limit(limit)
    return list(db.exec(q).all())
