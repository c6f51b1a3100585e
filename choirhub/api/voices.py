from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field as PydField
from sqlmodel import Session

from ..database import get_db
from ..models.choir import Choir
from ..models.voice import VoiceGroup, VoiceType
from ..services.events import on_hierarchy_changed, reconcile_choir_events
from ..services.members import follow_voice_type_move

router = APIRouter(prefix="/voices", tags=["voices"])


# -----------------------------
# Schemas
# -----------------------------

class VoiceGroupCreate(BaseModel):
    choir_id: str
    value: str = PydField(..., min_length=1)
    display_name: Optional[str] = None
    sort_order: int = 0


class VoiceGroupPatch(BaseModel):
    display_name: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class VoiceTypeCreate(BaseModel):
    voice_group_id: str
    value: str = PydField(..., min_length=1)
    display_name: Optional[str] = None
    sort_order: int = 0


class VoiceTypePatch(BaseModel):
    """
    Partial update. Moving a type (voice_group_id) or toggling is_active
    changes which types sit under a group, so stored closures are refreshed.
    Members holding a moved type move to the new group with it.
    """
    display_name: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None
    voice_group_id: Optional[str] = None


# -----------------------------
# Routes
# -----------------------------

@router.post("/groups", response_model=VoiceGroup)
def create_voice_group(payload: VoiceGroupCreate, db: Session = Depends(get_db)) -> VoiceGroup:
    if not db.get(Choir, payload.choir_id):
        raise HTTPException(status_code=404, detail="Choir not found")

    group = VoiceGroup(
        choir_id=payload.choir_id,
        value=payload.value,
        display_name=payload.display_name or payload.value,
        sort_order=payload.sort_order,
    )
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


@router.patch("/groups/{group_id}", response_model=VoiceGroup)
def patch_voice_group(group_id: str, payload: VoiceGroupPatch, db: Session = Depends(get_db)) -> VoiceGroup:
    group = db.get(VoiceGroup, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Voice group not found")

    if payload.display_name is not None:
        group.display_name = payload.display_name
    if payload.sort_order is not None:
        group.sort_order = payload.sort_order
    if payload.is_active is not None:
        group.is_active = payload.is_active

    db.add(group)
    db.commit()
    db.refresh(group)
    return group


@router.post("/types", response_model=VoiceType)
def create_voice_type(payload: VoiceTypeCreate, db: Session = Depends(get_db)) -> VoiceType:
    """
    Add a sub-voice under a group. Events and posts targeting that group pick
    it up immediately, and newly matching members get attendance rows.
    """
    group = db.get(VoiceGroup, payload.voice_group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Voice group not found")

    vt = VoiceType(
        choir_id=group.choir_id,
        voice_group_id=group.id,
        value=payload.value,
        display_name=payload.display_name or payload.value,
        sort_order=payload.sort_order,
    )
    db.add(vt)
    db.flush()

    on_hierarchy_changed(db, group.choir_id)

    db.commit()
    db.refresh(vt)
    return vt


@router.patch("/types/{type_id}", response_model=VoiceType)
def patch_voice_type(type_id: str, payload: VoiceTypePatch, db: Session = Depends(get_db)) -> VoiceType:
    vt = db.get(VoiceType, type_id)
    if not vt:
        raise HTTPException(status_code=404, detail="Voice type not found")

    structural = False
    moved = 0

    if payload.voice_group_id is not None and payload.voice_group_id != vt.voice_group_id:
        new_group = db.get(VoiceGroup, payload.voice_group_id)
        if not new_group or new_group.choir_id != vt.choir_id:
            raise HTTPException(status_code=404, detail="Voice group not found")
        vt.voice_group_id = new_group.id
        moved = follow_voice_type_move(db, vt.id, new_group.id)
        structural = True

    if payload.is_active is not None and payload.is_active != vt.is_active:
        vt.is_active = payload.is_active
        structural = True

    if payload.display_name is not None:
        vt.display_name = payload.display_name
    if payload.sort_order is not None:
        vt.sort_order = payload.sort_order

    db.add(vt)
    db.flush()

    if structural:
        on_hierarchy_changed(db, vt.choir_id)
    if moved:
        # Moved members may now match events targeting their new group
        reconcile_choir_events(db, vt.choir_id)

    db.commit()
    db.refresh(vt)
    return vt
