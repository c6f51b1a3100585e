from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field as PydField
from sqlmodel import Session

from ..database import get_db
from ..models.chat import Chat, ChatMessage
from ..models.choir import Choir
from ..models.voice import VoiceGroup, VoiceType
from ..services.errors import NotPermittedError
from ..services.messaging import can_member_send_message, create_voice_chat, list_messages, send_message

router = APIRouter(prefix="/chats", tags=["chats"])


# -----------------------------
# Schemas
# -----------------------------

class ChatCreate(BaseModel):
    choir_id: str
    created_by: str
    name: Optional[str] = None

    # Group only: whole section. Type: that sub-voice only.
    voice_group_id: Optional[str] = None
    voice_type_id: Optional[str] = None
    membership_type_ids: List[str] = []


class MessageCreate(BaseModel):
    sender_id: str
    content: str = PydField(..., min_length=1, max_length=4000)


# -----------------------------
# Routes
# -----------------------------

@router.post("/", response_model=Chat)
def create_chat(payload: ChatCreate, db: Session = Depends(get_db)) -> Chat:
    if not db.get(Choir, payload.choir_id):
        raise HTTPException(status_code=404, detail="Choir not found")

    if payload.voice_group_id is not None:
        group = db.get(VoiceGroup, payload.voice_group_id)
        if not group or group.choir_id != payload.choir_id:
            raise HTTPException(status_code=404, detail="Voice group not found")

    if payload.voice_type_id is not None:
        vt = db.get(VoiceType, payload.voice_type_id)
        if not vt or vt.choir_id != payload.choir_id:
            raise HTTPException(status_code=404, detail="Voice type not found")
        if payload.voice_group_id is not None and vt.voice_group_id != payload.voice_group_id:
            raise HTTPException(status_code=400, detail="voice_type_id does not belong to voice_group_id")

    chat = create_voice_chat(
        db,
        choir_id=payload.choir_id,
        created_by=payload.created_by,
        name=payload.name,
        voice_group_id=payload.voice_group_id,
        voice_type_id=payload.voice_type_id,
        membership_type_ids=payload.membership_type_ids,
    )
    db.commit()
    db.refresh(chat)
    return chat


@router.post("/{chat_id}/messages", response_model=ChatMessage)
def post_message(chat_id: str, payload: MessageCreate, db: Session = Depends(get_db)) -> ChatMessage:
    message = send_message(db, chat_id=chat_id, sender_id=payload.sender_id, content=payload.content)
    db.commit()
    db.refresh(message)
    return message


@router.get("/{chat_id}/messages", response_model=List[ChatMessage])
def read_messages(chat_id: str, member_id: str, limit: int = 100, db: Session = Depends(get_db)) -> List[ChatMessage]:
    """Newest first. Only participants may read."""
    if not db.get(Chat, chat_id):
        raise HTTPException(status_code=404, detail="Chat not found")
    if not can_member_send_message(db, member_id, chat_id):
        raise NotPermittedError("Member is not a participant of this chat")
    return list_messages(db, chat_id, limit=max(1, min(limit, 500)))
