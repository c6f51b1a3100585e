from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import Column
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field

from .choir import new_id, utcnow


class ChatType(str, Enum):
    VOICE_GROUP = "voice_group"
    VOICE_TYPE = "voice_type"
    MEMBERSHIP = "membership"
    GENERAL = "general"


class Chat(SQLModel, table=True):
    """
    A persistent chat room.

    Participation (see services.eligibility.is_chat_participant):
    - voice_group_id set, voice_type_id empty: the whole section
    - voice_type_id set: only that exact sub-voice
    - membership_type_ids (non-empty): members of those membership types
    There is no "everyone" shortcut and an empty membership list admits nobody.
    """

    __tablename__ = "chats"

    id: str = Field(default_factory=new_id, primary_key=True)
    choir_id: str = Field(foreign_key="choirs.id", index=True)

    name: Optional[str] = Field(default=None)
    type: ChatType = Field(default=ChatType.GENERAL, index=True)

    voice_group_id: Optional[str] = Field(default=None, foreign_key="voice_groups.id", index=True)
    voice_type_id: Optional[str] = Field(default=None, foreign_key="voice_types.id", index=True)

    membership_type_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    created_by: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)

    is_active: bool = Field(default=True, index=True)


class ChatMessage(SQLModel, table=True):
    __tablename__ = "chat_messages"

    id: str = Field(default_factory=new_id, primary_key=True)
    chat_id: str = Field(foreign_key="chats.id", index=True)

    # members.id of the sender
    sender_id: str = Field(foreign_key="members.id", index=True)
    content: str = Field(max_length=4000)

    sent_at: datetime = Field(default_factory=utcnow, index=True)
