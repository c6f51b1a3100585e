from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlmodel import Session, select

from ..models.chat import Chat, ChatMessage, ChatType
from ..models.info_feed import InfoFeedPost
from .eligibility import is_chat_participant, is_eligible
from .errors import NotFoundError, NotPermittedError
from .members import get_member, has_active_membership
from .targeting import TargetSpec, apply_targeting

logger = logging.getLogger(__name__)


# -------------------------
# Info feed
# -------------------------


def create_info_feed_post(
    session: Session,
    *,
    choir_id: str,
    author_id: str,
    title: str,
    content: str,
    target: TargetSpec,
    is_pinned: bool = False,
    allows_comments: bool = True,
    strict: bool = False,
) -> InfoFeedPost:
    post = InfoFeedPost(
        choir_id=choir_id,
        author_id=author_id,
        title=title,
        content=content,
        is_pinned=is_pinned,
        allows_comments=allows_comments,
    )
    apply_targeting(session, post, target, strict=strict)
    session.flush()
    return post


def get_info_feed_for_member(session: Session, member_id: str) -> List[InfoFeedPost]:
    """
    Posts of the member's choir the member may see: pinned first, then newest
    first. Uses the full eligibility predicate (include-all shortcut and the
    empty membership-type wildcard apply).
    """
    member = get_member(session, member_id)
    if not has_active_membership(session, member):
        return []

    q = (
        select(InfoFeedPost)
        .where(InfoFeedPost.choir_id == member.choir_id)
        .order_by(InfoFeedPost.is_pinned.desc(), InfoFeedPost.published_at.desc())
    )
    return [post for post in session.exec(q).all() if is_eligible(member, TargetSpec.from_stored(post))]


# -------------------------
# Chats
# -------------------------


def create_voice_chat(
    session: Session,
    *,
    choir_id: str,
    created_by: str,
    name: Optional[str] = None,
    voice_group_id: Optional[str] = None,
    voice_type_id: Optional[str] = None,
    membership_type_ids: Sequence[str] = (),
) -> Chat:
    """
    Create a chat. A group without a type makes a section-wide chat that
    covers every sub-voice of that group.
    """
    if voice_type_id is not None:
        chat_type = ChatType.VOICE_TYPE
    elif voice_group_id is not None:
        chat_type = ChatType.VOICE_GROUP
    elif membership_type_ids:
        chat_type = ChatType.MEMBERSHIP
    else:
        chat_type = ChatType.GENERAL

    chat = Chat(
        choir_id=choir_id,
        name=name,
        type=chat_type,
        voice_group_id=voice_group_id,
        voice_type_id=voice_type_id,
        membership_type_ids=sorted({m.strip() for m in membership_type_ids if m and m.strip()}),
        created_by=created_by,
    )
    session.add(chat)
    session.flush()
    return chat


def get_chats_for_member(session: Session, member_id: str) -> List[Chat]:
    member = get_member(session, member_id)
    q = (
        select(Chat)
        .where(Chat.choir_id == member.choir_id, Chat.is_active == True)  # noqa: E712
        .order_by(Chat.created_at)
    )
    return [chat for chat in session.exec(q).all() if is_chat_participant(member, chat)]


def can_member_send_message(session: Session, member_id: str, chat_id: str) -> bool:
    return any(chat.id == chat_id for chat in get_chats_for_member(session, member_id))


def send_message(session: Session, *, chat_id: str, sender_id: str, content: str) -> ChatMessage:
    if not session.get(Chat, chat_id):
        raise NotFoundError("Chat", chat_id)

    if not can_member_send_message(session, sender_id, chat_id):
        logger.info("member %s refused posting to chat %s", sender_id, chat_id)
        raise NotPermittedError("Member is not authorized to send messages in this chat")

    message = ChatMessage(chat_id=chat_id, sender_id=sender_id, content=content)
    session.add(message)
    session.flush()
    return message


def list_messages(session: Session, chat_id: str, *, limit: int = 100) -> List[ChatMessage]:
    q = select(ChatMessage).where(ChatMessage.chat_id == chat_id).order_by(ChatMessage.sent_at.desc()).limit(limit)
    return list(session.exec(q).all())
