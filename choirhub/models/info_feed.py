from __future__ import annotations

from datetime import datetime

from sqlmodel import Field

from .choir import new_id, utcnow
from .targeting import TargetingFields


class InfoFeedPost(TargetingFields, table=True):
    """
    Announcement shown in the members' info feed.

    Posts default to the whole choir (include_all_active=True), unlike events.
    """

    __tablename__ = "info_feed"

    id: str = Field(default_factory=new_id, primary_key=True)
    choir_id: str = Field(foreign_key="choirs.id", index=True)

    title: str
    content: str
    author_id: str = Field(index=True)

    include_all_active: bool = Field(default=True, index=True)

    is_pinned: bool = Field(default=False, index=True)
    allows_comments: bool = Field(default=True)

    published_at: datetime = Field(default_factory=utcnow, index=True)
