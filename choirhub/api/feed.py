from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field as PydField
from sqlmodel import Session, select

from ..config import settings
from ..database import get_db
from ..models.choir import Choir
from ..models.info_feed import InfoFeedPost
from ..services.messaging import create_info_feed_post
from .shared import TargetingIn

router = APIRouter(prefix="/feed", tags=["feed"])


# -----------------------------
# Schemas
# -----------------------------

class FeedPostCreate(TargetingIn):
    choir_id: str
    author_id: str
    title: str = PydField(..., min_length=1)
    content: str = PydField(..., min_length=1)

    # Posts go to the whole choir unless narrowed
    include_all_active: bool = True

    is_pinned: bool = False
    allows_comments: bool = True


# -----------------------------
# Routes
# -----------------------------

@router.post("/", response_model=InfoFeedPost)
def create_post(payload: FeedPostCreate, db: Session = Depends(get_db)) -> InfoFeedPost:
    if not db.get(Choir, payload.choir_id):
        raise HTTPException(status_code=404, detail="Choir not found")

    post = create_info_feed_post(
        db,
        choir_id=payload.choir_id,
        author_id=payload.author_id,
        title=payload.title,
        content=payload.content,
        target=payload.to_spec(),
        is_pinned=payload.is_pinned,
        allows_comments=payload.allows_comments,
        strict=settings.strict_targeting,
    )
    db.commit()
    db.refresh(post)
    return post


@router.get("/", response_model=List[InfoFeedPost])
def list_posts(choir_id: str, limit: int = 100, db: Session = Depends(get_db)) -> List[InfoFeedPost]:
    """Admin view: every post of the choir regardless of audience."""
    limit = max(1, min(limit, 500))
    q = (
        select(InfoFeedPost)
        .where(InfoFeedPost.choir_id == choir_id)
        .order_by(InfoFeedPost.is_pinned.desc(), InfoFeedPost.published_at.desc())
        .limit(limit)
    )
    return list(db.exec(q).all())
