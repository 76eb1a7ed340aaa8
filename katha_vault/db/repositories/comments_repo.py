"""Repository helpers for story and chapter comments."""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from katha_vault.db import app_session
from katha_vault.db.models import Comment, utcnow


def add_comment(
    session: Session,
    *,
    entity_type: str,
    entity_id: str,
    story_id: str,
    user_id: str,
    user_name: str,
    user_avatar: Optional[str],
    text: str,
) -> Comment:
    record = Comment(
        entity_type=entity_type,
        entity_id=entity_id,
        story_id=story_id,
        user_id=user_id,
        user_name=user_name,
        user_avatar=user_avatar,
        text=text,
        timestamp=utcnow(),
    )
    session.add(record)
    return record


def list_comments(entity_type: str, entity_id: str, *, limit: int = 20) -> List[Comment]:
    """Newest first."""
    with app_session() as session:
        return (
            session.query(Comment)
            .filter(Comment.entity_type == entity_type, Comment.entity_id == entity_id)
            .order_by(Comment.timestamp.desc(), Comment.id.desc())
            .limit(limit)
            .all()
        )


__all__ = ["add_comment", "list_comments"]
