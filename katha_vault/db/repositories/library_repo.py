"""Repository helpers for user library entries."""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from katha_vault.db import app_session
from katha_vault.db.models import LibraryEntry, Story, utcnow
from katha_vault.utils.logging import get_logger

LOG = get_logger("library_repo")


def _find_entry(session: Session, user_id: str, story_id: str) -> Optional[LibraryEntry]:
    return (
        session.query(LibraryEntry)
        .filter(LibraryEntry.user_id == user_id, LibraryEntry.story_id == story_id)
        .one_or_none()
    )


def _write_entry(user_id: str, story: Story) -> LibraryEntry:
    with app_session() as session:
        entry = _find_entry(session, user_id, story.id)
        if entry is None:
            entry = LibraryEntry(user_id=user_id, story_id=story.id, added_at=utcnow())
            session.add(entry)
        entry.title = story.title
        entry.cover_image_url = story.cover_image_url
        entry.author_name = story.author_name
        entry.slug = story.slug
        return entry


def upsert_entry(user_id: str, story: Story) -> LibraryEntry:
    """Save (or refresh) the story snapshot in the user's library.

    A concurrent add of the same story trips ``uq_library_user_story``; the
    second pass then finds the winner's row and refreshes it.
    """
    try:
        return _write_entry(user_id, story)
    except IntegrityError:
        LOG.info("Library entry raced user=%s story=%s; refreshing existing row", user_id, story.id)
        return _write_entry(user_id, story)


def delete_entry(user_id: str, story_id: str) -> bool:
    with app_session() as session:
        entry = _find_entry(session, user_id, story_id)
        if not entry:
            return False
        session.delete(entry)
        return True


def has_entry(user_id: Optional[str], story_id: str) -> bool:
    if not user_id:
        return False
    with app_session() as session:
        return (
            session.query(LibraryEntry.id)
            .filter(LibraryEntry.user_id == user_id, LibraryEntry.story_id == story_id)
            .first()
            is not None
        )


def list_entries(user_id: str, *, search: Optional[str] = None) -> List[LibraryEntry]:
    with app_session() as session:
        query = session.query(LibraryEntry).filter(LibraryEntry.user_id == user_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(LibraryEntry.title.ilike(pattern), LibraryEntry.author_name.ilike(pattern)))
        return query.order_by(LibraryEntry.added_at.desc(), LibraryEntry.id.desc()).all()


__all__ = ["upsert_entry", "delete_entry", "has_entry", "list_entries"]
