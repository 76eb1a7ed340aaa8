"""Repository helpers for stories and chapters.

Functions taking a ``session`` argument are building blocks for
`run_transaction`; the rest open their own `app_session()`.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from katha_vault.db import app_session
from katha_vault.db.models import (
    ENTITY_CHAPTER,
    ENTITY_STORY,
    PUBLIC_STORY_STATUSES,
    Chapter,
    Comment,
    LibraryEntry,
    Story,
    UserRating,
)

SORT_NEW = "new"
SORT_TRENDING = "trending"
SORT_RATING = "rating"
SORT_OPTIONS = (SORT_NEW, SORT_TRENDING, SORT_RATING)


def load_story(session: Session, story_id: str) -> Optional[Story]:
    if not story_id:
        return None
    return session.query(Story).filter(Story.id == story_id).one_or_none()


def load_chapter(session: Session, chapter_id: str) -> Optional[Chapter]:
    if not chapter_id:
        return None
    return session.query(Chapter).filter(Chapter.id == chapter_id).one_or_none()


def slug_taken(session: Session, slug: str, *, exclude_id: Optional[str] = None) -> bool:
    query = session.query(Story.id).filter(Story.slug == slug)
    if exclude_id:
        query = query.filter(Story.id != exclude_id)
    return query.first() is not None


def count_chapters(session: Session, story_id: str) -> int:
    return int(session.query(func.count(Chapter.id)).filter(Chapter.story_id == story_id).scalar() or 0)


def get_story(story_id: str) -> Optional[Story]:
    with app_session() as session:
        return load_story(session, story_id)


def get_story_by_slug(slug: str) -> Optional[Story]:
    cleaned = (slug or "").strip().lower()
    if not cleaned:
        return None
    with app_session() as session:
        return session.query(Story).filter(Story.slug == cleaned).one_or_none()


def list_stories_by_title() -> List[Story]:
    with app_session() as session:
        return session.query(Story).order_by(Story.title.asc(), Story.id.asc()).all()


def list_chapters(story_id: str) -> List[Chapter]:
    with app_session() as session:
        return (
            session.query(Chapter)
            .filter(Chapter.story_id == story_id)
            .order_by(Chapter.order.asc(), Chapter.created_at.asc())
            .all()
        )


def list_chapters_for_stories(story_ids: Iterable[str]) -> Dict[str, List[Chapter]]:
    ids = [sid for sid in story_ids if sid]
    grouped: Dict[str, List[Chapter]] = {sid: [] for sid in ids}
    if not ids:
        return grouped
    with app_session() as session:
        rows = (
            session.query(Chapter)
            .filter(Chapter.story_id.in_(ids))
            .order_by(Chapter.story_id.asc(), Chapter.order.asc())
            .all()
        )
    for row in rows:
        grouped.setdefault(row.story_id, []).append(row)
    return grouped


def get_chapter_by_order(story_id: str, order: int) -> Optional[Chapter]:
    with app_session() as session:
        return (
            session.query(Chapter)
            .filter(Chapter.story_id == story_id, Chapter.order == order)
            .order_by(Chapter.created_at.asc())
            .first()
        )


def list_public_stories(
    *,
    genres: Optional[Sequence[str]] = None,
    search: Optional[str] = None,
    sort: str = SORT_NEW,
    limit: int = 24,
) -> List[Story]:
    with app_session() as session:
        query = session.query(Story).filter(Story.status.in_(PUBLIC_STORY_STATUSES))
        if genres:
            query = query.filter(Story.genre.in_(list(genres)))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Story.title.ilike(pattern), Story.author_name.ilike(pattern)))
        if sort == SORT_TRENDING:
            query = query.order_by(Story.reads.desc(), Story.last_updated.desc())
        elif sort == SORT_RATING:
            average = case(
                (Story.rating_count > 0, Story.total_rating_sum * 1.0 / Story.rating_count),
                else_=0.0,
            )
            query = query.order_by(average.desc(), Story.rating_count.desc(), Story.last_updated.desc())
        else:
            query = query.order_by(Story.last_updated.desc(), Story.id.asc())
        return query.limit(limit).all()


def increment_reads(story_id: str) -> bool:
    """Atomic ``reads = reads + 1``; bypasses the rating version counter."""
    with app_session() as session:
        updated = (
            session.query(Story)
            .filter(Story.id == story_id)
            .update({Story.reads: Story.reads + 1}, synchronize_session=False)
        )
        return bool(updated)


_AUTHOR_COLUMNS = {"name": Story.author_name, "avatar_url": Story.author_avatar_url}


def refresh_author_fields(author_id: str, changed: Dict[str, Optional[str]]) -> int:
    """Re-copy changed profile fields onto the author's stories. Returns rows touched.

    ``changed`` maps profile field names (``name``, ``avatar_url``) to their new
    values; a ``None`` value clears the cached copy.
    """
    values = {_AUTHOR_COLUMNS[key]: value for key, value in changed.items() if key in _AUTHOR_COLUMNS}
    if not values:
        return 0
    with app_session() as session:
        updated = (
            session.query(Story)
            .filter(Story.author_id == author_id)
            .update(values, synchronize_session=False)
        )
        return int(updated or 0)


def _delete_entity_children(session: Session, entity_type: str, entity_ids: List[str]) -> Dict[str, int]:
    if not entity_ids:
        return {"ratings": 0, "comments": 0}
    ratings = (
        session.query(UserRating)
        .filter(UserRating.entity_type == entity_type, UserRating.entity_id.in_(entity_ids))
        .delete(synchronize_session=False)
    )
    comments = (
        session.query(Comment)
        .filter(Comment.entity_type == entity_type, Comment.entity_id.in_(entity_ids))
        .delete(synchronize_session=False)
    )
    return {"ratings": int(ratings or 0), "comments": int(comments or 0)}


def delete_chapter_cascade(session: Session, chapter: Chapter) -> Dict[str, int]:
    """Delete one chapter and close the gap it leaves in the story's order."""
    removed = _delete_entity_children(session, ENTITY_CHAPTER, [chapter.id])
    later = (
        session.query(Chapter)
        .filter(Chapter.story_id == chapter.story_id, Chapter.order > chapter.order)
        .order_by(Chapter.order.asc())
        .all()
    )
    session.delete(chapter)
    session.flush()
    # row by row so each shifted chapter bumps its version
    for sibling in later:
        sibling.order = sibling.order - 1
    removed["chapters"] = 1
    removed["reordered"] = len(later)
    return removed


def delete_story_cascade(session: Session, story: Story) -> Dict[str, int]:
    chapter_ids = [
        row[0] for row in session.query(Chapter.id).filter(Chapter.story_id == story.id).all()
    ]
    chapter_children = _delete_entity_children(session, ENTITY_CHAPTER, chapter_ids)
    story_children = _delete_entity_children(session, ENTITY_STORY, [story.id])
    chapters = 0
    if chapter_ids:
        chapters = (
            session.query(Chapter)
            .filter(Chapter.id.in_(chapter_ids))
            .delete(synchronize_session=False)
        )
    library = (
        session.query(LibraryEntry)
        .filter(LibraryEntry.story_id == story.id)
        .delete(synchronize_session=False)
    )
    session.delete(story)
    return {
        "chapters": int(chapters or 0),
        "ratings": chapter_children["ratings"] + story_children["ratings"],
        "comments": chapter_children["comments"] + story_children["comments"],
        "library_entries": int(library or 0),
    }


__all__ = [
    "SORT_NEW",
    "SORT_TRENDING",
    "SORT_RATING",
    "SORT_OPTIONS",
    "load_story",
    "load_chapter",
    "slug_taken",
    "count_chapters",
    "get_story",
    "get_story_by_slug",
    "list_stories_by_title",
    "list_chapters",
    "list_chapters_for_stories",
    "get_chapter_by_order",
    "list_public_stories",
    "increment_reads",
    "refresh_author_fields",
    "delete_chapter_cascade",
    "delete_story_cascade",
]
