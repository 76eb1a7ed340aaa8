"""Reader-facing operations: story and chapter pages, comments, library."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from katha_vault import config as app_config
from katha_vault.db import TransactionConflictError, run_transaction
from katha_vault.db.models import ENTITY_CHAPTER, ENTITY_STORY, ENTITY_TYPES, Story
from katha_vault.db.repositories import comments_repo, library_repo, ratings_repo, stories_repo
from katha_vault.services import validation_service
from katha_vault.services.errors import (
    NotFoundError,
    TransientError,
    ValidationError,
    require_subject,
)
from katha_vault.utils.identity import Identity
from katha_vault.utils.logging import get_logger
from katha_vault.utils.ratings import average_rating

LOG = get_logger("reader_service")

ANONYMOUS_NAME = "Anonymous"
UNKNOWN_AUTHOR = "Unknown Author"


def _comments(entity_type: str, entity_id: str) -> List[Dict[str, Any]]:
    limit = app_config.comments_page_size()
    return [c.as_dict() for c in comments_repo.list_comments(entity_type, entity_id, limit=limit)]


def _require_story_by_slug(slug: str) -> Story:
    story = stories_repo.get_story_by_slug(slug)
    if story is None:
        raise NotFoundError("story_missing")
    return story


def fetch_story_details(slug: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    """Everything the story page renders in one payload."""
    story = _require_story_by_slug(slug)
    chapters = stories_repo.list_chapters(story.id)
    payload = story.as_dict()
    payload.update({
        "author": {
            "id": story.author_id,
            "name": story.author_name or UNKNOWN_AUTHOR,
            "avatar_url": story.author_avatar_url,
        },
        "chapters": len(chapters),
        "chapters_data": [c.summary() for c in chapters],
        "comments": _comments(ENTITY_STORY, story.id),
        "total_ratings": story.rating_count or 0,
        "user_rating": ratings_repo.fetch_rating_value(ENTITY_STORY, story.id, user_id),
        "is_in_library": library_repo.has_entry(user_id, story.id),
    })
    return payload


def fetch_chapter_details(slug: str, chapter_number: int, user_id: Optional[str] = None) -> Dict[str, Any]:
    story = _require_story_by_slug(slug)
    chapter = stories_repo.get_chapter_by_order(story.id, chapter_number)
    if chapter is None:
        raise NotFoundError("chapter_missing")
    total = len(stories_repo.list_chapters(story.id))
    return {
        "story_id": story.id,
        "story_slug": story.slug,
        "story_title": story.title,
        "author_name": story.author_name,
        "chapter_id": chapter.id,
        "chapter_number": chapter.order,
        "title": chapter.title or f"Chapter {chapter.order}",
        "content": chapter.content or "",
        "word_count": chapter.word_count or 0,
        "total_chapters": total,
        "comments": _comments(ENTITY_CHAPTER, chapter.id),
        "average_rating": average_rating(chapter.total_rating_sum, chapter.rating_count),
        "total_ratings": chapter.rating_count or 0,
        "user_rating": ratings_repo.fetch_rating_value(ENTITY_CHAPTER, chapter.id, user_id),
        "previous_chapter": chapter.order - 1 if chapter.order > 1 else None,
        "next_chapter": chapter.order + 1 if chapter.order < total else None,
    }


def submit_comment(
    caller: Optional[Identity],
    entity_type: str,
    entity_id: str,
    user_id: str,
    text: Any,
    *,
    story_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Store a comment and bump the entity's ``comment_count`` atomically.

    The commenter's display name and avatar are copied from ``caller`` at
    write time; later profile edits do not rewrite old comments.
    """
    caller = require_subject(caller, user_id)
    body = validation_service.validate_comment_text(text)
    if entity_type not in ENTITY_TYPES:
        raise ValidationError("unsupported_entity")

    def _apply(session: Session) -> Dict[str, Any]:
        entity = ratings_repo.load_entity(session, entity_type, entity_id)
        if entity is None:
            raise NotFoundError(f"{entity_type}_missing")
        if entity_type == ENTITY_CHAPTER:
            if story_id and entity.story_id != story_id:
                raise NotFoundError("chapter_missing")
            parent_id = entity.story_id
        else:
            parent_id = entity.id
        record = comments_repo.add_comment(
            session,
            entity_type=entity_type,
            entity_id=entity_id,
            story_id=parent_id,
            user_id=user_id,
            user_name=caller.display_name or ANONYMOUS_NAME,
            user_avatar=caller.avatar_url,
            text=body,
        )
        entity.comment_count = int(entity.comment_count or 0) + 1
        session.flush()
        return record.as_dict()

    try:
        comment = run_transaction(_apply, label=f"comment {entity_type}:{entity_id}")
    except TransactionConflictError as exc:
        raise TransientError("transaction_contention") from exc
    LOG.info("Comment added entity=%s:%s user=%s id=%s", entity_type, entity_id, user_id, comment["id"])
    return comment


def toggle_library_status(caller: Optional[Identity], user_id: str, story_id: str, add: bool) -> Dict[str, Any]:
    require_subject(caller, user_id)
    if add:
        story = stories_repo.get_story(story_id)
        if story is None:
            raise NotFoundError("story_missing")
        entry = library_repo.upsert_entry(user_id, story)
        LOG.info("Library add user=%s story=%s", user_id, story_id)
        return {"story_id": story_id, "in_library": True, "entry": entry.as_dict()}
    removed = library_repo.delete_entry(user_id, story_id)
    if removed:
        LOG.info("Library remove user=%s story=%s", user_id, story_id)
    return {"story_id": story_id, "in_library": False}


def list_library(caller: Optional[Identity], user_id: str, search: Optional[str] = None) -> List[Dict[str, Any]]:
    require_subject(caller, user_id)
    term = (search or "").strip() or None
    return [entry.as_dict() for entry in library_repo.list_entries(user_id, search=term)]


def record_read(story_id: str) -> bool:
    return stories_repo.increment_reads(story_id)


def browse_stories(
    genre: Optional[Any] = None,
    sort: str = stories_repo.SORT_NEW,
    search: Optional[str] = None,
    limit: int = 24,
) -> List[Dict[str, Any]]:
    """Public listing (Published, Ongoing, Completed only)."""
    if sort not in stories_repo.SORT_OPTIONS:
        raise ValidationError("unsupported_sort")
    if isinstance(genre, str):
        genres = [g.strip() for g in genre.split(",") if g.strip()]
    else:
        genres = [g for g in (genre or []) if g]
    limit = max(1, min(int(limit), 100))
    stories = stories_repo.list_public_stories(
        genres=genres or None,
        search=(search or "").strip() or None,
        sort=sort,
        limit=limit,
    )
    return [story.as_dict() for story in stories]


__all__ = [
    "fetch_story_details",
    "fetch_chapter_details",
    "submit_comment",
    "toggle_library_status",
    "list_library",
    "record_read",
    "browse_stories",
]
