"""Admin authoring: story and chapter CRUD.

Every operation requires an admin caller. Writes go through `run_transaction`
because stories and chapters are versioned rows shared with the rating
aggregator; an edit that races a rating is simply re-applied.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from katha_vault.db import TransactionConflictError, run_transaction
from katha_vault.db.models import Chapter, Story, new_id, utcnow
from katha_vault.db.repositories import stories_repo
from katha_vault.services import validation_service
from katha_vault.services.errors import (
    NotFoundError,
    TransientError,
    ValidationError,
    require_admin,
)
from katha_vault.utils.identity import Identity
from katha_vault.utils.logging import get_logger

LOG = get_logger("stories_service")

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")
_OPTIONAL_STORY_FIELDS = ("cover_image_url", "data_ai_hint")


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    slug = _SLUG_STRIP.sub("-", normalized.lower()).strip("-")
    return slug[:150].strip("-")


def _unique_slug(session: Session, base: str, *, exclude_id: Optional[str] = None) -> str:
    base = base or "story"
    candidate = base
    suffix = 2
    while stories_repo.slug_taken(session, candidate, exclude_id=exclude_id):
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def _word_count(content: str) -> int:
    return len(content.split())


def _optional_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def _commit(fn, label: str):
    try:
        return run_transaction(fn, label=label)
    except TransactionConflictError as exc:
        raise TransientError("transaction_contention") from exc


def fetch_admin_stories(caller: Optional[Identity]) -> List[Dict[str, Any]]:
    require_admin(caller)
    stories = stories_repo.list_stories_by_title()
    chapters = stories_repo.list_chapters_for_stories(s.id for s in stories)
    result = []
    for story in stories:
        payload = story.as_dict()
        payload["chapters"] = [c.as_dict() for c in chapters.get(story.id, [])]
        result.append(payload)
    return result


def save_story(caller: Optional[Identity], story_id: Optional[str], data: Dict[str, Any]) -> Dict[str, Any]:
    """Create (``story_id`` empty) or merge-update a story.

    Aggregate rating fields, ``reads`` and ``comment_count`` are never
    written here. An explicit ``slug`` must be free; a derived one gets a
    numeric suffix until it is.
    """
    caller = require_admin(caller)
    fields = validation_service.validate_story_data(data)
    status = validation_service.validate_status(data.get("status"), default="")
    explicit_slug = slugify(data["slug"]) if isinstance(data.get("slug"), str) else ""
    extras = {name: _optional_text(data.get(name)) for name in _OPTIONAL_STORY_FIELDS if name in data}

    def _apply(session: Session) -> Dict[str, Any]:
        if story_id:
            story = stories_repo.load_story(session, story_id)
            if story is None:
                raise NotFoundError("story_missing")
        else:
            story = Story(
                id=new_id(),
                author_id=caller.user_id,
                author_name=caller.display_name,
                author_avatar_url=caller.avatar_url,
                reads=0,
                comment_count=0,
                total_rating_sum=0,
                rating_count=0,
                created_at=utcnow(),
            )
        if explicit_slug:
            if stories_repo.slug_taken(session, explicit_slug, exclude_id=story.id):
                raise ValidationError("slug_taken")
            story.slug = explicit_slug
        elif not story.slug:
            story.slug = _unique_slug(session, slugify(fields["title"]), exclude_id=story.id)
        story.title = fields["title"]
        story.genre = fields["genre"]
        story.description = fields["description"]
        story.tags = fields["tags"]
        if status:
            story.status = status
        elif not story.status:
            story.status = "Draft"
        for name, value in extras.items():
            setattr(story, name, value)
        story.last_updated = utcnow()
        if not story_id:
            session.add(story)
        session.flush()
        return story.as_dict()

    saved = _commit(_apply, f"save story {story_id or 'new'}")
    LOG.info("Story saved id=%s slug=%s created=%s by=%s", saved["id"], saved["slug"], not story_id, caller.user_id)
    return saved


def save_chapter(
    caller: Optional[Identity],
    story_id: str,
    chapter_id: Optional[str],
    data: Dict[str, Any],
) -> Dict[str, Any]:
    """Create or update a chapter; new chapters default to the next order."""
    caller = require_admin(caller)
    fields = validation_service.validate_chapter_data(data)
    order = validation_service.validate_order(data.get("order"))

    def _apply(session: Session) -> Dict[str, Any]:
        story = stories_repo.load_story(session, story_id)
        if story is None:
            raise NotFoundError("story_missing")
        if chapter_id:
            chapter = stories_repo.load_chapter(session, chapter_id)
            if chapter is None or chapter.story_id != story_id:
                raise NotFoundError("chapter_missing")
        else:
            chapter = Chapter(
                id=new_id(),
                story_id=story_id,
                comment_count=0,
                total_rating_sum=0,
                rating_count=0,
                created_at=utcnow(),
            )
            if order is None:
                chapter.order = stories_repo.count_chapters(session, story_id) + 1
            session.add(chapter)
        if order is not None:
            chapter.order = order
        chapter.title = fields["title"]
        chapter.content = fields["content"]
        chapter.word_count = _word_count(fields["content"])
        chapter.last_updated = utcnow()
        story.last_updated = chapter.last_updated
        session.flush()
        return chapter.as_dict()

    saved = _commit(_apply, f"save chapter {story_id}/{chapter_id or 'new'}")
    LOG.info(
        "Chapter saved id=%s story=%s order=%s created=%s by=%s",
        saved["id"],
        story_id,
        saved["order"],
        not chapter_id,
        caller.user_id,
    )
    return saved


def delete_story(caller: Optional[Identity], story_id: str) -> Dict[str, int]:
    """Remove a story with its chapters, ratings, comments and library entries."""
    caller = require_admin(caller)

    def _apply(session: Session) -> Dict[str, int]:
        story = stories_repo.load_story(session, story_id)
        if story is None:
            raise NotFoundError("story_missing")
        return stories_repo.delete_story_cascade(session, story)

    removed = _commit(_apply, f"delete story {story_id}")
    LOG.info("Story deleted id=%s by=%s removed=%s", story_id, caller.user_id, removed)
    return removed


def delete_chapter(caller: Optional[Identity], story_id: str, chapter_id: str) -> Dict[str, int]:
    caller = require_admin(caller)

    def _apply(session: Session) -> Dict[str, int]:
        chapter = stories_repo.load_chapter(session, chapter_id)
        if chapter is None or chapter.story_id != story_id:
            raise NotFoundError("chapter_missing")
        return stories_repo.delete_chapter_cascade(session, chapter)

    removed = _commit(_apply, f"delete chapter {story_id}/{chapter_id}")
    LOG.info("Chapter deleted id=%s story=%s by=%s", chapter_id, story_id, caller.user_id)
    return removed


__all__ = [
    "slugify",
    "fetch_admin_stories",
    "save_story",
    "save_chapter",
    "delete_story",
    "delete_chapter",
]
