"""Input validation for stories, chapters, comments and ratings.

Each validator returns the cleaned value(s) or raises `ValidationError`
carrying a short code.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from katha_vault.db.models import STORY_STATUSES
from katha_vault.services.errors import ValidationError

STORY_TITLE_MAX = 100
STORY_DESCRIPTION_MAX = 1000
TAG_MAX = 30
CHAPTER_TITLE_MAX = 150
COMMENT_MAX = 1000
BIO_MAX = 500
RATING_MIN = 1
RATING_MAX = 5


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def validate_tags(tags: Any) -> List[str]:
    if tags is None:
        return []
    if not isinstance(tags, (list, tuple)):
        raise ValidationError("tags_invalid")
    cleaned: List[str] = []
    for tag in tags:
        if not isinstance(tag, str) or not tag.strip():
            raise ValidationError("tag_empty")
        if len(tag) > TAG_MAX:
            raise ValidationError("tag_too_long")
        cleaned.append(tag.strip())
    return cleaned


def validate_status(status: Any, *, default: str = "Draft") -> str:
    if status is None or status == "":
        return default
    if status not in STORY_STATUSES:
        raise ValidationError("invalid_status")
    return status


def validate_story_data(data: Dict[str, Any]) -> Dict[str, Any]:
    title = _text(data.get("title"))
    if not title.strip():
        raise ValidationError("title_required")
    if len(title) > STORY_TITLE_MAX:
        raise ValidationError("title_too_long")
    genre = _text(data.get("genre")).strip()
    if not genre:
        raise ValidationError("genre_required")
    description = _text(data.get("description"))
    if not description.strip():
        raise ValidationError("description_required")
    if len(description) > STORY_DESCRIPTION_MAX:
        raise ValidationError("description_too_long")
    return {
        "title": title.strip(),
        "genre": genre,
        "description": description.strip(),
        "tags": validate_tags(data.get("tags")),
    }


def validate_chapter_data(data: Dict[str, Any]) -> Dict[str, Any]:
    title = _text(data.get("title"))
    if not title.strip():
        raise ValidationError("chapter_title_required")
    if len(title) > CHAPTER_TITLE_MAX:
        raise ValidationError("chapter_title_too_long")
    content = _text(data.get("content"))
    if not content.strip():
        raise ValidationError("content_required")
    return {"title": title.strip(), "content": content}


def validate_comment_text(text: Any) -> str:
    value = _text(text)
    if not value.strip():
        raise ValidationError("comment_required")
    if len(value) > COMMENT_MAX:
        raise ValidationError("comment_too_long")
    return value.strip()


def validate_rating(rating: Any) -> int:
    """Ratings are integers 1..5; bools and floats are rejected."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("rating_out_of_range")
    if rating < RATING_MIN or rating > RATING_MAX:
        raise ValidationError("rating_out_of_range")
    return rating


def validate_bio(bio: Any) -> str:
    if bio is None:
        return ""
    if not isinstance(bio, str):
        raise ValidationError("bio_invalid")
    if len(bio) > BIO_MAX:
        raise ValidationError("bio_too_long")
    return bio.strip()


def validate_order(order: Any) -> Optional[int]:
    if order is None:
        return None
    if isinstance(order, bool) or not isinstance(order, int) or order < 1:
        raise ValidationError("invalid_order")
    return order


__all__ = [
    "validate_tags",
    "validate_status",
    "validate_story_data",
    "validate_chapter_data",
    "validate_comment_text",
    "validate_rating",
    "validate_bio",
    "validate_order",
]
