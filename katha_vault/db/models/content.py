"""ORM models for published content (stories, chapters, ratings, comments, library)."""
from __future__ import annotations

import datetime
import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from katha_vault.utils.ratings import average_rating

Base = declarative_base()

STORY_STATUSES = ("Draft", "Published", "Archived", "Ongoing", "Completed")
PUBLIC_STORY_STATUSES = ("Published", "Ongoing", "Completed")
ENTITY_STORY = "story"
ENTITY_CHAPTER = "chapter"
ENTITY_TYPES = (ENTITY_STORY, ENTITY_CHAPTER)


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp (SQLite stores no tz offset)."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


def _iso(value):
    return value.isoformat() if value else None


class Story(Base):
    """Story document.

    `author_name` / `author_avatar_url` are denormalized copies of the author's
    profile, refreshed when the profile changes (eventually consistent).
    `total_rating_sum` / `rating_count` are mutated only by the rating
    aggregator; `version` guards them with compare-and-swap.
    """

    __tablename__ = "stories"

    id = Column(String(32), primary_key=True, default=new_id)
    slug = Column(String(160), nullable=False, unique=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    genre = Column(String(64), nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)
    status = Column(String(16), nullable=False, default="Draft", index=True)
    author_id = Column(String(128), nullable=False, index=True)
    author_name = Column(String(255), nullable=True)
    author_avatar_url = Column(String(500), nullable=True)
    cover_image_url = Column(String(500), nullable=True)
    data_ai_hint = Column(String(255), nullable=True)
    reads = Column(Integer, nullable=False, default=0)
    comment_count = Column(Integer, nullable=False, default=0)
    total_rating_sum = Column(Integer, nullable=False, default=0)
    rating_count = Column(Integer, nullable=False, default=0)
    last_rated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_updated = Column(DateTime, default=utcnow, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "description": self.description or "",
            "genre": self.genre,
            "tags": list(self.tags or []),
            "status": self.status,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "author_avatar_url": self.author_avatar_url,
            "cover_image_url": self.cover_image_url,
            "data_ai_hint": self.data_ai_hint,
            "reads": self.reads or 0,
            "comment_count": self.comment_count or 0,
            "total_rating_sum": self.total_rating_sum or 0,
            "rating_count": self.rating_count or 0,
            "average_rating": average_rating(self.total_rating_sum, self.rating_count),
            "created_at": _iso(self.created_at),
            "last_updated": _iso(self.last_updated),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Story id={self.id} slug={self.slug}>"


class Chapter(Base):
    """Chapter of a story; `order` is 1-based within the story."""

    __tablename__ = "chapters"

    id = Column(String(32), primary_key=True, default=new_id)
    story_id = Column(String(32), nullable=False, index=True)
    title = Column(String(150), nullable=False)
    content = Column(Text, nullable=False, default="")
    order = Column(Integer, nullable=False)
    word_count = Column(Integer, nullable=False, default=0)
    comment_count = Column(Integer, nullable=False, default=0)
    total_rating_sum = Column(Integer, nullable=False, default=0)
    rating_count = Column(Integer, nullable=False, default=0)
    last_rated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_updated = Column(DateTime, default=utcnow, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_chapters_story_order", "story_id", "order"),
    )

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title or f"Chapter {self.order}",
            "order": self.order,
            "word_count": self.word_count or 0,
            "last_updated": _iso(self.last_updated),
        }

    def as_dict(self) -> dict:
        payload = self.summary()
        payload.update({
            "story_id": self.story_id,
            "content": self.content or "",
            "comment_count": self.comment_count or 0,
            "total_rating_sum": self.total_rating_sum or 0,
            "rating_count": self.rating_count or 0,
            "average_rating": average_rating(self.total_rating_sum, self.rating_count),
        })
        return payload

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Chapter id={self.id} story_id={self.story_id} order={self.order}>"


class UserRating(Base):
    """One user's rating of one story or chapter. Unique per (entity, user)."""

    __tablename__ = "user_ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(16), nullable=False)
    entity_id = Column(String(32), nullable=False)
    user_id = Column(String(128), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "user_id", name="uq_user_rating_entity_user"),
        Index("ix_user_ratings_entity", "entity_type", "entity_id"),
    )

    def as_dict(self) -> dict:
        return {
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "rating": self.rating,
            "timestamp": _iso(self.timestamp),
        }


class Comment(Base):
    """Story-level or chapter-level comment.

    `user_name` / `user_avatar` snapshot the commenter at write time.
    """

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(16), nullable=False)
    entity_id = Column(String(32), nullable=False)
    story_id = Column(String(32), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    user_name = Column(String(255), nullable=False, default="Anonymous")
    user_avatar = Column(String(500), nullable=True)
    text = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_comments_entity_ts", "entity_type", "entity_id", "timestamp"),
    )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "story_id": self.story_id,
            "user_id": self.user_id,
            "user_name": self.user_name or "Anonymous",
            "user_avatar": self.user_avatar,
            "text": self.text,
            "timestamp": _iso(self.timestamp),
        }


class LibraryEntry(Base):
    """Story saved to a user's library with a denormalized story snapshot."""

    __tablename__ = "library_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    story_id = Column(String(32), nullable=False, index=True)
    title = Column(String(100), nullable=True)
    cover_image_url = Column(String(500), nullable=True)
    author_name = Column(String(255), nullable=True)
    slug = Column(String(160), nullable=True)
    added_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "story_id", name="uq_library_user_story"),
    )

    def as_dict(self) -> dict:
        return {
            "story_id": self.story_id,
            "title": self.title,
            "cover_image_url": self.cover_image_url,
            "author_name": self.author_name,
            "slug": self.slug,
            "added_at": _iso(self.added_at),
        }


__all__ = [
    "Base",
    "Story",
    "Chapter",
    "UserRating",
    "Comment",
    "LibraryEntry",
    "STORY_STATUSES",
    "PUBLIC_STORY_STATUSES",
    "ENTITY_STORY",
    "ENTITY_CHAPTER",
    "ENTITY_TYPES",
    "utcnow",
    "new_id",
]
