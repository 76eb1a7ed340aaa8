"""Repository helpers for per-user ratings and their ratable entities."""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from sqlalchemy.orm import Session

from katha_vault.db import app_session
from katha_vault.db.models import ENTITY_CHAPTER, ENTITY_STORY, Chapter, Story, UserRating, utcnow

_ENTITY_MODELS = {
    ENTITY_STORY: Story,
    ENTITY_CHAPTER: Chapter,
}

RatableEntity = Union[Story, Chapter]


def entity_model(entity_type: str):
    model = _ENTITY_MODELS.get(entity_type)
    if model is None:
        raise ValueError("unsupported_entity")
    return model


def load_entity(session: Session, entity_type: str, entity_id: str) -> Optional[RatableEntity]:
    if not entity_id:
        return None
    model = entity_model(entity_type)
    return session.query(model).filter(model.id == entity_id).one_or_none()


def get_user_rating(session: Session, entity_type: str, entity_id: str, user_id: str) -> Optional[UserRating]:
    return (
        session.query(UserRating)
        .filter(
            UserRating.entity_type == entity_type,
            UserRating.entity_id == entity_id,
            UserRating.user_id == user_id,
        )
        .one_or_none()
    )


def upsert_user_rating(
    session: Session,
    entity_type: str,
    entity_id: str,
    user_id: str,
    rating: int,
    *,
    existing: Optional[UserRating] = None,
    timestamp: Optional[datetime] = None,
) -> UserRating:
    """Overwrite the user's rating record, creating it on first rating."""
    stamp = timestamp or utcnow()
    if existing is not None:
        existing.rating = rating
        existing.timestamp = stamp
        return existing
    record = UserRating(
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        rating=rating,
        timestamp=stamp,
    )
    session.add(record)
    return record


def fetch_rating_value(entity_type: str, entity_id: str, user_id: Optional[str]) -> int:
    """Return the user's rating for the entity, 0 when absent or anonymous."""
    if not user_id or not entity_id:
        return 0
    with app_session() as session:
        record = get_user_rating(session, entity_type, entity_id, user_id)
        return int(record.rating) if record else 0


def count_ratings(entity_type: str, entity_id: str) -> int:
    with app_session() as session:
        return (
            session.query(UserRating)
            .filter(UserRating.entity_type == entity_type, UserRating.entity_id == entity_id)
            .count()
        )


__all__ = [
    "RatableEntity",
    "entity_model",
    "load_entity",
    "get_user_rating",
    "upsert_user_rating",
    "fetch_rating_value",
    "count_ratings",
]
