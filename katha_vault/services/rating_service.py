"""Rating aggregation for stories and chapters.

A submission updates two records together: the caller's `UserRating` row and
the entity's aggregate ``total_rating_sum`` / ``rating_count``. Both writes
happen in one `run_transaction` call. Stories and chapters carry a version
counter, so a concurrent rater that commits first makes our commit fail its
compare-and-swap; the whole read-modify-write is then re-run against fresh
state. The average is never stored, see `average_rating`.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from katha_vault.db import TransactionConflictError, run_transaction
from katha_vault.db.models import ENTITY_CHAPTER, ENTITY_STORY, ENTITY_TYPES, utcnow
from katha_vault.db.repositories import ratings_repo
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

LOG = get_logger("rating_service")


@dataclass(frozen=True)
class RatingResult:
    entity_type: str
    entity_id: str
    user_id: str
    rating: int
    previous_rating: int
    total_rating_sum: int
    rating_count: int
    average_rating: Optional[float]

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _validate_entity_type(entity_type: str) -> str:
    if entity_type not in ENTITY_TYPES:
        raise ValidationError("unsupported_entity")
    return entity_type


def submit_rating(
    caller: Optional[Identity],
    entity_type: str,
    entity_id: str,
    user_id: str,
    rating: Any,
    *,
    story_id: Optional[str] = None,
) -> RatingResult:
    """Apply ``user_id``'s rating of an entity to its aggregate fields.

    A first rating adds one to ``rating_count``; a re-rating only shifts
    ``total_rating_sum`` by the difference from the previous value.
    ``story_id`` optionally pins a chapter to its parent story.

    Raises `AuthorizationError` when the caller is not ``user_id``,
    `ValidationError` for ratings outside 1..5, `NotFoundError` when the
    entity is missing (nothing is written), and `TransientError` when the
    transaction keeps losing to concurrent writers.
    """
    require_subject(caller, user_id)
    value = validation_service.validate_rating(rating)
    _validate_entity_type(entity_type)

    def _apply(session: Session) -> RatingResult:
        existing = ratings_repo.get_user_rating(session, entity_type, entity_id, user_id)
        previous = int(existing.rating) if existing else 0

        entity = ratings_repo.load_entity(session, entity_type, entity_id)
        if entity is None:
            raise NotFoundError(f"{entity_type}_missing")
        if entity_type == ENTITY_CHAPTER and story_id and entity.story_id != story_id:
            raise NotFoundError("chapter_missing")

        diff = value - previous
        count_delta = 1 if previous == 0 else 0
        now = utcnow()

        ratings_repo.upsert_user_rating(
            session,
            entity_type,
            entity_id,
            user_id,
            value,
            existing=existing,
            timestamp=now,
        )
        entity.total_rating_sum = int(entity.total_rating_sum or 0) + diff
        entity.rating_count = int(entity.rating_count or 0) + count_delta
        # always dirty the row so every submission goes through the version check
        entity.last_rated_at = now

        return RatingResult(
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            rating=value,
            previous_rating=previous,
            total_rating_sum=entity.total_rating_sum,
            rating_count=entity.rating_count,
            average_rating=average_rating(entity.total_rating_sum, entity.rating_count),
        )

    try:
        result = run_transaction(_apply, label=f"rating {entity_type}:{entity_id}")
    except TransactionConflictError as exc:
        LOG.warning(
            "Rating not applied entity=%s:%s user=%s attempts=%s",
            entity_type,
            entity_id,
            user_id,
            exc.attempts,
        )
        raise TransientError("transaction_contention") from exc

    LOG.info(
        "Rating applied entity=%s:%s user=%s rating=%s previous=%s sum=%s count=%s",
        entity_type,
        entity_id,
        user_id,
        result.rating,
        result.previous_rating,
        result.total_rating_sum,
        result.rating_count,
    )
    return result


def submit_story_rating(caller: Optional[Identity], story_id: str, user_id: str, rating: Any) -> RatingResult:
    return submit_rating(caller, ENTITY_STORY, story_id, user_id, rating)


def submit_chapter_rating(
    caller: Optional[Identity],
    story_id: str,
    chapter_id: str,
    user_id: str,
    rating: Any,
) -> RatingResult:
    return submit_rating(caller, ENTITY_CHAPTER, chapter_id, user_id, rating, story_id=story_id)


def get_user_rating(entity_type: str, entity_id: str, user_id: Optional[str]) -> int:
    _validate_entity_type(entity_type)
    return ratings_repo.fetch_rating_value(entity_type, entity_id, user_id)


__all__ = [
    "RatingResult",
    "average_rating",
    "submit_rating",
    "submit_story_rating",
    "submit_chapter_rating",
    "get_user_rating",
]
