"""Service exports."""

from .errors import (
    KathaError,
    ValidationError,
    AuthorizationError,
    NotFoundError,
    TransientError,
)
from .rating_service import (
    RatingResult,
    average_rating,
    submit_rating,
)
from . import (
    validation_service,
    rating_service,
    reader_service,
    stories_service,
    users_service,
    site_settings_service,
    storage_service,
)

__all__ = [
    "KathaError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "TransientError",
    "RatingResult",
    "average_rating",
    "submit_rating",
    "validation_service",
    "rating_service",
    "reader_service",
    "stories_service",
    "users_service",
    "site_settings_service",
    "storage_service",
]
