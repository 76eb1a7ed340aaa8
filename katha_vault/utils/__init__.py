"""Utility helpers."""
from .identity import (
    ANONYMOUS,
    Identity,
    identity_from_session,
    normalize_email,
    normalize_user_id,
)

__all__ = [
    "ANONYMOUS",
    "Identity",
    "identity_from_session",
    "normalize_email",
    "normalize_user_id",
]
