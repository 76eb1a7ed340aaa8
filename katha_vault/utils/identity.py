"""Caller identity helpers.

The authentication provider is external; whatever it verified is stored in
the Flask session. Routes read it once per request with
`identity_from_session()` and hand the resulting `Identity` to services
explicitly. Services never look at the session themselves.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from flask import session

from katha_vault import config as app_config


@dataclass(frozen=True)
class Identity:
    user_id: Optional[str]
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)


ANONYMOUS = Identity(user_id=None)


def normalize_email(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip().lower()
    return cleaned or None


def normalize_user_id(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    cleaned = str(raw).strip()
    return cleaned or None


def _clean_text(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip()
    return cleaned or None


def get_session_user_key() -> str:
    return app_config.session_user_key()


def identity_from_session() -> Identity:
    user_id = normalize_user_id(session.get(get_session_user_key()))
    if not user_id:
        return ANONYMOUS
    return Identity(
        user_id=user_id,
        display_name=_clean_text(session.get("user_name")),
        avatar_url=_clean_text(session.get("user_avatar")),
        email=normalize_email(session.get("email")),
        is_admin=bool(session.get("is_admin", False)),
    )


__all__ = [
    "Identity",
    "ANONYMOUS",
    "normalize_email",
    "normalize_user_id",
    "get_session_user_key",
    "identity_from_session",
]
