"""Repository helpers for user profiles and per-user settings."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from katha_vault.db import app_session
from katha_vault.db.models import UserProfile, UserSettings


class ProfileExistsError(Exception):
    """Raised when inserting a profile whose id already exists."""


def get_profile(user_id: str) -> Optional[UserProfile]:
    if not user_id:
        return None
    with app_session() as session:
        return session.query(UserProfile).filter(UserProfile.id == user_id).one_or_none()


def create_profile(
    user_id: str,
    *,
    email: Optional[str] = None,
    name: Optional[str] = None,
    is_admin: bool = False,
) -> UserProfile:
    profile = UserProfile(
        id=user_id,
        email=email,
        name=name,
        bio="",
        is_admin=bool(is_admin),
        followers_count=0,
        following_count=0,
        stories_published_count=0,
    )
    try:
        with app_session() as session:
            session.add(profile)
    except IntegrityError as exc:
        raise ProfileExistsError("profile_exists") from exc
    return profile


def update_profile(user_id: str, **fields: Any) -> UserProfile:
    """Merge the given columns into the profile, creating it when absent."""
    with app_session() as session:
        profile = session.query(UserProfile).filter(UserProfile.id == user_id).one_or_none()
        if profile is None:
            profile = UserProfile(id=user_id, bio="", is_admin=False)
            session.add(profile)
        for key, value in fields.items():
            setattr(profile, key, value)
        return profile


def set_admin_flag(user_id: str, is_admin: bool) -> Optional[UserProfile]:
    with app_session() as session:
        profile = session.query(UserProfile).filter(UserProfile.id == user_id).one_or_none()
        if not profile:
            return None
        profile.is_admin = bool(is_admin)
        return profile


def is_admin(user_id: Optional[str]) -> bool:
    if not user_id:
        return False
    with app_session() as session:
        flag = session.query(UserProfile.is_admin).filter(UserProfile.id == user_id).scalar()
        return bool(flag)


def list_profiles() -> List[UserProfile]:
    with app_session() as session:
        return session.query(UserProfile).order_by(UserProfile.created_at.asc(), UserProfile.id.asc()).all()


def get_settings(user_id: str) -> Dict[str, Any]:
    with app_session() as session:
        row = session.query(UserSettings).filter(UserSettings.user_id == user_id).one_or_none()
        return dict(row.settings or {}) if row else {}


def merge_settings(user_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
    with app_session() as session:
        row = session.query(UserSettings).filter(UserSettings.user_id == user_id).one_or_none()
        if row is None:
            row = UserSettings(user_id=user_id, settings={})
            session.add(row)
        merged = dict(row.settings or {})
        merged.update(values)
        row.settings = merged
        return dict(merged)


__all__ = [
    "ProfileExistsError",
    "get_profile",
    "create_profile",
    "update_profile",
    "set_admin_flag",
    "is_admin",
    "list_profiles",
    "get_settings",
    "merge_settings",
]
