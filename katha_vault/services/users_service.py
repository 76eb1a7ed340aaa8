"""User profiles, per-user settings and admin role management."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from katha_vault.db.repositories import stories_repo, users_repo
from katha_vault.services import validation_service
from katha_vault.services.errors import (
    NotFoundError,
    ValidationError,
    require_admin,
    require_subject,
)
from katha_vault.utils.identity import Identity, normalize_email, normalize_user_id
from katha_vault.utils.logging import get_logger

LOG = get_logger("users_service")

_MISSING = object()


def create_user_profile(
    user_id: str,
    email: Optional[str],
    name: Optional[str] = None,
    is_admin: bool = False,
) -> Dict[str, Any]:
    """Create the profile row for a freshly signed-up user.

    Idempotent: an existing profile is returned untouched.
    """
    uid = normalize_user_id(user_id)
    if not uid:
        raise ValidationError("uid_required")
    existing = users_repo.get_profile(uid)
    if existing is not None:
        return existing.as_dict()
    try:
        profile = users_repo.create_profile(uid, email=normalize_email(email), name=name, is_admin=is_admin)
    except users_repo.ProfileExistsError:
        # lost a signup race; the other writer's row wins
        return users_repo.get_profile(uid).as_dict()  # type: ignore[union-attr]
    LOG.info("Profile created user=%s admin=%s", uid, bool(is_admin))
    return profile.as_dict()


def fetch_user_profile(user_id: Optional[str]) -> Optional[Dict[str, Any]]:
    profile = users_repo.get_profile(user_id) if user_id else None
    return profile.as_dict() if profile else None


def update_profile_info(
    caller: Optional[Identity],
    user_id: str,
    *,
    display_name: Any = _MISSING,
    avatar_url: Any = _MISSING,
) -> Dict[str, Any]:
    """Merge name/avatar into the profile and refresh the author caches.

    Stories copy ``author_name`` / ``author_avatar_url`` at write time; the
    copies are re-synced here after the profile write, so readers may briefly
    see the old values.
    """
    require_subject(caller, user_id)
    fields: Dict[str, Any] = {}
    if display_name is not _MISSING:
        name = (display_name or "").strip() if isinstance(display_name, str) else None
        fields["name"] = name or None
    if avatar_url is not _MISSING:
        fields["avatar_url"] = avatar_url.strip() if isinstance(avatar_url, str) and avatar_url.strip() else None
    if not fields:
        profile = users_repo.get_profile(user_id)
        if profile is None:
            raise NotFoundError("user_missing")
        return profile.as_dict()
    profile = users_repo.update_profile(user_id, **fields)
    touched = stories_repo.refresh_author_fields(user_id, fields)
    LOG.info("Profile updated user=%s fields=%s stories_refreshed=%s", user_id, sorted(fields), touched)
    return profile.as_dict()


def update_user_bio(caller: Optional[Identity], user_id: str, bio: Any) -> Dict[str, Any]:
    require_subject(caller, user_id)
    cleaned = validation_service.validate_bio(bio)
    profile = users_repo.update_profile(user_id, bio=cleaned)
    LOG.info("Bio updated user=%s length=%s", user_id, len(cleaned))
    return profile.as_dict()


def fetch_user_settings(caller: Optional[Identity], user_id: str) -> Dict[str, Any]:
    require_subject(caller, user_id)
    return users_repo.get_settings(user_id)


def update_user_settings(caller: Optional[Identity], user_id: str, settings: Any) -> Dict[str, Any]:
    require_subject(caller, user_id)
    if not isinstance(settings, dict):
        raise ValidationError("settings_invalid")
    merged = users_repo.merge_settings(user_id, settings)
    LOG.info("Settings updated user=%s keys=%s", user_id, sorted(settings))
    return merged


def set_admin_role(caller: Optional[Identity], target_uid: Any, admin: bool = True) -> Dict[str, Any]:
    """Grant or revoke the admin flag. Admins cannot revoke themselves."""
    caller = require_admin(caller)
    uid = normalize_user_id(target_uid)
    if not uid:
        raise ValidationError("uid_required")
    if not admin and uid == caller.user_id:
        raise ValidationError("cannot_revoke_own_admin")
    profile = users_repo.set_admin_flag(uid, admin)
    if profile is None:
        raise NotFoundError("user_missing")
    LOG.info("Admin flag set user=%s admin=%s by=%s", uid, bool(admin), caller.user_id)
    return profile.as_dict()


def list_users(caller: Optional[Identity]) -> List[Dict[str, Any]]:
    require_admin(caller)
    return [p.as_dict() for p in users_repo.list_profiles()]


def is_admin_user(user_id: Optional[str]) -> bool:
    return users_repo.is_admin(user_id)


def grant_admin(user_id: Any) -> Dict[str, Any]:
    """Operator path (CLI, startup bootstrap): flag a uid as admin without a caller.

    Creates a bare profile when the user has never signed in.
    """
    uid = normalize_user_id(user_id)
    if not uid:
        raise ValidationError("uid_required")
    create_user_profile(uid, None)
    profile = users_repo.set_admin_flag(uid, True)
    LOG.info("Admin granted by operator user=%s", uid)
    return profile.as_dict()  # type: ignore[union-attr]


__all__ = [
    "create_user_profile",
    "fetch_user_profile",
    "update_profile_info",
    "update_user_bio",
    "fetch_user_settings",
    "update_user_settings",
    "set_admin_role",
    "list_users",
    "is_admin_user",
    "grant_admin",
]
