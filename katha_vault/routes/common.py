"""Shared helpers for the JSON blueprints: error payloads and caller identity."""
from __future__ import annotations

from typing import Any, Dict, Optional

from flask import jsonify, request
from flask_babel import gettext as _

from katha_vault.services import users_service
from katha_vault.services.errors import (
    AuthorizationError,
    KathaError,
    NotFoundError,
    TransientError,
    ValidationError,
)
from katha_vault.utils.identity import Identity, identity_from_session
from katha_vault.utils.logging import get_logger

LOG = get_logger("katha.routes")

ERROR_MESSAGES = {
    "invalid_json": _("Request body must be a JSON object."),
    "login_required": _("Sign in to continue."),
    "uid_mismatch": _("You can only act on your own account."),
    "admin_required": _("Administrator access is required."),
    "rating_out_of_range": _("Rating must be a whole number from 1 to 5."),
    "unsupported_entity": _("Only stories and chapters can be rated or commented on."),
    "unsupported_sort": _("Sort must be one of new, trending or rating."),
    "story_missing": _("Story not found."),
    "chapter_missing": _("Chapter not found."),
    "user_missing": _("User not found."),
    "transaction_contention": _("The server is busy. Please try again."),
    "title_required": _("Title is required."),
    "title_too_long": _("Title must be 100 characters or fewer."),
    "genre_required": _("Genre is required."),
    "description_required": _("Description is required."),
    "description_too_long": _("Description must be 1000 characters or fewer."),
    "tags_invalid": _("Tags must be a list of strings."),
    "tag_empty": _("Tags cannot be empty."),
    "tag_too_long": _("Each tag must be 30 characters or fewer."),
    "invalid_status": _("Unknown story status."),
    "slug_taken": _("Another story already uses this slug."),
    "chapter_title_required": _("Chapter title is required."),
    "chapter_title_too_long": _("Chapter title must be 150 characters or fewer."),
    "content_required": _("Chapter content is required."),
    "invalid_order": _("Chapter order must be a positive whole number."),
    "comment_required": _("Comment cannot be empty."),
    "comment_too_long": _("Comment must be 1000 characters or fewer."),
    "bio_invalid": _("Bio must be text."),
    "bio_too_long": _("Bio must be 500 characters or fewer."),
    "settings_invalid": _("Settings must be a JSON object."),
    "uid_required": _("User id is required."),
    "cannot_revoke_own_admin": _("You cannot remove your own administrator access."),
    "site_title_required": _("Site title is required."),
    "site_title_too_long": _("Site title is too long."),
    "site_description_invalid": _("Site description must be text."),
    "allow_user_registration_invalid": _("Registration flag must be true or false."),
    "file_required": _("Choose a file to upload."),
    "unsupported_file_type": _("Only JPG, PNG, WEBP or GIF images are allowed."),
    "file_too_large": _("File is larger than 5 MB."),
    "unsupported_folder": _("Upload destination is not allowed."),
}

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (TransientError, 503),
)


def error_message_for(code: str) -> Optional[str]:
    return ERROR_MESSAGES.get(code)


def json_error(
    code: str,
    status: int = 400,
    *,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
):
    payload: Dict[str, Any] = {"error": code}
    final_message = message or error_message_for(code)
    if final_message:
        payload["message"] = final_message
    if details is not None:
        payload["details"] = details
    return jsonify(payload), status


def error_response(exc: KathaError, caller: Optional[Identity] = None):
    """Translate a classified service error into a JSON response."""
    code = exc.error_code
    status = 500
    for error_cls, mapped in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            status = mapped
            break
    if status == 403 and (caller is None or not caller.is_authenticated):
        status = 401
    if status == 503:
        LOG.warning("Transient failure path=%s code=%s", request.path, code)
    return json_error(code, status)


def current_identity() -> Identity:
    """Session identity; the admin flag also honours the stored profile."""
    identity = identity_from_session()
    if identity.is_authenticated and not identity.is_admin and users_service.is_admin_user(identity.user_id):
        identity = Identity(
            user_id=identity.user_id,
            display_name=identity.display_name,
            avatar_url=identity.avatar_url,
            email=identity.email,
            is_admin=True,
        )
    return identity


def json_body() -> Optional[Dict[str, Any]]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else None


__all__ = [
    "ERROR_MESSAGES",
    "error_message_for",
    "json_error",
    "error_response",
    "current_identity",
    "json_body",
]
