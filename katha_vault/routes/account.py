"""Signed-in user's profile and settings API.

Routes:
    GET   /api/profile/me         -> profile (created on first visit)
    PATCH /api/profile/me         -> update name / avatar url / bio
    POST  /api/profile/me/avatar  -> upload avatar image (multipart ``file``)
    GET   /api/settings           -> per-user settings
    PUT   /api/settings           -> merge per-user settings
"""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from katha_vault.routes.common import current_identity, error_response, json_body, json_error
from katha_vault.services import storage_service, users_service
from katha_vault.services.errors import KathaError, require_authenticated

bp = Blueprint("katha_account", __name__, url_prefix="/api")


@bp.route("/profile/me", methods=["GET"])
def api_profile_get():
    caller = current_identity()
    try:
        require_authenticated(caller)
        profile = users_service.create_user_profile(caller.user_id, caller.email, caller.display_name)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify(profile)


@bp.route("/profile/me", methods=["PATCH"])
def api_profile_update():
    caller = current_identity()
    payload = json_body()
    if payload is None:
        return json_error("invalid_json", 400)
    info = {key: payload[key] for key in ("display_name", "avatar_url") if key in payload}
    try:
        profile = None
        if info or "bio" not in payload:
            profile = users_service.update_profile_info(caller, caller.user_id, **info)
        if "bio" in payload:
            profile = users_service.update_user_bio(caller, caller.user_id, payload.get("bio"))
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify(profile)


@bp.route("/profile/me/avatar", methods=["POST"])
def api_profile_avatar():
    caller = current_identity()
    try:
        stored = storage_service.upload_avatar(caller, caller.user_id, request.files.get("file"))
        profile = users_service.update_profile_info(caller, caller.user_id, avatar_url=stored["url"])
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"avatar_url": stored["url"], "profile": profile})


@bp.route("/settings", methods=["GET"])
def api_settings_get():
    caller = current_identity()
    try:
        settings = users_service.fetch_user_settings(caller, caller.user_id)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"settings": settings})


@bp.route("/settings", methods=["PUT"])
def api_settings_update():
    caller = current_identity()
    payload = json_body()
    if payload is None:
        return json_error("invalid_json", 400)
    try:
        settings = users_service.update_user_settings(caller, caller.user_id, payload.get("settings", payload))
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"status": "saved", "settings": settings})


def register_account_blueprint(app):
    if not getattr(app, "_katha_account_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_katha_account_bp", bp)


__all__ = ["register_account_blueprint", "bp"]
