"""Admin authoring API.

Routes:
    GET    /admin/api/stories                                   -> all stories with chapters
    POST   /admin/api/stories                                   -> create story
    PUT    /admin/api/stories/<story_id>                        -> update story
    DELETE /admin/api/stories/<story_id>                        -> delete story (cascade)
    POST   /admin/api/stories/<story_id>/chapters               -> create chapter
    PUT    /admin/api/stories/<story_id>/chapters/<chapter_id>  -> update chapter
    DELETE /admin/api/stories/<story_id>/chapters/<chapter_id>  -> delete chapter
    POST   /admin/api/covers                                    -> upload cover image
    GET    /admin/api/users                                     -> list profiles
    POST   /admin/api/users/<uid>/admin                         -> grant/revoke admin
    GET    /admin/api/settings                                  -> site settings
    PUT    /admin/api/settings                                  -> update site settings

Admin checks happen in the services; every route passes the caller through.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from katha_vault.routes.common import current_identity, error_response, json_body, json_error
from katha_vault.services import (
    site_settings_service,
    storage_service,
    stories_service,
    users_service,
)
from katha_vault.services.errors import KathaError, require_admin

bp = Blueprint("katha_admin", __name__, url_prefix="/admin/api")


@bp.route("/stories", methods=["GET"])
def api_stories_list():
    caller = current_identity()
    try:
        stories = stories_service.fetch_admin_stories(caller)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"stories": stories, "count": len(stories)})


@bp.route("/stories", methods=["POST"])
def api_story_create():
    caller = current_identity()
    payload = json_body()
    if payload is None:
        return json_error("invalid_json", 400)
    try:
        story = stories_service.save_story(caller, None, payload)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"status": "created", "story": story}), 201


@bp.route("/stories/<story_id>", methods=["PUT"])
def api_story_update(story_id: str):
    caller = current_identity()
    payload = json_body()
    if payload is None:
        return json_error("invalid_json", 400)
    try:
        story = stories_service.save_story(caller, story_id, payload)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"status": "saved", "story": story})


@bp.route("/stories/<story_id>", methods=["DELETE"])
def api_story_delete(story_id: str):
    caller = current_identity()
    try:
        removed = stories_service.delete_story(caller, story_id)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"status": "deleted", "removed": removed})


@bp.route("/stories/<story_id>/chapters", methods=["POST"])
def api_chapter_create(story_id: str):
    caller = current_identity()
    payload = json_body()
    if payload is None:
        return json_error("invalid_json", 400)
    try:
        chapter = stories_service.save_chapter(caller, story_id, None, payload)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"status": "created", "chapter": chapter}), 201


@bp.route("/stories/<story_id>/chapters/<chapter_id>", methods=["PUT"])
def api_chapter_update(story_id: str, chapter_id: str):
    caller = current_identity()
    payload = json_body()
    if payload is None:
        return json_error("invalid_json", 400)
    try:
        chapter = stories_service.save_chapter(caller, story_id, chapter_id, payload)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"status": "saved", "chapter": chapter})


@bp.route("/stories/<story_id>/chapters/<chapter_id>", methods=["DELETE"])
def api_chapter_delete(story_id: str, chapter_id: str):
    caller = current_identity()
    try:
        removed = stories_service.delete_chapter(caller, story_id, chapter_id)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"status": "deleted", "removed": removed})


@bp.route("/covers", methods=["POST"])
def api_cover_upload():
    caller = current_identity()
    try:
        require_admin(caller)
        stored = storage_service.upload_file(request.files.get("file"), "covers")
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify(stored), 201


@bp.route("/users", methods=["GET"])
def api_users_list():
    caller = current_identity()
    try:
        users = users_service.list_users(caller)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"users": users, "count": len(users)})


@bp.route("/users/<uid>/admin", methods=["POST"])
def api_user_set_admin(uid: str):
    caller = current_identity()
    payload = json_body() or {}
    admin = payload.get("admin", True)
    if not isinstance(admin, bool):
        return json_error("invalid_json", 400)
    try:
        profile = users_service.set_admin_role(caller, uid, admin)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"status": "saved", "user": profile})


@bp.route("/settings", methods=["GET"])
def api_site_settings_get():
    caller = current_identity()
    try:
        require_admin(caller)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify(site_settings_service.get_site_settings())


@bp.route("/settings", methods=["PUT"])
def api_site_settings_update():
    caller = current_identity()
    payload = json_body()
    if payload is None:
        return json_error("invalid_json", 400)
    fields = {
        key: payload[key]
        for key in ("site_title", "site_description", "allow_user_registration")
        if key in payload
    }
    try:
        settings = site_settings_service.update_site_settings(caller, **fields)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"status": "saved", "settings": settings})


def register_admin_blueprint(app):
    if not getattr(app, "_katha_admin_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_katha_admin_bp", bp)


__all__ = ["register_admin_blueprint", "bp"]
