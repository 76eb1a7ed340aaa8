"""Public reader API.

Routes:
    GET    /api/stories                                         -> browse listing
    GET    /api/stories/<slug>                                  -> story page payload
    GET    /api/stories/<slug>/chapters/<n>                     -> chapter page payload
    POST   /api/stories/<story_id>/rating                       -> rate story
    POST   /api/stories/<story_id>/chapters/<chapter_id>/rating -> rate chapter
    POST   /api/stories/<story_id>/comments                     -> comment on story
    POST   /api/stories/<story_id>/chapters/<chapter_id>/comments
    GET    /api/library                                         -> caller's library
    PUT    /api/library/<story_id>                              -> add to library
    DELETE /api/library/<story_id>                              -> remove from library

Write routes act for the signed-in caller. A body ``user_id`` other than the
caller's is rejected rather than ignored.
"""
from __future__ import annotations

from typing import Optional

from flask import Blueprint, jsonify, request

from katha_vault.db.models import ENTITY_CHAPTER, ENTITY_STORY
from katha_vault.routes.common import current_identity, error_response, json_body, json_error
from katha_vault.services import rating_service, reader_service
from katha_vault.services.errors import KathaError
from katha_vault.utils.identity import Identity

bp = Blueprint("katha_reader", __name__, url_prefix="/api")


def _subject(caller: Identity, payload: Optional[dict] = None) -> Optional[str]:
    if payload and payload.get("user_id") is not None:
        return str(payload.get("user_id"))
    return caller.user_id


@bp.route("/stories", methods=["GET"])
def api_browse():
    try:
        limit = int(request.args.get("limit", 24))
    except ValueError:
        limit = 24
    genres = request.args.getlist("genre")
    try:
        stories = reader_service.browse_stories(
            genre=",".join(genres) if genres else None,
            sort=request.args.get("sort", "new"),
            search=request.args.get("q"),
            limit=limit,
        )
    except KathaError as exc:
        return error_response(exc)
    return jsonify({"stories": stories, "count": len(stories)})


@bp.route("/stories/<slug>", methods=["GET"])
def api_story_details(slug: str):
    caller = current_identity()
    try:
        details = reader_service.fetch_story_details(slug, caller.user_id)
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify(details)


@bp.route("/stories/<slug>/chapters/<int:chapter_number>", methods=["GET"])
def api_chapter_details(slug: str, chapter_number: int):
    caller = current_identity()
    try:
        details = reader_service.fetch_chapter_details(slug, chapter_number, caller.user_id)
    except KathaError as exc:
        return error_response(exc, caller)
    if chapter_number == 1:
        reader_service.record_read(details["story_id"])
    return jsonify(details)


def _rate(entity_type: str, entity_id: str, story_id: Optional[str] = None):
    caller = current_identity()
    payload = json_body()
    if payload is None:
        return json_error("invalid_json", 400)
    try:
        result = rating_service.submit_rating(
            caller,
            entity_type,
            entity_id,
            _subject(caller, payload),
            payload.get("rating"),
            story_id=story_id,
        )
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify(result.as_dict())


@bp.route("/stories/<story_id>/rating", methods=["POST"])
def api_rate_story(story_id: str):
    return _rate(ENTITY_STORY, story_id)


@bp.route("/stories/<story_id>/chapters/<chapter_id>/rating", methods=["POST"])
def api_rate_chapter(story_id: str, chapter_id: str):
    return _rate(ENTITY_CHAPTER, chapter_id, story_id)


def _comment(entity_type: str, entity_id: str, story_id: Optional[str] = None):
    caller = current_identity()
    payload = json_body()
    if payload is None:
        return json_error("invalid_json", 400)
    try:
        comment = reader_service.submit_comment(
            caller,
            entity_type,
            entity_id,
            _subject(caller, payload),
            payload.get("text"),
            story_id=story_id,
        )
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"status": "created", "comment": comment}), 201


@bp.route("/stories/<story_id>/comments", methods=["POST"])
def api_comment_story(story_id: str):
    return _comment(ENTITY_STORY, story_id)


@bp.route("/stories/<story_id>/chapters/<chapter_id>/comments", methods=["POST"])
def api_comment_chapter(story_id: str, chapter_id: str):
    return _comment(ENTITY_CHAPTER, chapter_id, story_id)


@bp.route("/library", methods=["GET"])
def api_library():
    caller = current_identity()
    try:
        entries = reader_service.list_library(caller, caller.user_id, request.args.get("q"))
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify({"entries": entries, "count": len(entries)})


@bp.route("/library/<story_id>", methods=["PUT", "DELETE"])
def api_library_toggle(story_id: str):
    caller = current_identity()
    try:
        result = reader_service.toggle_library_status(
            caller,
            caller.user_id,
            story_id,
            add=request.method == "PUT",
        )
    except KathaError as exc:
        return error_response(exc, caller)
    return jsonify(result)


def register_reader_blueprint(app):
    if not getattr(app, "_katha_reader_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_katha_reader_bp", bp)


__all__ = ["register_reader_blueprint", "bp"]
