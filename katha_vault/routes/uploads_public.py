"""Public endpoint serving uploaded covers and avatars from the local store."""
from __future__ import annotations

import mimetypes

from flask import Blueprint, abort, send_file

from katha_vault.services import storage_service

bp = Blueprint("katha_uploads", __name__, url_prefix="/uploads")


@bp.route("/<path:filename>", methods=["GET"])
def get_upload(filename: str):
    target = storage_service.resolve_upload_path(filename)
    if target is None or not target.is_file():
        abort(404)
    mimetype, _ = mimetypes.guess_type(target.name)
    if mimetype is None:
        mimetype = "application/octet-stream"
    return send_file(str(target), mimetype=mimetype, conditional=True, download_name=target.name)


def register_uploads_blueprint(app):
    if not getattr(app, "_katha_uploads_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_katha_uploads_bp", bp)


__all__ = ["register_uploads_blueprint", "bp"]
