"""Application initialization / wiring.

Orchestrates: DB init, route registration, translations and the optional
admin bootstrap.
"""
from __future__ import annotations

from typing import Any

from flask import Flask
from flask_babel import Babel

from katha_vault.config import bootstrap_admin_uid, secret_key, summarize_runtime_config
from katha_vault.db import init_engine_once
from katha_vault.i18n import configure_translations, select_locale
from katha_vault.routes.inject import register_all as register_routes
from katha_vault.services import users_service
from katha_vault.utils.logging import get_logger

LOG = get_logger("katha.startup")


def _maybe_bootstrap_admin() -> None:
    uid = bootstrap_admin_uid()
    if not uid:
        return
    profile = users_service.fetch_user_profile(uid)
    if profile and profile.get("is_admin"):
        LOG.debug("Admin bootstrap skipped (already admin) uid=%s", uid)
        return
    users_service.grant_admin(uid)
    LOG.info("Admin bootstrap applied uid=%s", uid)


def init_app(app: Any) -> None:
    LOG.debug("init_app starting")
    init_engine_once()
    LOG.debug("DB engine initialized")
    register_routes(app)
    LOG.debug("Routes registered")
    _maybe_bootstrap_admin()
    configure_translations(app)
    LOG.info("App startup wiring complete config=%s", summarize_runtime_config())


def create_app() -> Flask:
    app = Flask("katha_vault")
    app.config["SECRET_KEY"] = secret_key()
    app.json.sort_keys = False
    Babel(app, locale_selector=select_locale)
    init_app(app)
    return app


__all__ = ["init_app", "create_app"]
