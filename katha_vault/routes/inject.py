"""Blueprint registration, called once from startup wiring."""
from __future__ import annotations

from typing import Any

from .account import register_account_blueprint
from .admin import register_admin_blueprint
from .health import register_health
from .reader import register_reader_blueprint
from .uploads_public import register_uploads_blueprint


def register_all(app: Any) -> None:
    register_health(app)
    register_reader_blueprint(app)
    register_account_blueprint(app)
    register_admin_blueprint(app)
    register_uploads_blueprint(app)


__all__ = ["register_all"]
