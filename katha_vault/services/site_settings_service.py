"""Site-wide settings (single row)."""
from __future__ import annotations

from typing import Any, Dict, Optional

from katha_vault import config as app_config
from katha_vault.db.repositories import site_settings_repo
from katha_vault.services.errors import ValidationError, require_admin
from katha_vault.utils.identity import Identity
from katha_vault.utils.logging import get_logger

LOG = get_logger("site_settings_service")

SITE_TITLE_MAX = 120


def _defaults() -> Dict[str, Any]:
    return {
        "site_title": app_config.site_title_default(),
        "site_description": "",
        "allow_user_registration": app_config.registration_open_default(),
        "updated_at": None,
    }


def get_site_settings() -> Dict[str, Any]:
    row = site_settings_repo.get_settings()
    return row.as_dict() if row else _defaults()


def update_site_settings(caller: Optional[Identity], **fields: Any) -> Dict[str, Any]:
    caller = require_admin(caller)
    values: Dict[str, Any] = {}
    if "site_title" in fields:
        title = fields["site_title"]
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("site_title_required")
        if len(title.strip()) > SITE_TITLE_MAX:
            raise ValidationError("site_title_too_long")
        values["site_title"] = title.strip()
    if "site_description" in fields:
        description = fields["site_description"]
        if description is not None and not isinstance(description, str):
            raise ValidationError("site_description_invalid")
        values["site_description"] = (description or "").strip()
    if "allow_user_registration" in fields:
        allow = fields["allow_user_registration"]
        if not isinstance(allow, bool):
            raise ValidationError("allow_user_registration_invalid")
        values["allow_user_registration"] = allow
    row = site_settings_repo.upsert_settings(
        default_title=app_config.site_title_default(),
        default_registration=app_config.registration_open_default(),
        **values,
    )
    LOG.info("Site settings updated by=%s fields=%s", caller.user_id, sorted(values))
    return row.as_dict()


__all__ = ["get_site_settings", "update_site_settings"]
