"""Repository for the singleton site settings row."""
from __future__ import annotations

from typing import Any, Optional

from katha_vault.db import app_session
from katha_vault.db.models import SiteSettings


def get_settings() -> Optional[SiteSettings]:
    with app_session() as session:
        return session.query(SiteSettings).filter(SiteSettings.id == 1).one_or_none()


def upsert_settings(*, default_title: str, default_registration: bool = True, **fields: Any) -> SiteSettings:
    with app_session() as session:
        row = session.query(SiteSettings).filter(SiteSettings.id == 1).one_or_none()
        if row is None:
            row = SiteSettings(
                id=1,
                site_title=default_title,
                site_description="",
                allow_user_registration=default_registration,
            )
            session.add(row)
        for key, value in fields.items():
            setattr(row, key, value)
        return row


__all__ = ["get_settings", "upsert_settings"]
