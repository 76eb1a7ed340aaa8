"""ORM models for user profiles, per-user settings and site settings."""
from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text

from .content import Base, _iso, utcnow


class UserProfile(Base):
    """Profile document keyed by the authentication provider's uid."""

    __tablename__ = "user_profiles"

    id = Column(String(128), primary_key=True)
    email = Column(String(255), nullable=True, index=True)
    name = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    bio = Column(Text, nullable=False, default="")
    is_admin = Column(Boolean, nullable=False, default=False)
    followers_count = Column(Integer, nullable=False, default=0)
    following_count = Column(Integer, nullable=False, default=0)
    stories_published_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatar_url": self.avatar_url,
            "bio": self.bio or "",
            "is_admin": bool(self.is_admin),
            "followers_count": self.followers_count or 0,
            "following_count": self.following_count or 0,
            "stories_published_count": self.stories_published_count or 0,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<UserProfile id={self.id} admin={self.is_admin}>"


class UserSettings(Base):
    """Free-form per-user preferences stored as one JSON object."""

    __tablename__ = "user_settings"

    user_id = Column(String(128), primary_key=True)
    settings = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class SiteSettings(Base):
    """Singleton table storing site-wide settings.

    We intentionally keep a single row (id=1).
    """

    __tablename__ = "site_settings"

    id = Column(Integer, primary_key=True, default=1)
    site_title = Column(String(120), nullable=False)
    site_description = Column(Text, nullable=False, default="")
    allow_user_registration = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def as_dict(self) -> dict:
        return {
            "site_title": self.site_title,
            "site_description": self.site_description or "",
            "allow_user_registration": bool(self.allow_user_registration),
            "updated_at": _iso(self.updated_at),
        }


__all__ = ["UserProfile", "UserSettings", "SiteSettings"]
