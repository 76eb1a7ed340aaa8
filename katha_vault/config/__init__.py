"""Application configuration accessors.

Centralizes environment variable parsing & defaults. Every accessor reads the
environment on call so tests can flip values with ``monkeypatch.setenv``.
"""
from __future__ import annotations

import os
from functools import lru_cache

APP_NAME = "katha_vault"
APP_VERSION = "0.4.0"
APP_DESCRIPTION = "Katha Vault story publishing backend"

DEFAULT_DB_PATH = "katha_vault.db"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_RATING_MAX_ATTEMPTS = 5
DEFAULT_COMMENTS_PAGE_SIZE = 20
DEFAULT_UPLOAD_DIR = "uploads"
DEFAULT_UPLOAD_BASE_URL = "/uploads"
_TRUE = {"1", "true", "yes", "on"}


def _raw_env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(name)
    return val if val is not None else default


def env_bool(name: str, default: bool = False) -> bool:
    raw = _raw_env(name, str(default).lower())
    if raw is None:
        return default
    return raw.lower() in _TRUE


def env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = _raw_env(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    if minimum is not None and value < minimum:
        return minimum
    return value


def data_dir() -> str | None:
    value = os.getenv("KATHA_DATA_DIR")
    if value is None:
        return None
    value = value.strip()
    return value or None


def get_db_path() -> str:
    raw = _raw_env("KATHA_DB_PATH", DEFAULT_DB_PATH)
    if raw == ":memory:":
        return raw
    if raw and not os.path.isabs(raw):
        root = data_dir()
        if root:
            return os.path.join(root, raw)
    return raw  # type: ignore[return-value]


def session_user_key() -> str:
    return os.getenv("KATHA_SESSION_USER_KEY", "user_id")


def secret_key() -> str:
    return os.getenv("KATHA_SECRET_KEY", "katha-dev-secret")


def log_level_name() -> str:
    return _raw_env("KATHA_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()  # type: ignore[union-attr]


def rating_max_attempts() -> int:
    """Attempts for one rating read-modify-write before giving up.

    Environment Variable: KATHA_RATING_MAX_ATTEMPTS (default 5, minimum 1)
    """
    return env_int("KATHA_RATING_MAX_ATTEMPTS", DEFAULT_RATING_MAX_ATTEMPTS, minimum=1)


def comments_page_size() -> int:
    return env_int("KATHA_COMMENTS_PAGE_SIZE", DEFAULT_COMMENTS_PAGE_SIZE, minimum=1)


def upload_dir() -> str:
    raw = _raw_env("KATHA_UPLOAD_DIR", DEFAULT_UPLOAD_DIR) or DEFAULT_UPLOAD_DIR
    if not os.path.isabs(raw):
        root = data_dir()
        if root:
            return os.path.join(root, raw)
    return raw


def upload_base_url() -> str:
    return (os.getenv("KATHA_UPLOAD_BASE_URL") or DEFAULT_UPLOAD_BASE_URL).rstrip("/")


def site_title_default() -> str:
    value = (os.getenv("KATHA_SITE_TITLE") or "").strip()
    return value or "Katha Vault"


def registration_open_default() -> bool:
    return env_bool("KATHA_ALLOW_REGISTRATION", True)


def bootstrap_admin_uid() -> str | None:
    """User id to flag as admin on startup (KATHA_BOOTSTRAP_ADMIN_UID).

    Stands in for the one-off custom-claim grant performed against the
    authentication provider. Unset by default.
    """
    value = os.getenv("KATHA_BOOTSTRAP_ADMIN_UID")
    if value is None:
        return None
    value = value.strip()
    return value or None


@lru_cache(maxsize=1)
def metadata() -> dict:
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
    }


def summarize_runtime_config() -> dict:
    return {
        "db_path": get_db_path(),
        "log_level": log_level_name(),
        "rating_max_attempts": rating_max_attempts(),
        "upload_dir": upload_dir(),
    }


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "APP_DESCRIPTION",
    "env_bool",
    "env_int",
    "data_dir",
    "get_db_path",
    "session_user_key",
    "secret_key",
    "log_level_name",
    "rating_max_attempts",
    "comments_page_size",
    "upload_dir",
    "upload_base_url",
    "site_title_default",
    "registration_open_default",
    "bootstrap_admin_uid",
    "metadata",
    "summarize_runtime_config",
]
