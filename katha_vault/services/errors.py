"""Error taxonomy shared by every service.

Each error carries a short machine code as its message (``str(exc)``); the
route layer maps codes to localized text. Guards for the explicit caller
identity live here too so services raise the same error classes.
"""
from __future__ import annotations

from typing import Optional

from katha_vault.utils.identity import Identity


class KathaError(Exception):
    """Base class for classified service failures."""

    code = "error"

    def __init__(self, code: Optional[str] = None):
        super().__init__(code or self.code)

    @property
    def error_code(self) -> str:
        return str(self)


class ValidationError(KathaError, ValueError):
    """Bad input. Never retried."""

    code = "invalid_input"


class AuthorizationError(KathaError):
    """Caller is anonymous, does not match the subject, or lacks admin."""

    code = "forbidden"


class NotFoundError(KathaError):
    """Referenced story, chapter or user does not exist."""

    code = "not_found"


class TransientError(KathaError):
    """Store transaction could not commit within the configured attempts."""

    code = "transaction_contention"


def require_authenticated(caller: Optional[Identity]) -> Identity:
    if caller is None or not caller.is_authenticated:
        raise AuthorizationError("login_required")
    return caller


def require_subject(caller: Optional[Identity], user_id: Optional[str]) -> Identity:
    """Ensure the verified caller is the user the operation acts for."""
    caller = require_authenticated(caller)
    if not user_id or caller.user_id != user_id:
        raise AuthorizationError("uid_mismatch")
    return caller


def require_admin(caller: Optional[Identity]) -> Identity:
    caller = require_authenticated(caller)
    if not caller.is_admin:
        raise AuthorizationError("admin_required")
    return caller


__all__ = [
    "KathaError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "TransientError",
    "require_authenticated",
    "require_subject",
    "require_admin",
]
