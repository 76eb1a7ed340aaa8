"""Flask-Babel setup: translation directories and locale selection."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from flask import request, session
from flask_babel import get_babel

from katha_vault.utils.logging import get_logger

LOG = get_logger("i18n")

SESSION_LOCALE_KEY = "preferred_locale"
# extend together with a compiled catalog under katha_vault/translations/
SUPPORTED_LANGUAGES = ("en",)
DEFAULT_LANGUAGE = "en"

_PACKAGE_ROOT = Path(__file__).resolve().parents[1]
_DEFAULT_TRANSLATION_ROOTS: Sequence[Path] = (
    _PACKAGE_ROOT / "translations",
)


def normalize_language_choice(raw: Optional[str]) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    code = raw.strip().lower().replace("_", "-").split("-", 1)[0]
    return code if code in SUPPORTED_LANGUAGES else None


def select_locale() -> str:
    """Session preference first, then the browser's Accept-Language."""
    preferred = normalize_language_choice(session.get(SESSION_LOCALE_KEY))
    if preferred:
        return preferred
    best = request.accept_languages.best_match(SUPPORTED_LANGUAGES)
    return best or DEFAULT_LANGUAGE


def _normalize_paths(paths: Iterable[Path | str]) -> List[str]:
    seen: List[str] = []
    for candidate in paths:
        path = Path(candidate).resolve()
        if not path.is_dir():
            LOG.debug("Translation directory missing; skipping: %s", path)
            continue
        as_str = str(path)
        if as_str not in seen:
            seen.append(as_str)
    return seen


def configure_translations(app, extra_roots: Iterable[Path | str] | None = None) -> None:
    """Register first-party translation directories in Babel's search path.

    Flask-Babel's translation directory handling is order-sensitive, so our
    roots go first.
    """
    try:
        babel_cfg = get_babel(app)
    except KeyError:
        LOG.warning("Flask-Babel not initialized; skipping translation configuration")
        return

    candidates: List[Path | str] = list(_DEFAULT_TRANSLATION_ROOTS)
    if extra_roots:
        candidates.extend(extra_roots)

    desired = _normalize_paths(candidates)
    existing = list(getattr(babel_cfg, "translation_directories", []))

    merged: List[str] = []
    for directory in desired + existing:
        if directory not in merged:
            merged.append(directory)

    if merged == existing:
        return

    babel_cfg.translation_directories = merged
    app.config["BABEL_TRANSLATION_DIRECTORIES"] = ";".join(merged)
    LOG.info("Registered %s custom translation directories", len(desired))


__all__ = [
    "SESSION_LOCALE_KEY",
    "SUPPORTED_LANGUAGES",
    "normalize_language_choice",
    "select_locale",
    "configure_translations",
]
