"""Database engine, session management and the transaction retry primitive.

`app_session()` is the plain unit-of-work used by repositories for simple
reads and writes. `run_transaction(fn)` is the store's atomic
read-modify-write primitive: it runs ``fn(session)`` in a fresh session,
commits, and re-runs the whole function when the commit loses an optimistic
concurrency race.
"""
from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session as SASession
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from katha_vault import config as app_config
from katha_vault.db.models import Base
from katha_vault.utils.logging import get_logger

T = TypeVar("T")

_engine: Optional[Engine] = None
_SessionFactory: Optional[Callable[[], SASession]] = None
_scoped: Optional[scoped_session] = None
_LOCK = threading.Lock()

LOG = get_logger("katha.db")


class TransactionConflictError(RuntimeError):
    """Raised when `run_transaction` exhausts its attempts on write conflicts."""

    def __init__(self, label: str, attempts: int):
        super().__init__(f"{label} did not commit after {attempts} attempts")
        self.label = label
        self.attempts = attempts


def init_engine_once() -> None:
    global _engine, _SessionFactory, _scoped
    if _engine is not None:
        return
    with _LOCK:
        if _engine is not None:
            return
        db_path = app_config.get_db_path()
        LOG.info("Initializing katha database engine at %s", db_path)
        if db_path != ":memory:":
            parent_dir = os.path.dirname(os.path.abspath(db_path)) or "."
            os.makedirs(parent_dir, exist_ok=True)
            if not os.access(parent_dir, os.W_OK):
                raise RuntimeError(f"katha DB directory not writable: {parent_dir}")
        _engine = create_engine(f"sqlite:///{db_path}", future=True)
        _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False, class_=SASession)
        _scoped = scoped_session(_SessionFactory)
        _safe_create_schema()
        LOG.debug("katha schema ready")


def _safe_create_schema() -> None:
    """Run metadata.create_all, tolerating the multi-worker startup race.

    Parallel workers may hit OperationalError 'table ... already exists'
    between checkfirst and DDL; anything else is surfaced.
    """
    try:
        if _engine is None:
            return
        Base.metadata.create_all(_engine)
    except OperationalError as e:  # pragma: no cover - concurrency edge
        msg = str(e).lower()
        if "already exists" in msg:
            LOG.warning("Schema create encountered existing tables (benign race)")
        else:
            raise


def get_engine() -> Engine:
    if _engine is None:
        init_engine_once()
    return _engine  # type: ignore[return-value]


def get_session_factory() -> Callable[[], SASession]:
    if _SessionFactory is None:
        init_engine_once()
    return _SessionFactory  # type: ignore[return-value]


def get_scoped_session() -> scoped_session:
    if _scoped is None:
        init_engine_once()
    if _scoped is None:
        raise RuntimeError("Scoped session could not be initialized.")
    return _scoped  # type: ignore[return-value]


@contextmanager
def app_session() -> Iterator[SASession]:
    scoped = get_scoped_session()
    sess = scoped()
    try:
        yield sess
        sess.commit()
    except Exception:
        sess.rollback()
        raise
    finally:
        sess.close()


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, (StaleDataError, IntegrityError)):
        return True
    if isinstance(exc, OperationalError):
        return "locked" in str(exc).lower()
    return False


def run_transaction(
    fn: Callable[[SASession], T],
    *,
    max_attempts: Optional[int] = None,
    label: str = "transaction",
) -> T:
    """Run ``fn(session)`` atomically, retrying the whole call on conflict.

    Every attempt gets a fresh session, so ``fn`` re-reads current state.
    Conflicts are version mismatches on versioned rows (`StaleDataError`),
    unique-key collisions from a concurrent insert (`IntegrityError`) and
    SQLite lock timeouts. Any other exception rolls back and propagates
    unchanged. Raises `TransactionConflictError` once attempts run out.
    """
    attempts = max_attempts if max_attempts is not None else app_config.rating_max_attempts()
    attempts = max(1, int(attempts))
    factory = get_session_factory()
    last_exc: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        sess = factory()
        try:
            result = fn(sess)
            sess.commit()
            if attempt > 1:
                LOG.info("%s committed on attempt %s", label, attempt)
            return result
        except Exception as exc:
            sess.rollback()
            if not _is_retryable(exc):
                raise
            last_exc = exc
            LOG.warning("%s conflict on attempt %s/%s: %s", label, attempt, attempts, exc.__class__.__name__)
        finally:
            sess.close()
    raise TransactionConflictError(label, attempts) from last_exc


def reset_for_tests(drop: bool = False) -> None:
    global _engine, _SessionFactory, _scoped
    with _LOCK:
        if _scoped is not None:
            _scoped.remove()
        if _engine is not None and drop:
            try:
                Base.metadata.drop_all(_engine)
            except Exception:
                LOG.warning("Failed dropping tables during reset", exc_info=True)
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _SessionFactory = None
        _scoped = None


__all__ = [
    "TransactionConflictError",
    "init_engine_once",
    "get_engine",
    "get_session_factory",
    "get_scoped_session",
    "app_session",
    "run_transaction",
    "reset_for_tests",
]
