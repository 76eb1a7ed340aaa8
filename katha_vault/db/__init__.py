"""Database layer root.

Exposes engine/session management and the `run_transaction` retry
primitive used for atomic read-modify-write sequences.
"""

from .engine import (
    TransactionConflictError,
    init_engine_once,
    get_engine,
    get_session_factory,
    get_scoped_session,
    app_session,
    run_transaction,
)

__all__ = [
    "TransactionConflictError",
    "init_engine_once",
    "get_engine",
    "get_session_factory",
    "get_scoped_session",
    "app_session",
    "run_transaction",
]
