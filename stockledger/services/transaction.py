from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from psycopg import errors as pg_errors
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from stockledger.services.errors import TransactionAbortError

logger = logging.getLogger(__name__)

# Conflits de concurrence : rejouer toute l'opération est sûr
RETRYABLE_PG_ERRORS = (
    pg_errors.SerializationFailure,
    pg_errors.DeadlockDetected,
    pg_errors.LockNotAvailable,
)


def is_retryable(exc: OperationalError) -> bool:
    """Conflit / verrou (retry OK) vs panne de connexion ou de transport (erreur interne)."""
    if isinstance(exc.orig, RETRYABLE_PG_ERRORS):
        return True
    # SQLite (dev / tests) : base verrouillée par un autre écrivain
    return "database is locked" in str(exc.orig)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Une seule transaction pour tout le read-modify-write.

    - commit à la sortie du bloc
    - rollback sur n'importe quelle exception (rien de partiel)
    - conflit de sérialisation / verrou -> TransactionAbortError (503, rejouable)
    - autre OperationalError (connexion perdue...) : remonte tel quel (500)
    """
    try:
        yield db
        db.commit()
    except OperationalError as exc:
        db.rollback()
        if not is_retryable(exc):
            raise
        logger.warning("Transaction aborted: %s", exc.orig)
        raise TransactionAbortError() from exc
    except Exception:
        db.rollback()
        raise
