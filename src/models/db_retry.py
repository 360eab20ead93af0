import logging
import time

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


def is_sqlite_locked_error(exc: OperationalError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return "database is locked" in message or "database is busy" in message


def commit_with_retry(session, retries: int = 3, delay: float = 0.1) -> None:
    """Commit, retrying only when SQLite reports the file as locked.

    SQLite keeps the transaction open when COMMIT hits a lock, so the commit
    itself is retried; any other failure rolls back and propagates.
    """
    for attempt in range(retries):
        try:
            session.commit()
            return
        except OperationalError as exc:
            if not is_sqlite_locked_error(exc) or attempt == retries - 1:
                session.rollback()
                raise
            logger.warning(f"Database locked on commit, retrying ({attempt + 1}/{retries})")
            time.sleep(delay * (attempt + 1))
