"""
Ledger store: the single atomic read-modify-write primitive over groups,
titles and teams.

Each attempt reads the ledger row first and hands a Snapshot to the caller's
update function. The update returns Committed or Aborted; on Committed the
ledger version is bumped and the session committed. A concurrent commit in
between makes the version check fail, and the whole attempt re-runs against
fresh state.
"""
import logging
import random
import time
from datetime import datetime
from typing import Callable, Optional, Union

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from .models import db, Ledger, Group, Title, Team, LEDGER_ID
from shared.outcomes import Committed, Aborted, TransientError, InternalError

logger = logging.getLogger(__name__)

Outcome = Union[Committed, Aborted]

# Raised at flush/commit time when another writer got there first
CONTENTION_ERRORS = (StaleDataError, IntegrityError, OperationalError)


class Snapshot:
    """Keyed view of the ledger for one transaction attempt."""

    def __init__(self, session):
        self._session = session

    def group(self, group_number: str) -> Optional[Group]:
        return self._session.get(Group, group_number)

    def title(self, title: str) -> Optional[Title]:
        return self._session.get(Title, title)

    def team(self, team_key: str) -> Optional[Team]:
        return self._session.get(Team, team_key)

    def add(self, record):
        self._session.add(record)


class LedgerStore:
    """
    Wraps the Flask-SQLAlchemy session with an optimistic compare-and-swap.

    No in-process lock is taken; correctness across processes rests on the
    ledger version check alone.
    """

    def __init__(self, max_retries: int = 25, backoff: float = 0.01):
        self.max_retries = max_retries
        self.backoff = backoff

    def transaction(self, update: Callable[[Snapshot], Outcome]) -> Outcome:
        """
        Run ``update`` atomically against the whole ledger.

        Returns the Committed or Aborted outcome produced by ``update``.
        Raises TransientError when contention outlasts the retry budget and
        InternalError on any other store failure. Nothing is persisted
        unless the outcome is Committed.
        """
        session = db.session

        for attempt in range(1, self.max_retries + 1):
            try:
                session.expire_all()
                ledger = self._load_ledger(session)
                outcome = update(Snapshot(session))

                if not outcome.committed:
                    session.rollback()
                    return outcome

                ledger.version += 1
                ledger.updated_at = datetime.utcnow()
                session.add(ledger)
                session.commit()
                return outcome

            except CONTENTION_ERRORS as e:
                session.rollback()
                logger.info(f"Ledger contention on attempt {attempt}/{self.max_retries}: {e.__class__.__name__}")
                self._sleep(attempt)

            except SQLAlchemyError as e:
                session.rollback()
                logger.exception("Ledger transaction failed")
                raise InternalError("Store failure") from e

            except Exception:
                session.rollback()
                raise

        logger.warning(f"Ledger transaction gave up after {self.max_retries} attempts")
        raise TransientError("Too much contention, please retry")

    def read(self, query: Callable):
        """Run a read-only query against the session, mapping store failures."""
        try:
            return query(db.session)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception("Ledger read failed")
            raise InternalError("Store failure") from e

    def _load_ledger(self, session) -> Ledger:
        ledger = session.get(Ledger, LEDGER_ID)
        if ledger is None:
            # Added to the session only at commit, so the INSERT is the last write;
            # a concurrent creator loses on the primary key
            ledger = Ledger(id=LEDGER_ID, version=0)
        return ledger

    def _sleep(self, attempt: int):
        if self.backoff > 0:
            time.sleep(random.uniform(0, self.backoff * attempt))
