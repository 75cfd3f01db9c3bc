"""Advisory object locks stored in the ``object_lock`` table."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError

from patchbatch.adapters.sqlalchemy.mappings import object_lock_table

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

log = getLogger(__name__)


class SqlAlchemyLockManager:
    """Lock manager where every call runs in its own short transaction.

    Locks are keyed by target id and owned by ``holder``; only the owner may
    release a lock.
    """

    def __init__(self, session_factory: Callable[[], Session], *, holder: str) -> None:
        self.session_factory = session_factory
        self.holder = holder

    def holder_of(self, target_id: str) -> str | None:
        with self.session_factory() as session:
            return session.execute(
                select(object_lock_table.c.holder).where(object_lock_table.c.target_id == target_id)
            ).scalar_one_or_none()

    def is_locked(self, target_id: str) -> bool:
        holder = self.holder_of(target_id)
        return holder is not None and holder != self.holder

    def acquire(self, target_id: str) -> bool:
        with self.session_factory() as session:
            current = session.execute(
                select(object_lock_table.c.holder).where(object_lock_table.c.target_id == target_id)
            ).scalar_one_or_none()
            if current is not None:
                return current == self.holder
            try:
                session.execute(
                    insert(object_lock_table).values(
                        target_id=target_id,
                        holder=self.holder,
                        acquired_at=datetime.now(UTC),
                    )
                )
                session.commit()
            except IntegrityError:
                session.rollback()
                log.info("Lock on %s taken concurrently", target_id)
                return False
        log.debug("Locked %s for %s", target_id, self.holder)
        return True

    def release(self, target_id: str) -> None:
        with self.session_factory() as session:
            session.execute(
                delete(object_lock_table)
                .where(object_lock_table.c.target_id == target_id)
                .where(object_lock_table.c.holder == self.holder)
            )
            session.commit()

    def release_all(self) -> int:
        """Drop every lock owned by ``holder``; return how many were held."""

        with self.session_factory() as session:
            result = session.execute(
                delete(object_lock_table).where(object_lock_table.c.holder == self.holder)
            )
            session.commit()
        released = result.rowcount
        if released:
            log.info("Released %s leftover locks of %s", released, self.holder)
        return released
