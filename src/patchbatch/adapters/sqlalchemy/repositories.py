"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, func, select

from patchbatch.adapters.sqlalchemy.mappings import diff_record_table
from patchbatch.domain.errors import DiffRecordNotFoundError, StatusTransitionError
from patchbatch.domain.model import Batch, DiffRecord, DiffStatus
from patchbatch.domain.ports.persistence import DEFAULT_PAGE_SIZE

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.engine import CursorResult
    from sqlalchemy.orm import Session


class SqlAlchemyBatchRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Batch) -> None:
        self.session.add(entity)

    def get(self, batch_id: int) -> Batch | None:
        return self.session.get(Batch, batch_id)

    def remove(self, batch: Batch) -> None:
        self.session.delete(batch)


class SqlAlchemyDiffRecordRepository:
    """Pending-diff queue stored in the ``diff_record`` table.

    Rows leave this repository as validated ``DiffRecord`` instances; a row that
    does not form a valid record raises ``InvalidDiffRecordError``.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: DiffRecord) -> None:
        self.session.add(entity.validate())

    def fetch_pending(
        self,
        batch_id: int,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Sequence[DiffRecord]:
        if limit <= 0:
            return []
        stmt = (
            select(DiffRecord)
            .where(diff_record_table.c.batch_id == batch_id)
            .where(diff_record_table.c.status == DiffStatus.PENDING)
            .order_by(diff_record_table.c.id)
            .limit(limit)
            .offset(offset)
        )
        return [record.validate() for record in self.session.scalars(stmt)]

    def count_pending(self, batch_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(diff_record_table)
            .where(diff_record_table.c.batch_id == batch_id)
            .where(diff_record_table.c.status == DiffStatus.PENDING)
        )
        return self.session.execute(stmt).scalar_one()

    def update_status(self, record_id: int, new_status: DiffStatus) -> None:
        record = self.session.get(DiffRecord, record_id)
        if record is None:
            raise DiffRecordNotFoundError(record_id)
        if record.status not in {DiffStatus.PENDING, new_status}:
            raise StatusTransitionError(record_id, record.status, new_status)
        record.status = new_status
        self.session.flush()

    def delete_all(self, batch_id: int) -> int:
        stmt = delete(diff_record_table).where(diff_record_table.c.batch_id == batch_id)
        result = cast("CursorResult[Any]", self.session.execute(stmt))
        return result.rowcount

    def status_counts(self, batch_id: int) -> dict[DiffStatus, int]:
        stmt = (
            select(diff_record_table.c.status, func.count())
            .where(diff_record_table.c.batch_id == batch_id)
            .group_by(diff_record_table.c.status)
        )
        counts = {status: 0 for status in DiffStatus}
        for status, count in self.session.execute(stmt):
            counts[DiffStatus(status)] = int(count)
        return counts
