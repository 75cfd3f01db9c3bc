from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import update

from patchbatch.adapters.sqlalchemy.mappings import diff_record_table
from patchbatch.domain.errors import (
    DiffRecordNotFoundError,
    InvalidDiffRecordError,
    StatusTransitionError,
)
from patchbatch.domain.model import Batch, DiffRecord, DiffStatus
from tests.helpers.fakes import BATCH_CREATED_AT, make_diff

if TYPE_CHECKING:
    from collections.abc import Callable

    from patchbatch.adapters.sqlalchemy.unit_of_work import SqlAlchemyDiffUnitOfWork

    UowFactory = Callable[[], SqlAlchemyDiffUnitOfWork]

DIFF = make_diff("a\n", "b\n")


def _seed(factory: UowFactory, targets: list[str]) -> int:
    with factory() as uow:
        batch = Batch(created_at=BATCH_CREATED_AT, description="nightly")
        uow.repositories.batches.add(batch)
        uow.session.flush()
        assert batch.id is not None
        for target in targets:
            uow.repositories.diffs.add(
                DiffRecord(batch_id=batch.id, target_id=target, sub_resource_id="DC", diff=DIFF)
            )
        uow.commit()
        return batch.id


def test_batch_round_trip_keeps_creation_time_in_utc(
    sqlite_unit_of_work: UowFactory,
) -> None:
    batch_id = _seed(sqlite_unit_of_work, [])

    with sqlite_unit_of_work() as uow:
        batch = uow.repositories.batches.get(batch_id)

    assert batch is not None
    assert batch.created_at == BATCH_CREATED_AT
    assert batch.description == "nightly"


def test_fetch_pending_pages_in_insertion_order(sqlite_unit_of_work: UowFactory) -> None:
    batch_id = _seed(sqlite_unit_of_work, [f"obj:{index}" for index in range(5)])

    with sqlite_unit_of_work() as uow:
        diffs = uow.repositories.diffs
        first = diffs.fetch_pending(batch_id, limit=2)
        second = diffs.fetch_pending(batch_id, limit=2, offset=2)
        total = diffs.count_pending(batch_id)

    assert [record.target_id for record in first] == ["obj:0", "obj:1"]
    assert [record.target_id for record in second] == ["obj:2", "obj:3"]
    assert all(record.status is DiffStatus.PENDING for record in first)
    assert first[0].diff == DIFF
    assert total == 5


def test_processed_records_leave_the_pending_queue(sqlite_unit_of_work: UowFactory) -> None:
    batch_id = _seed(sqlite_unit_of_work, ["obj:1", "obj:2", "obj:3"])

    with sqlite_unit_of_work() as uow:
        first = uow.repositories.diffs.fetch_pending(batch_id, limit=1)[0]
        assert first.id is not None
        uow.repositories.diffs.update_status(first.id, DiffStatus.PATCH_FAIL)
        uow.commit()

    with sqlite_unit_of_work() as uow:
        pending = uow.repositories.diffs.fetch_pending(batch_id)
        counts = uow.repositories.diffs.status_counts(batch_id)

    assert [record.target_id for record in pending] == ["obj:2", "obj:3"]
    assert counts[DiffStatus.PENDING] == 2
    assert counts[DiffStatus.PATCH_FAIL] == 1
    assert counts[DiffStatus.APPLIED] == 0


def test_terminal_status_is_final(sqlite_unit_of_work: UowFactory) -> None:
    batch_id = _seed(sqlite_unit_of_work, ["obj:1"])

    with sqlite_unit_of_work() as uow:
        record_id = uow.repositories.diffs.fetch_pending(batch_id)[0].id
        assert record_id is not None
        uow.repositories.diffs.update_status(record_id, DiffStatus.APPLIED)
        uow.repositories.diffs.update_status(record_id, DiffStatus.APPLIED)
        uow.commit()

    with sqlite_unit_of_work() as uow, pytest.raises(StatusTransitionError) as excinfo:
        uow.repositories.diffs.update_status(record_id, DiffStatus.UPDATE_FAIL)

    assert excinfo.value.current is DiffStatus.APPLIED


def test_unknown_record_cannot_be_updated(sqlite_unit_of_work: UowFactory) -> None:
    with sqlite_unit_of_work() as uow, pytest.raises(DiffRecordNotFoundError):
        uow.repositories.diffs.update_status(404, DiffStatus.APPLIED)


def test_delete_all_only_touches_one_batch(sqlite_unit_of_work: UowFactory) -> None:
    kept_batch = _seed(sqlite_unit_of_work, ["obj:1"])
    dropped_batch = _seed(sqlite_unit_of_work, ["obj:2", "obj:3"])

    with sqlite_unit_of_work() as uow:
        deleted = uow.repositories.diffs.delete_all(dropped_batch)
        uow.commit()

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.diffs.count_pending(dropped_batch) == 0
        assert uow.repositories.diffs.count_pending(kept_batch) == 1
        assert uow.repositories.batches.get(dropped_batch) is not None

    assert deleted == 2


def test_invalid_records_are_rejected_on_add(sqlite_unit_of_work: UowFactory) -> None:
    with sqlite_unit_of_work() as uow, pytest.raises(InvalidDiffRecordError):
        uow.repositories.diffs.add(
            DiffRecord(batch_id=1, target_id=" ", sub_resource_id="DC", diff=DIFF)
        )


def test_invalid_stored_rows_are_rejected_on_fetch(sqlite_unit_of_work: UowFactory) -> None:
    batch_id = _seed(sqlite_unit_of_work, ["obj:1"])

    with sqlite_unit_of_work() as uow:
        uow.session.execute(
            update(diff_record_table)
            .where(diff_record_table.c.batch_id == batch_id)
            .values(sub_resource_id="")
        )
        uow.commit()

    with sqlite_unit_of_work() as uow, pytest.raises(InvalidDiffRecordError):
        uow.repositories.diffs.fetch_pending(batch_id)
