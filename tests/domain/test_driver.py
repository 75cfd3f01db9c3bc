from __future__ import annotations

import json

import pytest

from patchbatch.domain.applicator import DiffApplicator
from patchbatch.domain.driver import BatchStepDriver
from patchbatch.domain.errors import BatchNotFoundError, DiffUpdateError
from patchbatch.domain.model import DiffStatus, DriverState
from patchbatch.domain.progress import StepState
from tests.helpers.fakes import (
    FakeLockManager,
    FakeUnitOfWork,
    InMemoryResourceRepository,
    make_diff,
)

OLD = "title: Old\n"
NEW = "title: New\n"
DIFF = make_diff(OLD, NEW)


@pytest.fixture
def uow() -> FakeUnitOfWork:
    unit_of_work = FakeUnitOfWork()
    unit_of_work.seed_batch(7)
    return unit_of_work


@pytest.fixture
def resources() -> InMemoryResourceRepository:
    return InMemoryResourceRepository()


@pytest.fixture
def locks() -> FakeLockManager:
    return FakeLockManager()


def _driver(
    uow: FakeUnitOfWork,
    resources: InMemoryResourceRepository,
    locks: FakeLockManager | None = None,
    page_size: int = 100,
) -> BatchStepDriver:
    return BatchStepDriver(
        unit_of_work_factory=uow.factory,
        applicator=DiffApplicator(resources=resources, locks=locks),
        page_size=page_size,
    )


def test_batch_with_mixed_outcomes_finishes_in_one_step(
    uow: FakeUnitOfWork, resources: InMemoryResourceRepository, locks: FakeLockManager
) -> None:
    first = resources.add("obj:1", "DC", OLD)
    second = resources.add("obj:2", "DC", OLD)
    locks.lock_by("obj:2", "editor")
    r1 = uow.queue(7, "obj:1", DIFF)
    r2 = uow.queue(7, "obj:2", DIFF)
    r3 = uow.queue(7, "obj:3", DIFF)

    state = _driver(uow, resources, locks).step(7)

    assert state.finished == 1.0
    assert state.state is DriverState.FINISHED
    assert r1.status is DiffStatus.APPLIED
    assert first.content == NEW.encode()
    assert r2.status is DiffStatus.IGNORED
    assert second.writes == []
    assert r3.status is DiffStatus.OBJECT_LOAD_FAIL
    assert state.results.ignored_targets == {"obj:2"}
    assert state.results.held_locks == set()
    assert uow.commits == 3


def test_empty_batch_finishes_without_fetching(
    uow: FakeUnitOfWork, resources: InMemoryResourceRepository
) -> None:
    state = _driver(uow, resources).step(7)

    assert state.finished == 1.0
    assert state.progress is not None
    assert state.progress.total == 0
    assert uow.diffs.fetches == []


def test_large_batch_is_processed_one_page_per_step(
    uow: FakeUnitOfWork, resources: InMemoryResourceRepository
) -> None:
    for index in range(150):
        resources.add(f"obj:{index}", "DC", OLD)
        uow.queue(7, f"obj:{index}", DIFF)
    driver = _driver(uow, resources)

    state = driver.step(7)
    assert state.finished == pytest.approx(100 / 150)
    assert state.state is DriverState.RUNNING

    state = driver.step(7, state)
    assert state.finished == 1.0
    assert uow.diffs.fetches == [100, 50]
    assert all(record.status is DiffStatus.APPLIED for record in uow.diffs.records)


def test_completion_is_monotonic_and_counts_each_record_once(
    uow: FakeUnitOfWork, resources: InMemoryResourceRepository
) -> None:
    for index in range(5):
        uow.queue(7, f"obj:{index}", DIFF)
    driver = _driver(uow, resources, page_size=2)

    state = driver.step(7)
    fractions = [state.finished]
    while state.finished < 1.0:
        state = driver.step(7, state)
        fractions.append(state.finished)

    assert fractions == sorted(fractions)
    assert fractions[-1] == 1.0
    assert state.progress is not None
    assert state.progress.processed == 5
    assert uow.diffs.fetches == [2, 2, 1]


def test_update_failure_is_recorded_before_the_step_aborts(
    uow: FakeUnitOfWork, resources: InMemoryResourceRepository, locks: FakeLockManager
) -> None:
    broken = resources.add("obj:1", "DC", OLD)
    broken.fail_on_write = True
    resources.add("obj:2", "DC", OLD)
    failing = uow.queue(7, "obj:1", DIFF)
    untouched = uow.queue(7, "obj:2", DIFF)
    state = StepState(batch_id=7)

    with pytest.raises(DiffUpdateError) as excinfo:
        _driver(uow, resources, locks).step(7, state)

    assert excinfo.value.target_id == "obj:1"
    assert failing.status is DiffStatus.UPDATE_FAIL
    assert untouched.status is DiffStatus.PENDING
    assert uow.commits == 1
    assert state.results.held_locks == {"obj:1"}
    assert state.progress is not None
    assert state.progress.processed == 1


def test_state_survives_a_round_trip_between_steps(
    uow: FakeUnitOfWork, resources: InMemoryResourceRepository, locks: FakeLockManager
) -> None:
    resources.add("obj:1", "DC", OLD)
    resources.add("obj:2", "DC", OLD)
    resources.add("obj:3", "DC", OLD)
    locks.lock_by("obj:1", "editor")
    for index in (1, 2, 3):
        uow.queue(7, f"obj:{index}", DIFF)

    first = _driver(uow, resources, locks, page_size=2).step(7)
    parked = json.loads(json.dumps(first.to_dict()))
    resumed = StepState.from_dict(parked)
    final = _driver(uow, resources, locks, page_size=2).step(7, resumed)

    assert final.finished == 1.0
    assert final.results.ignored_targets == {"obj:1"}
    assert uow.diffs.fetches == [2, 1]


def test_vanished_records_finish_the_run(
    uow: FakeUnitOfWork, resources: InMemoryResourceRepository
) -> None:
    uow.queue(7, "obj:1", DIFF)
    other = uow.queue(7, "obj:2", DIFF)
    driver = _driver(uow, resources, page_size=1)

    state = driver.step(7)
    assert state.finished == pytest.approx(0.5)

    other.status = DiffStatus.APPLIED
    state = driver.step(7, state)

    assert state.finished == 1.0
    assert state.progress is not None
    assert state.progress.processed == 1


def test_finished_state_is_returned_untouched(resources: InMemoryResourceRepository) -> None:
    def no_store() -> FakeUnitOfWork:
        raise AssertionError("the store must not be opened")

    driver = BatchStepDriver(
        unit_of_work_factory=no_store, applicator=DiffApplicator(resources=resources)
    )
    state = StepState(batch_id=7)
    state.finish()

    assert driver.step(7, state) is state


def test_unknown_batch_is_rejected(resources: InMemoryResourceRepository) -> None:
    with pytest.raises(BatchNotFoundError):
        _driver(FakeUnitOfWork(), resources).step(99)


def test_state_of_another_batch_is_rejected(
    uow: FakeUnitOfWork, resources: InMemoryResourceRepository
) -> None:
    with pytest.raises(ValueError, match="batch 8"):
        _driver(uow, resources).step(7, StepState(batch_id=8))


@pytest.mark.parametrize("page_size", [0, 101])
def test_page_size_is_bounded(
    uow: FakeUnitOfWork, resources: InMemoryResourceRepository, page_size: int
) -> None:
    with pytest.raises(ValueError, match="Page size"):
        _driver(uow, resources, page_size=page_size)
