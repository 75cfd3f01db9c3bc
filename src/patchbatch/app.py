"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from patchbatch.adapters.messaging import LoggingMessageSink
from patchbatch.adapters.repository import HttpResourceRepository
from patchbatch.adapters.sqlalchemy import SqlAlchemyLockManager
from patchbatch.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyDiffUnitOfWork,
    is_started,
    session_factory,
    startup,
)
from patchbatch.config import ApplyConfig, get_apply_config
from patchbatch.config.env import optional_env_var
from patchbatch.domain.applicator import DiffApplicator
from patchbatch.domain.batch_runner import BatchRunner
from patchbatch.domain.driver import BatchStepDriver
from patchbatch.domain.errors import BatchNotFoundError
from patchbatch.domain.finalizer import (
    BatchFinalizer,
    BatchReport,
    LinkBuilder,
    ObjectUrlBuilder,
    no_links,
)
from patchbatch.domain.ports.unit_of_work import DiffUnitOfWork

if TYPE_CHECKING:
    from patchbatch.domain.model import DiffStatus
    from patchbatch.domain.ports.messaging import MessageSink
    from patchbatch.domain.ports.resources import LockManager, ResourceRepository

UnitOfWorkFactory = Callable[[], DiffUnitOfWork]


log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def _default_link_builder() -> LinkBuilder:
    object_url = optional_env_var("PATCHBATCH_OBJECT_URL")
    if object_url is None:
        return no_links
    return ObjectUrlBuilder(object_url)


def apply_results(
    batch_id: int,
    *,
    resources: ResourceRepository | None = None,
    locks: LockManager | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    sink: MessageSink | None = None,
    config: ApplyConfig | None = None,
    runner: BatchRunner | None = None,
    link_builder: LinkBuilder | None = None,
) -> BatchReport:
    """Apply every pending diff of ``batch_id``, report the outcome and clean up."""

    if unit_of_work_factory is None or locks is None:
        _ensure_started()
    apply_config = config or get_apply_config()
    effective_uow = unit_of_work_factory or SqlAlchemyDiffUnitOfWork
    effective_locks = locks or SqlAlchemyLockManager(
        session_factory(), holder=apply_config.holder_for(batch_id)
    )
    owned_repository: HttpResourceRepository | None = None
    if resources is None:
        owned_repository = HttpResourceRepository()
        resources = owned_repository

    log.info(
        "Applying batch %s: page_size=%s, staleness=%s, lock_skipped=%s",
        batch_id,
        apply_config.page_size,
        apply_config.staleness_reference,
        apply_config.lock_skipped_targets,
    )

    applicator = DiffApplicator(
        resources=resources,
        locks=effective_locks,
        staleness_reference=apply_config.staleness_reference,
        lock_skipped_targets=apply_config.lock_skipped_targets,
    )
    driver = BatchStepDriver(
        unit_of_work_factory=effective_uow,
        applicator=applicator,
        page_size=apply_config.page_size,
    )
    finalizer = BatchFinalizer(
        unit_of_work_factory=effective_uow,
        sink=sink or LoggingMessageSink(),
        locks=effective_locks,
        link_builder=link_builder or _default_link_builder(),
    )

    try:
        report = (runner or BatchRunner()).run(batch_id, driver.step, finalizer.finished)
    finally:
        if owned_repository is not None:
            owned_repository.close()

    log.info(
        "Finished batch %s: success=%s, ignored=%s, removed=%s",
        batch_id,
        report.success,
        len(report.ignored_targets),
        report.deleted_records,
    )
    return report


def batch_status(
    batch_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> dict[DiffStatus, int]:
    """Return how many diff records of ``batch_id`` sit in each status."""

    if unit_of_work_factory is None:
        _ensure_started()
    with (unit_of_work_factory or SqlAlchemyDiffUnitOfWork)() as uow:
        if uow.repositories.batches.get(batch_id) is None:
            raise BatchNotFoundError(batch_id)
        return dict(uow.repositories.diffs.status_counts(batch_id))


def cancel_batch(
    batch_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    locks: LockManager | None = None,
    config: ApplyConfig | None = None,
) -> int:
    """Drop a batch together with all of its queued diffs; return the records removed.

    Locks still held under the batch's holder, for example after an interrupted
    run, are released as well.
    """

    if unit_of_work_factory is None or locks is None:
        _ensure_started()
    effective_locks = locks or SqlAlchemyLockManager(
        session_factory(), holder=(config or get_apply_config()).holder_for(batch_id)
    )
    with (unit_of_work_factory or SqlAlchemyDiffUnitOfWork)() as uow:
        batch = uow.repositories.batches.get(batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        deleted = uow.repositories.diffs.delete_all(batch_id)
        uow.repositories.batches.remove(batch)
        uow.commit()
    released = effective_locks.release_all()
    log.info(
        "Cancelled batch %s, removed %s diff records and %s locks", batch_id, deleted, released
    )
    return deleted
