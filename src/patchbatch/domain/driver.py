"""Bounded, resumable step function over a batch of queued diffs."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from patchbatch.domain.errors import BatchNotFoundError, DiffUpdateError
from patchbatch.domain.model import DriverState
from patchbatch.domain.progress import ProgressState, StepState
from patchbatch.domain.ports.persistence import DEFAULT_PAGE_SIZE
from patchbatch.domain.ports.unit_of_work import DiffUnitOfWork

if TYPE_CHECKING:
    from patchbatch.domain.applicator import ApplyOutcome, DiffApplicator
    from patchbatch.domain.model import Batch, DiffRecord

MAX_PAGE_SIZE: Final[int] = DEFAULT_PAGE_SIZE

UnitOfWorkFactory = Callable[[], DiffUnitOfWork]

log = getLogger(__name__)


@dataclass(slots=True)
class BatchStepDriver:
    """Apply at most one page of pending diffs per ``step`` call.

    The driver keeps no state of its own between calls. Everything needed to
    resume lives in the ``StepState`` handed back by the previous call and in
    the status column of the diff records.
    """

    unit_of_work_factory: UnitOfWorkFactory
    applicator: DiffApplicator
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if not 0 < self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")

    def step(self, batch_id: int, state: StepState | None = None) -> StepState:
        """Run one bounded unit of work and return the updated sandbox state."""

        current = state if state is not None else StepState(batch_id=batch_id)
        if current.batch_id != batch_id:
            raise ValueError(f"Step state belongs to batch {current.batch_id}, not {batch_id}")
        if current.state is DriverState.FINISHED:
            return current

        with self.unit_of_work_factory() as uow:
            batch = uow.repositories.batches.get(batch_id)
            if batch is None:
                raise BatchNotFoundError(batch_id)

            if current.progress is None:
                total = uow.repositories.diffs.count_pending(batch_id)
                current.progress = ProgressState(total=total)
                log.info("Batch %s: %s pending diffs", batch_id, total)
                if total == 0:
                    current.finish()
                    return current

            if current.progress.is_complete:
                current.finish()
                return current

            records = uow.repositories.diffs.fetch_pending(batch_id, limit=self.page_size)
            if not records:
                log.warning(
                    "Batch %s: no pending diffs left after %s of %s",
                    batch_id,
                    current.progress.processed,
                    current.progress.total,
                )
                current.finish()
                return current

            progress = current.progress
            for record in records:
                self._process(uow, batch, record, current, progress)

        if progress.is_complete:
            current.finish()
        log.info("Batch %s: processed %s/%s", batch_id, progress.processed, progress.total)
        return current

    def _process(
        self,
        uow: DiffUnitOfWork,
        batch: Batch,
        record: DiffRecord,
        state: StepState,
        progress: ProgressState,
    ) -> None:
        if record.id is None:
            raise ValueError(f"Diff record for {record.target_id} has no id")
        outcome: ApplyOutcome = self.applicator.apply(record, batch)
        uow.repositories.diffs.update_status(record.id, outcome.status)
        uow.commit()

        progress.increment()
        if outcome.ignored:
            state.results.ignore(record.target_id, lock_held=outcome.lock_held)
        elif outcome.lock_held:
            state.results.held_locks.add(record.target_id)

        if outcome.propagate:
            cause = outcome.error or RuntimeError(f"{outcome.status} for record {record.id}")
            raise DiffUpdateError(record.id, record.target_id, cause) from outcome.error
