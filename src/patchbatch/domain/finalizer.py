"""Report the outcome of a batch run and clean up its queued diffs."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

from patchbatch.domain.model import MessageLevel
from patchbatch.domain.ports.messaging import Message, MessageSink, ObjectLink

if TYPE_CHECKING:
    from patchbatch.domain.batch_runner import BatchOperation
    from patchbatch.domain.ports.resources import LockManager
    from patchbatch.domain.ports.unit_of_work import DiffUnitOfWork
    from patchbatch.domain.progress import ResultSummary

log = getLogger(__name__)

LinkBuilder = Callable[[str], str | None]

IGNORED_NOTICE = (
    "The following objects were not updated because they were locked or modified "
    "after the diffs were computed:"
)


def no_links(target_id: str) -> str | None:
    _ = target_id
    return None


@dataclass(frozen=True, slots=True)
class ObjectUrlBuilder:
    """Render ``{base_url}/{target_id}`` links to repository objects."""

    base_url: str

    def __call__(self, target_id: str) -> str | None:
        return f"{self.base_url.rstrip('/')}/{quote(target_id, safe=':')}"


@dataclass(frozen=True, slots=True)
class BatchReport:
    batch_id: int
    success: bool
    ignored_targets: tuple[str, ...]
    deleted_records: int
    messages: tuple[Message, ...] = field(default_factory=tuple)


@dataclass(slots=True)
class BatchFinalizer:
    unit_of_work_factory: Callable[[], DiffUnitOfWork]
    sink: MessageSink
    locks: LockManager | None = None
    link_builder: LinkBuilder = no_links

    def finished(
        self,
        success: bool,  # noqa: FBT001
        results: ResultSummary,
        failing_operation: BatchOperation | None,
    ) -> BatchReport:
        """Surface failures and ignored objects, then drop every record of the batch."""

        messages = self._build_messages(success, results, failing_operation)
        deleted = 0
        try:
            for message in messages:
                self.sink.emit(message)
        finally:
            self._release_held_locks(results)
            with self.unit_of_work_factory() as uow:
                deleted = uow.repositories.diffs.delete_all(results.batch_id)
                uow.commit()
            log.info("Batch %s: removed %s diff records", results.batch_id, deleted)

        return BatchReport(
            batch_id=results.batch_id,
            success=success,
            ignored_targets=tuple(sorted(results.ignored_targets)),
            deleted_records=deleted,
            messages=tuple(messages),
        )

    def _build_messages(
        self,
        success: bool,  # noqa: FBT001
        results: ResultSummary,
        failing_operation: BatchOperation | None,
    ) -> list[Message]:
        messages: list[Message] = []
        if not success:
            if failing_operation is None:
                text = f"An error occurred while applying diffs for batch {results.batch_id}."
            else:
                text = f"An error occurred while processing {failing_operation.describe()}."
            messages.append(Message(level=MessageLevel.ERROR, text=text))
        if results.ignored_targets:
            links = tuple(
                ObjectLink(target_id=target_id, url=self.link_builder(target_id))
                for target_id in sorted(results.ignored_targets)
            )
            messages.append(Message(level=MessageLevel.INFO, text=IGNORED_NOTICE, links=links))
        return messages

    def _release_held_locks(self, results: ResultSummary) -> None:
        if self.locks is None:
            return
        for target_id in sorted(results.held_locks):
            self.locks.release(target_id)
        results.held_locks.clear()
        # leftovers of an interrupted earlier run under the same holder
        self.locks.release_all()
