"""Ports for persisting batches and their queued diffs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, Protocol, TypeVar, runtime_checkable

from patchbatch.domain.model import Batch, DiffRecord, DiffStatus

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

DEFAULT_PAGE_SIZE: Final[int] = 100

TEntity = TypeVar("TEntity")


@runtime_checkable
class Repository(Protocol[TEntity]):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class BatchRepository(Repository[Batch], Protocol):
    """Persistence contract for batches."""

    def get(self, batch_id: int) -> Batch | None: ...

    def remove(self, batch: Batch) -> None: ...


@runtime_checkable
class DiffRecordRepository(Repository[DiffRecord], Protocol):
    """Queue of pending diff applications, keyed by batch.

    Each call is atomic on its own; nothing is promised across calls.
    """

    def fetch_pending(
        self,
        batch_id: int,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Sequence[DiffRecord]: ...

    def count_pending(self, batch_id: int) -> int: ...

    def update_status(self, record_id: int, new_status: DiffStatus) -> None: ...

    def delete_all(self, batch_id: int) -> int: ...

    def status_counts(self, batch_id: int) -> Mapping[DiffStatus, int]: ...
