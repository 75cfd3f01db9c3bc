"""Exceptions raised by the diff application core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from patchbatch.domain.model.enums import DiffStatus


class PatchBatchError(RuntimeError):
    """Base class for errors raised by patchbatch."""


class BatchNotFoundError(PatchBatchError):
    def __init__(self, batch_id: int) -> None:
        super().__init__(f"Batch {batch_id} does not exist")
        self.batch_id = batch_id


class DiffRecordNotFoundError(PatchBatchError):
    def __init__(self, record_id: int) -> None:
        super().__init__(f"Diff record {record_id} does not exist")
        self.record_id = record_id


class StatusTransitionError(PatchBatchError):
    """Raised when a terminal diff record would be moved to another status."""

    def __init__(self, record_id: int, current: DiffStatus, requested: DiffStatus) -> None:
        super().__init__(
            f"Diff record {record_id} is already {current}; refusing to set {requested}"
        )
        self.record_id = record_id
        self.current = current
        self.requested = requested


class InvalidDiffRecordError(PatchBatchError, ValueError):
    """Raised when a stored row does not form a valid diff record."""

    def __init__(self, record_id: int | None, problems: Sequence[str]) -> None:
        super().__init__(f"Invalid diff record {record_id}: {'; '.join(problems)}")
        self.record_id = record_id
        self.problems = tuple(problems)


class PatchError(PatchBatchError, ValueError):
    """Raised when a diff is malformed or does not match the base content."""


class ResourceError(PatchBatchError):
    """Raised by repository adapters when an object or datastream cannot be read."""


class ResourceUpdateError(ResourceError):
    """Raised by repository adapters when writing datastream content fails."""


class DiffUpdateError(PatchBatchError):
    """Raised by the step driver after a persistence failure was recorded.

    The record already carries ``UPDATE_FAIL``; the error aborts the step so the
    batch runner marks the whole run failed.
    """

    def __init__(self, record_id: int | None, target_id: str, cause: BaseException) -> None:
        super().__init__(f"Failed to store patched content for {target_id} (record {record_id})")
        self.record_id = record_id
        self.target_id = target_id
        self.cause = cause
