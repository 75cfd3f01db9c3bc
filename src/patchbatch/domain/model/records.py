"""Persisted records: batches and the diffs queued against them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from patchbatch.domain.errors import InvalidDiffRecordError

from .enums import DiffStatus


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class Batch:
    """A named unit of work.

    ``created_at`` marks when the stored diffs were computed; any sub-resource
    modified after it is considered stale.
    """

    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)
    description: str | None = None


@dataclass(eq=False, kw_only=True)
class DiffRecord:
    """One queued change against a sub-resource of a target object."""

    batch_id: int
    target_id: str
    sub_resource_id: str
    diff: bytes
    status: DiffStatus = DiffStatus.PENDING
    id: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is DiffStatus.PENDING

    def validate(self) -> DiffRecord:
        """Raise ``InvalidDiffRecordError`` unless every field is well-formed."""

        problems: list[str] = []
        if not isinstance(self.batch_id, int):
            problems.append("batch_id must be an integer")
        if not isinstance(self.target_id, str) or not self.target_id.strip():
            problems.append("target_id must be a non-empty string")
        if not isinstance(self.sub_resource_id, str) or not self.sub_resource_id.strip():
            problems.append("sub_resource_id must be a non-empty string")
        if not isinstance(self.diff, bytes):
            problems.append("diff must be bytes")
        if not isinstance(self.status, DiffStatus):
            problems.append(f"unknown status {self.status!r}")
        if problems:
            raise InvalidDiffRecordError(self.id, problems)
        return self
