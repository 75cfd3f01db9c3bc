"""Apply one stored diff to its target sub-resource.

Every call yields exactly one terminal ``DiffStatus``. The steps run in a fixed
order and stop at the first failure:

1. load the target object               -> OBJECT_LOAD_FAIL
2. load the named sub-resource          -> SUBRESOURCE_LOAD_FAIL
3. skip locked or stale targets         -> IGNORED
4. patch the current content            -> PATCH_FAIL
5. lock, store the patched content      -> UPDATE_FAIL (escalated)
6. release the lock                     -> APPLIED

Whether a failure is swallowed or escalated is decided by ``FAILURE_POLICY``,
not by exception propagation; the step driver reads ``ApplyOutcome.propagate``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from patchbatch.domain.errors import PatchError, ResourceError
from patchbatch.domain.model import DiffStatus, StalenessReference
from patchbatch.domain.patching import apply_patch

if TYPE_CHECKING:
    from collections.abc import Mapping

    from patchbatch.domain.model import Batch, DiffRecord
    from patchbatch.domain.ports.resources import LockManager, ResourceRepository, SubResource

log = getLogger(__name__)

FAILURE_POLICY: Final[Mapping[DiffStatus, bool]] = MappingProxyType(
    {
        DiffStatus.APPLIED: False,
        DiffStatus.IGNORED: False,
        DiffStatus.OBJECT_LOAD_FAIL: False,
        DiffStatus.SUBRESOURCE_LOAD_FAIL: False,
        DiffStatus.PATCH_FAIL: False,
        DiffStatus.UPDATE_FAIL: True,
    }
)


@dataclass(frozen=True, slots=True)
class ApplyOutcome:
    """Result of applying one record: the status to store and what to do next."""

    status: DiffStatus
    ignored: bool = False
    lock_held: bool = False
    error: BaseException | None = None

    @property
    def propagate(self) -> bool:
        return FAILURE_POLICY[self.status]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(slots=True)
class DiffApplicator:
    resources: ResourceRepository
    locks: LockManager | None = None
    staleness_reference: StalenessReference = StalenessReference.MODIFIED
    lock_skipped_targets: bool = False

    def apply(self, record: DiffRecord, batch: Batch) -> ApplyOutcome:
        target_id = record.target_id

        try:
            resource = self.resources.load(target_id)
        except ResourceError as exc:
            log.warning("Failed to load object %s: %s", target_id, exc)
            return ApplyOutcome(DiffStatus.OBJECT_LOAD_FAIL, error=exc)
        if resource is None:
            log.warning("Object %s not found", target_id)
            return ApplyOutcome(DiffStatus.OBJECT_LOAD_FAIL)

        try:
            sub_resource = resource.get_sub_resource(record.sub_resource_id)
            if sub_resource is None:
                log.warning("Datastream %s missing on %s", record.sub_resource_id, target_id)
                return ApplyOutcome(DiffStatus.SUBRESOURCE_LOAD_FAIL)
            content = sub_resource.content
            timestamp = self._reference_timestamp(sub_resource)
        except ResourceError as exc:
            log.warning(
                "Failed to load datastream %s on %s: %s", record.sub_resource_id, target_id, exc
            )
            return ApplyOutcome(DiffStatus.SUBRESOURCE_LOAD_FAIL, error=exc)

        skip_reason = self._skip_reason(target_id, timestamp, batch)
        if skip_reason is not None:
            log.info("Ignoring %s: %s", target_id, skip_reason)
            lock_held = self.lock_skipped_targets and self._acquire(target_id)
            return ApplyOutcome(DiffStatus.IGNORED, ignored=True, lock_held=lock_held)

        try:
            patched = apply_patch(content, record.diff)
        except PatchError as exc:
            log.warning("Diff %s does not apply to %s: %s", record.id, target_id, exc)
            return ApplyOutcome(DiffStatus.PATCH_FAIL, error=exc)

        lock_held = self._acquire(target_id)
        if self.locks is not None and not lock_held:
            log.info("Ignoring %s: lock taken by another actor before the update", target_id)
            return ApplyOutcome(DiffStatus.IGNORED, ignored=True)
        try:
            sub_resource.set_content(patched)
        except Exception as exc:  # noqa: BLE001
            log.error(  # noqa: TRY400
                "Failed to store %s on %s: %s", record.sub_resource_id, target_id, exc
            )
            return ApplyOutcome(DiffStatus.UPDATE_FAIL, lock_held=lock_held, error=exc)

        if lock_held:
            self._release(target_id)
        log.info("Applied diff %s to %s/%s", record.id, target_id, record.sub_resource_id)
        return ApplyOutcome(DiffStatus.APPLIED)

    def _reference_timestamp(self, sub_resource: SubResource) -> datetime:
        if self.staleness_reference is StalenessReference.CREATED:
            return _as_utc(sub_resource.created_at)
        return _as_utc(sub_resource.modified_at)

    def _skip_reason(self, target_id: str, timestamp: datetime, batch: Batch) -> str | None:
        if self.locks is not None and self.locks.is_locked(target_id):
            return "locked by another actor"
        if timestamp > _as_utc(batch.created_at):
            return f"{self.staleness_reference} at {timestamp.isoformat()} after batch creation"
        return None

    def _acquire(self, target_id: str) -> bool:
        if self.locks is None:
            return False
        return self.locks.acquire(target_id)

    def _release(self, target_id: str) -> None:
        if self.locks is not None:
            self.locks.release(target_id)
