"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class DiffStatus(StrEnum):
    """Lifecycle of a queued diff: PENDING, then exactly one terminal value."""

    PENDING = "pending"
    APPLIED = "applied"
    IGNORED = "ignored"
    OBJECT_LOAD_FAIL = "object_load_fail"
    SUBRESOURCE_LOAD_FAIL = "subresource_load_fail"
    PATCH_FAIL = "patch_fail"
    UPDATE_FAIL = "update_fail"

    @property
    def is_terminal(self) -> bool:
        return self is not DiffStatus.PENDING


class StalenessReference(StrEnum):
    """Which sub-resource timestamp is compared against the batch creation time."""

    CREATED = "created"
    MODIFIED = "modified"


class DriverState(StrEnum):
    RUNNING = "running"
    FINISHED = "finished"


class MessageLevel(StrEnum):
    INFO = "info"
    ERROR = "error"
