"""Ports for the remote object repository and its advisory locks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime


@runtime_checkable
class SubResource(Protocol):
    """A named content stream (datastream) attached to a target object."""

    @property
    def id(self) -> str: ...

    @property
    def content(self) -> bytes: ...

    @property
    def created_at(self) -> datetime: ...

    @property
    def modified_at(self) -> datetime: ...

    def set_content(self, content: bytes) -> None: ...


@runtime_checkable
class Resource(Protocol):
    """An addressable object in the repository."""

    @property
    def id(self) -> str: ...

    def get_sub_resource(self, sub_resource_id: str) -> SubResource | None: ...


@runtime_checkable
class ResourceRepository(Protocol):
    def load(self, target_id: str) -> Resource | None: ...


@runtime_checkable
class LockManager(Protocol):
    """Best-effort advisory locks on target objects.

    ``is_locked`` answers whether *another* actor holds the lock; a lock held by
    this manager's own holder does not block it. ``release_all`` drops every lock
    of that holder.
    """

    def is_locked(self, target_id: str) -> bool: ...

    def acquire(self, target_id: str) -> bool: ...

    def release(self, target_id: str) -> None: ...

    def release_all(self) -> int: ...
