"""Domain port definitions for adapters."""

from __future__ import annotations

from .messaging import Message, MessageSink, ObjectLink
from .persistence import (
    DEFAULT_PAGE_SIZE,
    BatchRepository,
    DiffRecordRepository,
    Repository,
)
from .resources import LockManager, Resource, ResourceRepository, SubResource
from .unit_of_work import (
    DiffRepositories,
    DiffUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "BatchRepository",
    "DiffRecordRepository",
    "DiffRepositories",
    "DiffUnitOfWork",
    "LockManager",
    "Message",
    "MessageSink",
    "ObjectLink",
    "Repository",
    "RepositoryCollection",
    "Resource",
    "ResourceRepository",
    "SubResource",
    "UnitOfWork",
]
