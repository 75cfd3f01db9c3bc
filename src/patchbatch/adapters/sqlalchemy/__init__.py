"""SQLAlchemy adapter package for patchbatch."""

from __future__ import annotations

from .locks import SqlAlchemyLockManager
from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemyBatchRepository, SqlAlchemyDiffRecordRepository

__all__ = [
    "SqlAlchemyBatchRepository",
    "SqlAlchemyDiffRecordRepository",
    "SqlAlchemyLockManager",
    "create_all_tables",
    "mapper_registry",
    "start_mappers",
]
