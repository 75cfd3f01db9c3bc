"""Domain model package exports."""

from __future__ import annotations

from .enums import DiffStatus, DriverState, MessageLevel, StalenessReference
from .records import Batch, DiffRecord

__all__ = [
    "Batch",
    "DiffRecord",
    "DiffStatus",
    "DriverState",
    "MessageLevel",
    "StalenessReference",
]
