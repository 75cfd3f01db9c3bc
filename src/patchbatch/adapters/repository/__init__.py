"""REST object repository adapter."""

from __future__ import annotations

from .client import HttpDatastream, HttpObject, HttpResourceRepository
from .schema import DatastreamPayload, ObjectPayload

__all__ = [
    "DatastreamPayload",
    "HttpDatastream",
    "HttpObject",
    "HttpResourceRepository",
    "ObjectPayload",
]
