"""HTTP client for a REST object repository.

Endpoints, relative to the configured base URL:

- ``GET  objects/{id}`` returns the object with its datastream listing
  (404 when the object does not exist);
- ``GET  objects/{id}/datastreams/{dsid}/content`` returns raw content;
- ``PUT  objects/{id}/datastreams/{dsid}/content`` replaces it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from patchbatch.adapters.http_resilience import ResilienceConfig, ResilientClient, RetryPolicy
from patchbatch.config import RepositoryConfig
from patchbatch.domain.errors import ResourceError, ResourceUpdateError

from .schema import DatastreamPayload, ObjectPayload

if TYPE_CHECKING:
    from datetime import datetime

    from patchbatch.domain.ports.resources import ResourceRepository

log = getLogger(__name__)

_DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _default_resilience_config(config: RepositoryConfig) -> ResilienceConfig:
    headers = {"Accept": "application/json"}
    if config.token:
        headers["Authorization"] = f"Bearer {config.token}"
    return ResilienceConfig(
        name="repository",
        base_url=f"{config.base_url.rstrip('/')}/",
        timeout_seconds=config.timeout_seconds,
        retry=RetryPolicy(attempts=config.retries),
        default_headers=headers,
    )


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _object_path(target_id: str) -> str:
    return f"objects/{quote(target_id, safe=':')}"


def _content_path(target_id: str, datastream_id: str) -> str:
    return f"{_object_path(target_id)}/datastreams/{quote(datastream_id, safe='')}/content"


@dataclass(slots=True)
class HttpDatastream:
    """A datastream whose content is fetched on first access."""

    client: ResilientClient
    target_id: str
    payload: DatastreamPayload
    _content: bytes | None = None

    @property
    def id(self) -> str:
        return self.payload.id

    @property
    def created_at(self) -> datetime:
        return self.payload.created

    @property
    def modified_at(self) -> datetime:
        return self.payload.modified

    @property
    def content(self) -> bytes:
        if self._content is None:
            path = _content_path(self.target_id, self.id)
            try:
                response = self.client.get(path)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise ResourceError(
                    f"Could not read datastream {self.id} of {self.target_id}: {exc}"
                ) from exc
            self._content = response.content
        return self._content

    def set_content(self, content: bytes) -> None:
        path = _content_path(self.target_id, self.id)
        headers = {"Content-Type": self.payload.mimetype or _DEFAULT_CONTENT_TYPE}
        try:
            response = self.client.put(path, content=content, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ResourceUpdateError(
                f"Could not store datastream {self.id} of {self.target_id}: {exc}"
            ) from exc
        self._content = content


@dataclass(slots=True)
class HttpObject:
    client: ResilientClient
    payload: ObjectPayload

    @property
    def id(self) -> str:
        return self.payload.id

    def get_sub_resource(self, sub_resource_id: str) -> HttpDatastream | None:
        for datastream in self.payload.datastreams:
            if datastream.id == sub_resource_id:
                return HttpDatastream(client=self.client, target_id=self.id, payload=datastream)
        return None


@dataclass(slots=True)
class HttpResourceRepository:
    """Resource repository backed by the REST object API.

    Use as a context manager, or call ``close`` when done; one HTTP client is
    shared by every object and datastream loaded through the repository.
    """

    config: RepositoryConfig = field(default_factory=RepositoryConfig.from_environment)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = None

    @property
    def client(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(_default_resilience_config(self.config))
        return self._client

    def __enter__(self) -> HttpResourceRepository:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def load(self, target_id: str) -> HttpObject | None:
        try:
            response = self.client.get(_object_path(target_id))
        except httpx.HTTPError as exc:
            raise ResourceError(f"Could not load object {target_id}: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        try:
            response.raise_for_status()
            payload = ObjectPayload.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            raise ResourceError(f"Could not load object {target_id}: {exc}") from exc

        log.debug("Loaded %s with %s datastreams", target_id, len(payload.datastreams))
        return HttpObject(client=self.client, payload=payload)


if TYPE_CHECKING:
    _repository_check: ResourceRepository = HttpResourceRepository()
