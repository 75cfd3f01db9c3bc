"""Pydantic models describing the object repository payloads."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RepositoryBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class DatastreamPayload(RepositoryBaseModel):
    id: str = Field(validation_alias=AliasChoices("id", "dsid"))
    created: datetime = Field(validation_alias=AliasChoices("created", "createdDate"))
    modified: datetime = Field(
        validation_alias=AliasChoices("modified", "lastModifiedDate", "lastModified")
    )
    mimetype: str | None = Field(
        default=None, validation_alias=AliasChoices("mimetype", "mimeType")
    )


class ObjectPayload(RepositoryBaseModel):
    id: str = Field(validation_alias=AliasChoices("id", "pid"))
    label: str | None = None
    datastreams: list[DatastreamPayload] = Field(default_factory=list[DatastreamPayload])
