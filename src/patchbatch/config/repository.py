"""Remote object repository configuration."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int, optional_env_var, require_env_var
from .errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class RepositoryConfig:
    """Where the object repository lives and how to reach it."""

    base_url: str
    token: str | None = None
    timeout_seconds: float = 30.0
    retries: int = 4

    def __post_init__(self) -> None:
        if self.retries < 0:
            raise ConfigurationError(f"Repository retries must be non-negative, got {self.retries}")

    @classmethod
    def from_environment(cls) -> RepositoryConfig:
        return cls(
            base_url=require_env_var("PATCHBATCH_REPOSITORY_URL").rstrip("/"),
            token=optional_env_var("PATCHBATCH_REPOSITORY_TOKEN"),
            retries=env_int("PATCHBATCH_REPOSITORY_RETRIES", 4),
        )


def get_repository_config() -> RepositoryConfig:
    return RepositoryConfig.from_environment()
