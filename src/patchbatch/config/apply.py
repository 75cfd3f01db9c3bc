"""Settings for applying stored diffs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from patchbatch.domain.model import StalenessReference

from .env import env_bool, env_int, optional_env_var
from .errors import ConfigurationError

MAX_PAGE_SIZE: Final[int] = 100
LOCK_HOLDER_PREFIX: Final[str] = "patchbatch"


@dataclass(frozen=True, slots=True)
class ApplyConfig:
    """Knobs of the batch step driver and diff applicator.

    ``page_size`` bounds a single step invocation and may not exceed
    ``MAX_PAGE_SIZE``. ``lock_skipped_targets`` keeps the legacy behaviour of
    taking the advisory lock on targets that end up skipped. Without an explicit
    ``lock_holder`` every batch locks under a holder of its own, see ``holder_for``.
    """

    page_size: int = MAX_PAGE_SIZE
    staleness_reference: StalenessReference = StalenessReference.MODIFIED
    lock_skipped_targets: bool = False
    lock_holder: str | None = None

    def __post_init__(self) -> None:
        if not 0 < self.page_size <= MAX_PAGE_SIZE:
            raise ConfigurationError(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}, got {self.page_size}"
            )
        if self.lock_holder is not None and not self.lock_holder.strip():
            raise ConfigurationError("Lock holder must not be blank")

    def holder_for(self, batch_id: int) -> str:
        return self.lock_holder or f"{LOCK_HOLDER_PREFIX}:batch-{batch_id}"

    @classmethod
    def from_environment(cls) -> ApplyConfig:
        reference = optional_env_var("PATCHBATCH_STALENESS_REFERENCE")
        try:
            staleness = (
                StalenessReference(reference.lower()) if reference else StalenessReference.MODIFIED
            )
        except ValueError as exc:
            raise ConfigurationError(f"Unknown staleness reference: {reference}") from exc
        return cls(
            page_size=env_int("PATCHBATCH_PAGE_SIZE", MAX_PAGE_SIZE),
            staleness_reference=staleness,
            lock_skipped_targets=env_bool("PATCHBATCH_LOCK_SKIPPED", default=False),
            lock_holder=optional_env_var("PATCHBATCH_LOCK_HOLDER"),
        )


def get_apply_config() -> ApplyConfig:
    return ApplyConfig.from_environment()
