"""Sandbox state carried between step invocations of one batch run.

Nothing here survives in memory between steps on its own: the batch runner
receives a ``StepState`` from each step and hands it back on the next call.
``to_dict``/``from_dict`` keep it JSON-compatible so a runner can park it
between process lifetimes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from patchbatch.domain.model import DriverState


@dataclass(slots=True)
class ProgressState:
    """Processed/total counters for one batch run."""

    total: int
    processed: int = 0

    def __post_init__(self) -> None:
        if self.total < 0 or self.processed < 0:
            raise ValueError("Progress counters must be non-negative")

    def increment(self) -> None:
        self.processed += 1

    @property
    def is_complete(self) -> bool:
        return self.processed >= self.total

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 1.0
        if self.processed >= self.total:
            return 1.0
        return self.processed / self.total


@dataclass(slots=True)
class ResultSummary:
    """Targets skipped during a run, and locks still held on their behalf."""

    batch_id: int
    ignored_targets: set[str] = field(default_factory=set[str])
    held_locks: set[str] = field(default_factory=set[str])

    def ignore(self, target_id: str, *, lock_held: bool = False) -> None:
        self.ignored_targets.add(target_id)
        if lock_held:
            self.held_locks.add(target_id)


@dataclass(slots=True)
class StepState:
    batch_id: int
    progress: ProgressState | None = None
    results: ResultSummary = field(init=False)
    state: DriverState = DriverState.RUNNING

    def __post_init__(self) -> None:
        self.results = ResultSummary(batch_id=self.batch_id)

    @property
    def initialised(self) -> bool:
        return self.progress is not None

    @property
    def finished(self) -> float:
        """Completion fraction reported to the batch runner."""

        if self.state is DriverState.FINISHED:
            return 1.0
        if self.progress is None:
            return 0.0
        return self.progress.fraction

    def finish(self) -> None:
        self.state = DriverState.FINISHED

    def to_dict(self) -> dict[str, Any]:
        progress = (
            None
            if self.progress is None
            else {"total": self.progress.total, "processed": self.progress.processed}
        )
        return {
            "batch_id": self.batch_id,
            "state": self.state.value,
            "progress": progress,
            "ignored_targets": sorted(self.results.ignored_targets),
            "held_locks": sorted(self.results.held_locks),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> StepState:
        progress_payload = payload.get("progress")
        progress = (
            None
            if progress_payload is None
            else ProgressState(
                total=int(progress_payload["total"]),
                processed=int(progress_payload["processed"]),
            )
        )
        restored = cls(
            batch_id=int(payload["batch_id"]),
            progress=progress,
            state=DriverState(payload.get("state", DriverState.RUNNING)),
        )
        restored.results.ignored_targets.update(payload.get("ignored_targets", ()))
        restored.results.held_locks.update(payload.get("held_locks", ()))
        return restored
