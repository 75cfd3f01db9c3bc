"""In-process batch runner: call a step function until it reports completion."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, TypeVar

from patchbatch.domain.progress import StepState

if TYPE_CHECKING:
    from patchbatch.domain.progress import ResultSummary

log = getLogger(__name__)

StepFunction = Callable[[int, StepState | None], StepState]
ProgressCallback = Callable[[StepState], None]


@dataclass(frozen=True, slots=True)
class BatchOperation:
    """A named operation and the arguments it was invoked with."""

    name: str
    args: tuple[object, ...] = field(default_factory=tuple)

    def describe(self) -> str:
        rendered = ", ".join(repr(arg) for arg in self.args)
        return f"{self.name}({rendered})"


TReport = TypeVar("TReport")

FinishedCallback = Callable[[bool, "ResultSummary", BatchOperation | None], TReport]


@dataclass(slots=True)
class BatchRunner:
    """Drive a step function to completion, then hand the outcome to a finalizer.

    Each step receives the ``StepState`` returned by the previous one. Any
    exception escaping a step ends the run as failed; the finalizer is called
    exactly once either way.
    """

    on_progress: ProgressCallback | None = None

    def run(
        self,
        batch_id: int,
        step: StepFunction,
        finished: FinishedCallback[TReport],
        *,
        operation_name: str = "step",
        state: StepState | None = None,
    ) -> TReport:
        current = state if state is not None else StepState(batch_id=batch_id)
        operation = BatchOperation(name=operation_name, args=(batch_id,))
        success = True
        failing_operation: BatchOperation | None = None
        steps = 0

        try:
            while current.finished < 1.0:
                previous = current.finished
                current = step(batch_id, current)
                steps += 1
                if current.finished < previous:
                    raise RuntimeError(
                        f"Completion went backwards for batch {batch_id}: "
                        f"{previous:.3f} -> {current.finished:.3f}"
                    )
                if self.on_progress is not None:
                    self.on_progress(current)
        except Exception:
            log.exception("Batch %s failed during %s", batch_id, operation.describe())
            success = False
            failing_operation = operation

        log.info("Batch %s ran %s steps, success=%s", batch_id, steps, success)
        return finished(success, current.results, failing_operation)
