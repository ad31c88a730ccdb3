"""Sequential step executor with best-effort compensating rollback.

``execute`` runs steps strictly in order against a shared context and stops at
the first failure. Steps that completed are kept in a ledger so that
``rollback`` can call their compensations in reverse order. Rollback is
best-effort: a failing compensation is logged and the remaining ones still
run.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any

import structlog
from opentelemetry import trace

from stagecraft.observability.metrics import observe_workflow_step, record_rollback
from stagecraft.utils.logging import correlation_scope

from .contracts import ResolvedStep, maybe_await, resolve_step
from .errors import InvalidStep, InvalidSteps, StepExecutionError

logger = structlog.get_logger(__name__)
_TRACER = trace.get_tracer(__name__)


@dataclass(frozen=True, slots=True)
class ExecutionRecord:
    """Outcome of one step in the most recent run."""

    step_index: int
    success: bool
    result: Any = None
    error: str | None = None
    exception: BaseException | None = field(default=None, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class RollbackFailure:
    """A compensation that raised during :meth:`WorkflowEngine.rollback`."""

    step_index: int
    error: str


class WorkflowEngine:
    """Runs ordered steps and keeps the ledger needed to compensate them."""

    def __init__(self) -> None:
        self._ledger: list[ResolvedStep] = []
        self._history: list[ExecutionRecord] = []
        self._run_id: str | None = None

    async def execute(self, steps: Sequence[Any], context: Any = None) -> Any:
        """Run ``steps`` in order and return the last step's result.

        An empty sequence returns ``None`` and leaves the ledger and history
        from any previous run untouched.

        Raises:
            InvalidSteps: ``steps`` is not a sequence.
            InvalidStep: a step is neither callable nor has a callable
                ``execute``; earlier steps stay in the ledger.
            StepExecutionError: a step raised; the original exception is
                chained and later steps do not run.
        """

        if not isinstance(steps, Sequence) or isinstance(steps, (str, bytes)):
            raise InvalidSteps("Invalid steps: must be a sequence")
        if not steps:
            return None
        if context is None:
            context = {}

        self._ledger = []
        self._history = []
        last_result: Any = None

        with correlation_scope("run") as run_id:
            self._run_id = run_id
            logger.debug("orchestration.workflow.start", step_count=len(steps))
            for index, step in enumerate(steps):
                resolved = resolve_step(step)
                if resolved is None:
                    failure = InvalidStep(index)
                    self._history.append(
                        ExecutionRecord(
                            step_index=index, success=False, error=str(failure), exception=failure
                        )
                    )
                    raise failure
                last_result = await self._run_step(index, resolved, context)

            logger.info("orchestration.workflow.complete", step_count=len(steps))
        return last_result

    async def _run_step(self, index: int, step: ResolvedStep, context: Any) -> Any:
        started = perf_counter()
        with _TRACER.start_as_current_span("orchestration.workflow.step") as span:
            span.set_attribute("workflow.step_index", index)
            try:
                result = await maybe_await(step.run(context))
            except Exception as exc:
                duration = perf_counter() - started
                self._history.append(
                    ExecutionRecord(step_index=index, success=False, error=str(exc), exception=exc)
                )
                observe_workflow_step("error", duration)
                logger.warning(
                    "orchestration.workflow.step.failure",
                    step_index=index,
                    error=str(exc),
                    duration_ms=round(duration * 1000, 3),
                )
                raise StepExecutionError(index, exc) from exc

        self._ledger.append(step)
        self._history.append(ExecutionRecord(step_index=index, success=True, result=result))
        observe_workflow_step("success", perf_counter() - started)
        return result

    async def rollback(self) -> list[RollbackFailure]:
        """Compensate ledgered steps in reverse order.

        Never raises for a failing compensation; failures are logged and
        returned. The ledger is cleared afterwards, the run history is kept.
        """

        failures: list[RollbackFailure] = []
        for index in reversed(range(len(self._ledger))):
            compensate = self._ledger[index].compensate
            if compensate is None:
                continue
            try:
                await maybe_await(compensate())
            except Exception as exc:
                record_rollback("error")
                logger.warning(
                    "orchestration.workflow.rollback.failed",
                    step_index=index,
                    error=str(exc),
                )
                failures.append(RollbackFailure(step_index=index, error=str(exc)))
            else:
                record_rollback("success")

        self._ledger = []
        return failures

    @property
    def run_id(self) -> str | None:
        """Correlation id the most recent run logged under."""

        return self._run_id

    @property
    def executed_steps(self) -> tuple[Any, ...]:
        """Steps from the last run that completed, in execution order."""

        return tuple(entry.source for entry in self._ledger)

    def get_execution_history(self) -> list[ExecutionRecord]:
        return list(self._history)

    def reset(self) -> None:
        self._ledger = []
        self._history = []
        self._run_id = None


__all__ = ["ExecutionRecord", "RollbackFailure", "WorkflowEngine"]
