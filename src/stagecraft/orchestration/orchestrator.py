"""Stage orchestrator driving a unit of work through a fixed lifecycle.

The orchestrator owns a closed stage set and transition table (see
:class:`~stagecraft.orchestration.lifecycle.LifecycleDefinition`). A
transition runs the exit hooks of the current stage, moves the stage pointer,
then runs the entry hooks of the new stage. When an entry hook fails the
pointer and history are reverted and the failure is raised; an exit hook
failure is raised before anything changes.

Thread Safety:
    Not thread-safe. One coordinating caller per instance; hooks run
    sequentially and are awaited one at a time.

Example:
    >>> orchestrator = StageOrchestrator()
    >>> orchestrator.on_enter("processing", run_workflow)
    >>> await orchestrator.initialize()
    >>> await orchestrator.transition("processing")
"""

from __future__ import annotations

from collections import defaultdict
from typing import Literal

import structlog
from opentelemetry import trace

from stagecraft.config.settings import AppSettings
from stagecraft.observability.metrics import record_hook_failure, record_stage_transition
from stagecraft.utils.logging import correlation_scope

from .contracts import Hook, maybe_await
from .errors import (
    AlreadyInitialized,
    HookError,
    IllegalTransition,
    NoSelfTransition,
    NotInitialized,
    UnknownStage,
)
from .lifecycle import DEFAULT_LIFECYCLE, LifecycleDefinition

logger = structlog.get_logger(__name__)
_TRACER = trace.get_tracer(__name__)

HookEvent = Literal["enter", "exit"]


class StageOrchestrator:
    """Tracks the current stage, its history, and per-stage lifecycle hooks."""

    def __init__(self, lifecycle: LifecycleDefinition | None = None) -> None:
        self._lifecycle = lifecycle or DEFAULT_LIFECYCLE
        self._current: str | None = None
        self._history: list[str] = []
        self._hooks: dict[HookEvent, dict[str, list[Hook]]] = {
            "enter": defaultdict(list),
            "exit": defaultdict(list),
        }

    @classmethod
    def from_settings(cls, settings: AppSettings) -> StageOrchestrator:
        """Build an orchestrator over the lifecycle declared in ``settings``."""
        return cls(settings.lifecycle)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def lifecycle(self) -> LifecycleDefinition:
        return self._lifecycle

    @property
    def is_initialized(self) -> bool:
        return self._current is not None

    async def initialize(self) -> None:
        """Enter the initial stage. Entry hooks are not run for it."""

        if self.is_initialized:
            raise AlreadyInitialized()
        self._current = self._lifecycle.initial_stage
        self._history = [self._current]
        logger.info("orchestration.stage.initialized", stage=self._current)

    async def transition(self, target: str) -> None:
        """Move from the current stage to ``target``.

        Raises:
            NotInitialized: :meth:`initialize` was never called.
            UnknownStage: ``target`` is not a declared stage.
            NoSelfTransition: ``target`` is the current stage.
            IllegalTransition: the table has no edge to ``target``.
            HookError: an exit or entry hook raised; the stage machine is left
                at its pre-call state.
        """

        source = self._validate_transition(target)
        with correlation_scope("transition") as correlation_id, _TRACER.start_as_current_span(
            "orchestration.stage.transition"
        ) as span:
            span.set_attribute("correlation_id", correlation_id)
            span.set_attribute("stage.source", source)
            span.set_attribute("stage.target", target)
            try:
                await self._run_hooks("exit", source)
            except HookError:
                record_stage_transition(source, target, "exit_failed")
                raise

            self._current = target
            self._history.append(target)

            try:
                await self._run_hooks("enter", target)
            except BaseException:
                self._current = source
                self._history.pop()
                record_stage_transition(source, target, "reverted")
                logger.warning(
                    "orchestration.stage.transition_reverted",
                    source=source,
                    target=target,
                )
                raise

            record_stage_transition(source, target, "success")
            logger.info("orchestration.stage.transition", source=source, target=target)

    def _validate_transition(self, target: str) -> str:
        if self._current is None:
            raise NotInitialized()
        if not self._lifecycle.is_declared(target):
            raise UnknownStage(target)
        if target == self._current:
            raise NoSelfTransition(target)
        if target not in self._lifecycle.allowed_targets(self._current):
            raise IllegalTransition(self._current, target)
        return self._current

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_current_stage(self) -> str | None:
        return self._current

    def get_stage_history(self) -> list[str]:
        return list(self._history)

    def get_stages(self) -> list[str]:
        return list(self._lifecycle.stages)

    def allowed_transitions(self) -> list[str]:
        if self._current is None:
            return []
        return list(self._lifecycle.allowed_targets(self._current))

    def is_terminal(self) -> bool:
        return self._current is not None and self._lifecycle.is_terminal(self._current)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------
    def on_enter(self, stage: str, callback: Hook) -> None:
        self._register_hook("enter", stage, callback)

    def on_exit(self, stage: str, callback: Hook) -> None:
        self._register_hook("exit", stage, callback)

    def _register_hook(self, event: HookEvent, stage: str, callback: Hook) -> None:
        if not self._lifecycle.is_declared(stage):
            raise UnknownStage(stage)
        self._hooks[event][stage].append(callback)

    async def _run_hooks(self, event: HookEvent, stage: str) -> None:
        for index, callback in enumerate(list(self._hooks[event].get(stage, ()))):
            try:
                await maybe_await(callback())
            except Exception as exc:
                record_hook_failure(stage, event)
                logger.warning(
                    "orchestration.stage.hook_failed",
                    stage=stage,
                    hook_event=event,
                    hook_index=index,
                    error=str(exc),
                )
                raise HookError(
                    stage=stage, event=event, hook_index=index, original=exc
                ) from exc


__all__ = ["HookEvent", "StageOrchestrator"]
