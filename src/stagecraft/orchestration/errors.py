"""Exception taxonomy raised by the orchestration components.

Every exception derives from :class:`OrchestrationError`, which carries an
RFC 7807 :class:`~stagecraft.utils.errors.ProblemDetail`. The intermediate
classes group failures by kind so callers can catch a whole family:

``ValidationError``
    Malformed input to a registration or execution call.
``DuplicateError``
    Name collision on check or handler registration.
``StateError``
    Operation invalid for the current lifecycle state.
``NotFoundError``
    Lookup miss on an identifier that must exist.
``ExecutionError``
    A step's own logic failed; the original exception is chained.
``HookError``
    An entry or exit hook failed; the original exception is chained.
"""

from __future__ import annotations

from typing import Any

from stagecraft.utils.errors import FoundationError


class OrchestrationError(FoundationError):
    """Root of all orchestration failures."""


# ==============================================================================
# VALIDATION
# ==============================================================================


class ValidationError(OrchestrationError, ValueError):
    status = 400


class InvalidSteps(ValidationError):
    """Raised when the steps argument is not a sequence."""


class InvalidStep(ValidationError):
    def __init__(self, step_index: int) -> None:
        super().__init__(
            f"Step at index {step_index} is not callable",
            extra={"step_index": step_index},
        )
        self.step_index = step_index


class InvalidCheck(ValidationError):
    pass


class InvalidGate(ValidationError):
    pass


class InvalidHandler(ValidationError):
    pass


class InvalidConfiguration(ValidationError):
    pass


# ==============================================================================
# DUPLICATES
# ==============================================================================


class DuplicateError(OrchestrationError, ValueError):
    status = 409


class DuplicateCheck(DuplicateError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate check name: {name}", extra={"check": name})
        self.name = name


class DuplicateHandler(DuplicateError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Handler already exists: {name}", extra={"handler": name})
        self.name = name


# ==============================================================================
# LIFECYCLE STATE
# ==============================================================================


class StateError(OrchestrationError):
    status = 409


class NotInitialized(StateError):
    def __init__(self) -> None:
        super().__init__("Orchestrator not initialized")


class AlreadyInitialized(StateError):
    def __init__(self) -> None:
        super().__init__("Orchestrator already initialized")


class UnknownStage(StateError):
    def __init__(self, stage: str) -> None:
        super().__init__(f"Stage does not exist: {stage}", extra={"stage": stage})
        self.stage = stage


class NoSelfTransition(StateError):
    def __init__(self, stage: str) -> None:
        super().__init__(
            f"Cannot transition to the same stage: {stage}", extra={"stage": stage}
        )
        self.stage = stage


class IllegalTransition(StateError):
    def __init__(self, source: str, target: str) -> None:
        super().__init__(
            f"Invalid stage transition: {source} -> {target}",
            extra={"source": source, "target": target},
        )
        self.source = source
        self.target = target


# ==============================================================================
# LOOKUPS
# ==============================================================================


class NotFoundError(OrchestrationError, LookupError):
    status = 404


class SnapshotNotFound(NotFoundError):
    def __init__(self, snapshot_id: str) -> None:
        super().__init__(
            f"Snapshot not found: {snapshot_id}", extra={"snapshot_id": snapshot_id}
        )
        self.snapshot_id = snapshot_id


# ==============================================================================
# EXECUTION
# ==============================================================================


class ExecutionError(OrchestrationError):
    """A unit of caller supplied work raised while being executed."""

    def __init__(self, message: str, *, original: BaseException, **extra: Any) -> None:
        super().__init__(message, detail=str(original), extra=extra)
        self.original = original


class StepExecutionError(ExecutionError):
    def __init__(self, step_index: int, original: BaseException) -> None:
        super().__init__(
            f"Step at index {step_index} failed: {original}",
            original=original,
            step_index=step_index,
        )
        self.step_index = step_index


class HookError(OrchestrationError):
    def __init__(
        self,
        *,
        stage: str,
        event: str,
        hook_index: int,
        original: BaseException,
    ) -> None:
        super().__init__(
            f"{event} hook {hook_index} for stage '{stage}' failed: {original}",
            detail=str(original),
            extra={"stage": stage, "event": event, "hook_index": hook_index},
        )
        self.stage = stage
        self.event = event
        self.hook_index = hook_index
        self.original = original


__all__ = [
    "AlreadyInitialized",
    "DuplicateCheck",
    "DuplicateError",
    "DuplicateHandler",
    "ExecutionError",
    "HookError",
    "IllegalTransition",
    "InvalidCheck",
    "InvalidConfiguration",
    "InvalidGate",
    "InvalidHandler",
    "InvalidStep",
    "InvalidSteps",
    "NoSelfTransition",
    "NotFoundError",
    "NotInitialized",
    "OrchestrationError",
    "SnapshotNotFound",
    "StateError",
    "StepExecutionError",
    "UnknownStage",
    "ValidationError",
]
