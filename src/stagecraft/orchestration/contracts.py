"""Capability contracts for steps, checks, gates and lifecycle hooks.

Callers hand the orchestration components loosely shaped objects: a step may
be a plain callable or an object with ``execute``/``rollback`` members, a gate
may be an object or a mapping exposing ``validator``. The helpers in this
module resolve those shapes once, at the component boundary, into the small
frozen records below so the execution loops never branch on shape.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar, runtime_checkable

from .errors import InvalidCheck, InvalidGate

T = TypeVar("T")

Hook = Callable[[], Awaitable[None] | None]
CheckFn = Callable[[], Any]
Validator = Callable[[Any], bool]


@runtime_checkable
class StepProtocol(Protocol):
    """Object form of a workflow step."""

    def execute(self, context: Any) -> Any: ...


@runtime_checkable
class CompensatingStep(StepProtocol, Protocol):
    """Step that can undo its own effect."""

    def rollback(self) -> Any: ...


class GateProtocol(Protocol):
    validator: Validator


async def maybe_await(value: Awaitable[T] | T) -> T:
    """Await ``value`` when it is awaitable, otherwise return it unchanged."""

    if inspect.isawaitable(value):
        return await value
    return value


# ==============================================================================
# STEPS
# ==============================================================================


@dataclass(frozen=True, slots=True)
class ResolvedStep:
    """A step reduced to its run callable and optional compensation."""

    source: Any
    run: Callable[[Any], Any]
    compensate: Callable[[], Any] | None = None


def resolve_step(step: Any) -> ResolvedStep | None:
    """Resolve ``step`` into a :class:`ResolvedStep`.

    The step itself is used when it is directly callable, otherwise its
    ``execute`` member. Returns ``None`` when neither form is callable. A
    compensation is only taken from instances: a class passed as a step is
    run by instantiating it, and its ``rollback`` is an unbound function.
    """

    if callable(step):
        run = step
    else:
        run = getattr(step, "execute", None)
        if not callable(run):
            return None
    compensate = None if isinstance(step, type) else getattr(step, "rollback", None)
    return ResolvedStep(
        source=step,
        run=run,
        compensate=compensate if callable(compensate) else None,
    )


# ==============================================================================
# CHECKS
# ==============================================================================


@dataclass(frozen=True, slots=True)
class CheckOutcome:
    """Verdict returned by a quality check."""

    passed: bool
    result: Any = None


def coerce_outcome(value: Any) -> CheckOutcome:
    """Normalise what a check returned into a :class:`CheckOutcome`.

    Accepts a ``CheckOutcome``, a mapping with a ``passed`` key, or any object
    exposing ``passed`` (and optionally ``result``) attributes.
    """

    if isinstance(value, CheckOutcome):
        return value
    if isinstance(value, Mapping):
        if "passed" not in value:
            raise InvalidCheck("Check outcome is missing 'passed'")
        return CheckOutcome(passed=bool(value["passed"]), result=value.get("result"))
    if hasattr(value, "passed"):
        return CheckOutcome(passed=bool(value.passed), result=getattr(value, "result", None))
    raise InvalidCheck(f"Check returned an unsupported outcome: {type(value).__name__}")


# ==============================================================================
# GATES
# ==============================================================================


@dataclass(frozen=True, slots=True)
class Gate:
    """Named acceptance rule evaluated against one check's result."""

    name: str
    validator: Validator


def resolve_gate(name: str, gate: GateProtocol | Mapping[str, Any] | None) -> Gate:
    if isinstance(gate, Mapping):
        validator = gate.get("validator")
    else:
        validator = getattr(gate, "validator", None)
    if not callable(validator):
        raise InvalidGate(
            "Invalid gate format: validator is required and must be callable",
            extra={"gate": name},
        )
    if inspect.iscoroutinefunction(validator) or inspect.iscoroutinefunction(
        getattr(validator, "__call__", None)
    ):
        raise InvalidGate(
            "Invalid gate format: validator must be synchronous",
            extra={"gate": name},
        )
    return Gate(name=name, validator=validator)


__all__ = [
    "CheckFn",
    "CheckOutcome",
    "CompensatingStep",
    "Gate",
    "GateProtocol",
    "Hook",
    "ResolvedStep",
    "StepProtocol",
    "Validator",
    "coerce_outcome",
    "maybe_await",
    "resolve_gate",
    "resolve_step",
]
