"""Stage, workflow, quality and state orchestration primitives."""

from __future__ import annotations

from importlib import import_module
from typing import Any

_ATTRIBUTE_MAP: dict[str, tuple[str, str]] = {
    "StageOrchestrator": ("stagecraft.orchestration.orchestrator", "StageOrchestrator"),
    "LifecycleDefinition": ("stagecraft.orchestration.lifecycle", "LifecycleDefinition"),
    "DEFAULT_LIFECYCLE": ("stagecraft.orchestration.lifecycle", "DEFAULT_LIFECYCLE"),
    "WorkflowEngine": ("stagecraft.orchestration.workflow", "WorkflowEngine"),
    "ExecutionRecord": ("stagecraft.orchestration.workflow", "ExecutionRecord"),
    "RollbackFailure": ("stagecraft.orchestration.workflow", "RollbackFailure"),
    "QualityPipeline": ("stagecraft.orchestration.quality", "QualityPipeline"),
    "QualityReport": ("stagecraft.orchestration.quality", "QualityReport"),
    "CheckRecord": ("stagecraft.orchestration.quality", "CheckRecord"),
    "GateReport": ("stagecraft.orchestration.quality", "GateReport"),
    "GateFailure": ("stagecraft.orchestration.quality", "GateFailure"),
    "StateManager": ("stagecraft.orchestration.state_manager", "StateManager"),
    "Snapshot": ("stagecraft.orchestration.state_manager", "Snapshot"),
    "SnapshotInfo": ("stagecraft.orchestration.state_manager", "SnapshotInfo"),
    "HandlerRegistry": ("stagecraft.orchestration.registry", "HandlerRegistry"),
    "entry_point_loader": ("stagecraft.orchestration.registry", "entry_point_loader"),
    "CheckOutcome": ("stagecraft.orchestration.contracts", "CheckOutcome"),
    "Gate": ("stagecraft.orchestration.contracts", "Gate"),
}

__all__ = sorted(_ATTRIBUTE_MAP)


def __getattr__(name: str) -> Any:
    try:
        module_name, attr_name = _ATTRIBUTE_MAP[name]
    except KeyError as exc:  # pragma: no cover - standard attribute error path
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'") from exc

    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:  # pragma: no cover - convenience helper
    return sorted(globals().keys() | _ATTRIBUTE_MAP.keys())
