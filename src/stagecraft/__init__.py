"""Stagecraft: lifecycle, workflow, quality gate and state primitives.

Example:
    from stagecraft import StageOrchestrator, WorkflowEngine

    orchestrator = StageOrchestrator()
    engine = WorkflowEngine()
    orchestrator.on_enter("processing", lambda: engine.execute(steps, context))
    await orchestrator.initialize()
    await orchestrator.transition("processing")
"""

from __future__ import annotations

from typing import Any

from stagecraft import orchestration as _orchestration

__version__ = "0.1.0"

__all__ = ["__version__", *_orchestration.__all__]


def __getattr__(name: str) -> Any:
    return getattr(_orchestration, name)
