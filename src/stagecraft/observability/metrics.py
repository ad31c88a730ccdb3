"""Prometheus metrics for stage, workflow, quality and state operations.

Key Responsibilities:
    - Define Prometheus collectors for the orchestration components
    - Provide small recording helpers so components never touch collectors
      directly

Collaborators:
    - Upstream: Orchestrator, workflow engine, quality pipeline, state manager
    - Downstream: Prometheus scrape endpoint exposed by the host process

Side Effects:
    - Registers collectors with the default Prometheus registry at import

Thread Safety:
    - Thread-safe: collector updates are atomic Prometheus operations
"""

from __future__ import annotations

import structlog
from prometheus_client import Counter, Histogram

from stagecraft.config.settings import get_settings

logger = structlog.get_logger(__name__)

# ==============================================================================
# COLLECTORS
# ==============================================================================

STAGE_TRANSITIONS = Counter(
    "stagecraft_stage_transitions_total",
    "Stage transitions attempted by the orchestrator",
    ["source", "target", "status"],
)

STAGE_HOOK_FAILURES = Counter(
    "stagecraft_stage_hook_failures_total",
    "Lifecycle hooks that raised during a transition",
    ["stage", "event"],
)

WORKFLOW_STEPS = Counter(
    "stagecraft_workflow_steps_total",
    "Workflow steps executed by outcome",
    ["status"],
)

WORKFLOW_STEP_DURATION_SECONDS = Histogram(
    "stagecraft_workflow_step_duration_seconds",
    "Duration of individual workflow steps",
    buckets=[0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0],
)

WORKFLOW_ROLLBACKS = Counter(
    "stagecraft_workflow_rollbacks_total",
    "Compensating rollback calls by outcome",
    ["status"],
)

QUALITY_CHECKS = Counter(
    "stagecraft_quality_checks_total",
    "Quality checks executed by outcome",
    ["check", "status"],
)

QUALITY_GATE_FAILURES = Counter(
    "stagecraft_quality_gate_failures_total",
    "Quality gates that rejected a check result",
    ["gate"],
)

STATE_SNAPSHOTS = Counter(
    "stagecraft_state_snapshots_total",
    "State snapshot lifecycle events",
    ["event"],
)

# ==============================================================================
# RECORDING HELPERS
# ==============================================================================


def _enabled() -> bool:
    """Whether recording is on; unloadable settings turn it off for the call."""
    try:
        return get_settings().metrics.enabled
    except Exception as exc:
        logger.warning("observability.metrics.settings_unavailable", error=str(exc))
        return False


def record_stage_transition(source: str | None, target: str, status: str) -> None:
    if not _enabled():
        return
    STAGE_TRANSITIONS.labels(source=source or "none", target=target, status=status).inc()


def record_hook_failure(stage: str, event: str) -> None:
    if not _enabled():
        return
    STAGE_HOOK_FAILURES.labels(stage=stage, event=event).inc()


def observe_workflow_step(status: str, duration_seconds: float) -> None:
    if not _enabled():
        return
    WORKFLOW_STEPS.labels(status=status).inc()
    WORKFLOW_STEP_DURATION_SECONDS.observe(duration_seconds)


def record_rollback(status: str) -> None:
    if not _enabled():
        return
    WORKFLOW_ROLLBACKS.labels(status=status).inc()


def record_quality_check(check: str, status: str) -> None:
    if not _enabled():
        return
    QUALITY_CHECKS.labels(check=check, status=status).inc()


def record_gate_failure(gate: str) -> None:
    if not _enabled():
        return
    QUALITY_GATE_FAILURES.labels(gate=gate).inc()


def record_snapshot_event(event: str) -> None:
    """Count a snapshot ``created``, ``evicted`` or ``restored`` event."""
    if not _enabled():
        return
    STATE_SNAPSHOTS.labels(event=event).inc()


__all__ = [
    "QUALITY_CHECKS",
    "QUALITY_GATE_FAILURES",
    "STAGE_HOOK_FAILURES",
    "STAGE_TRANSITIONS",
    "STATE_SNAPSHOTS",
    "WORKFLOW_ROLLBACKS",
    "WORKFLOW_STEPS",
    "WORKFLOW_STEP_DURATION_SECONDS",
    "observe_workflow_step",
    "record_gate_failure",
    "record_hook_failure",
    "record_quality_check",
    "record_rollback",
    "record_snapshot_event",
    "record_stage_transition",
]
