"""Quality checks and the acceptance gates evaluated against them."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Mapping

import structlog

from stagecraft.observability.metrics import record_gate_failure, record_quality_check

from .contracts import CheckFn, Gate, GateProtocol, coerce_outcome, maybe_await, resolve_gate
from .errors import DuplicateCheck, InvalidCheck

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CheckRecord:
    """Outcome of one check in a pipeline run.

    ``error`` is set only when the check raised instead of returning.
    """

    name: str
    passed: bool
    result: Any = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class QualityReport:
    passed: bool
    checks: tuple[CheckRecord, ...] = ()
    summary: str = ""

    def get(self, name: str) -> CheckRecord | None:
        return next((check for check in self.checks if check.name == name), None)


@dataclass(frozen=True, slots=True)
class GateFailure:
    name: str
    reason: str


@dataclass(frozen=True, slots=True)
class GateReport:
    passed: bool
    failed_gates: tuple[GateFailure, ...] = field(default_factory=tuple)


class QualityPipeline:
    """Runs registered checks in order, then judges their results with gates."""

    def __init__(self) -> None:
        self._checks: dict[str, CheckFn] = {}
        self._gates: list[Gate] = []

    def add_check(self, name: str, fn: CheckFn) -> None:
        if not callable(fn):
            raise InvalidCheck(
                "Invalid check format: fn is required and must be callable",
                extra={"check": name},
            )
        if name in self._checks:
            raise DuplicateCheck(name)
        self._checks[name] = fn

    def add_gate(self, name: str, gate: GateProtocol | Mapping[str, Any]) -> None:
        """Register a gate; it does not need a check of the same name yet."""

        self._gates.append(resolve_gate(name, gate))

    def get_checks(self) -> list[str]:
        return list(self._checks)

    def get_gates(self) -> list[str]:
        return [gate.name for gate in self._gates]

    async def execute(self) -> QualityReport:
        """Run every check; a failing or raising check never stops the others."""

        records: list[CheckRecord] = []
        failures: list[str] = []
        for name, fn in list(self._checks.items()):
            try:
                outcome = coerce_outcome(await maybe_await(fn()))
            except Exception as exc:
                records.append(CheckRecord(name=name, passed=False, error=str(exc)))
                failures.append(f"{name}: {exc}")
                record_quality_check(name, "error")
                logger.warning("quality.check.error", check=name, error=str(exc))
                continue

            records.append(CheckRecord(name=name, passed=outcome.passed, result=outcome.result))
            if outcome.passed:
                record_quality_check(name, "passed")
            else:
                failures.append(f"{name}: {outcome.result or 'failed'}")
                record_quality_check(name, "failed")
                logger.info("quality.check.failed", check=name)

        report = QualityReport(
            passed=not failures,
            checks=tuple(records),
            summary="; ".join(failures),
        )
        logger.info(
            "quality.pipeline.complete",
            passed=report.passed,
            check_count=len(records),
            failed_count=len(failures),
        )
        return report

    def validate_gates(self, report: QualityReport) -> GateReport:
        """Evaluate each gate against the check record sharing its name.

        A gate whose check is absent from ``report`` is skipped. A validator
        that raises or returns a falsy value fails the gate; evaluation always
        continues with the remaining gates.
        """

        if not self._gates:
            return GateReport(passed=True)

        failed: list[GateFailure] = []
        for gate in self._gates:
            record = report.get(gate.name)
            if record is None:
                continue
            try:
                accepted = gate.validator(record.result)
            except Exception as exc:
                failed.append(GateFailure(name=gate.name, reason=str(exc)))
            else:
                if inspect.isawaitable(accepted):
                    if inspect.iscoroutine(accepted):
                        accepted.close()
                    failed.append(
                        GateFailure(name=gate.name, reason="Validator returned an awaitable")
                    )
                elif not accepted:
                    failed.append(GateFailure(name=gate.name, reason="Validator returned false"))

        for failure in failed:
            record_gate_failure(failure.name)
            logger.info("quality.gate.failed", gate=failure.name, reason=failure.reason)
        return GateReport(passed=not failed, failed_gates=tuple(failed))


__all__ = [
    "CheckRecord",
    "GateFailure",
    "GateReport",
    "QualityPipeline",
    "QualityReport",
]
