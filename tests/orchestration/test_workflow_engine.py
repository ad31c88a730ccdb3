from __future__ import annotations

from typing import Any

import pytest

from stagecraft.config.settings import get_settings
from stagecraft.orchestration.errors import InvalidStep, InvalidSteps, StepExecutionError
from stagecraft.orchestration.workflow import WorkflowEngine
from stagecraft.utils.logging import bind_correlation_id, get_correlation_id, reset_correlation_id


class RecordingStep:
    """Object-form step that logs execution and compensation."""

    def __init__(self, name: str, log: list[str], *, fail: bool = False, fail_rollback: bool = False) -> None:
        self.name = name
        self.log = log
        self.fail = fail
        self.fail_rollback = fail_rollback

    async def execute(self, context: dict[str, Any]) -> str:
        if self.fail:
            raise RuntimeError(f"{self.name} failed")
        context.setdefault("seen", []).append(self.name)
        self.log.append(f"execute:{self.name}")
        return self.name

    async def rollback(self) -> None:
        self.log.append(f"rollback:{self.name}")
        if self.fail_rollback:
            raise RuntimeError(f"{self.name} rollback failed")


class ExecuteOnly:
    def __init__(self, log: list[str]) -> None:
        self.log = log

    def execute(self, context: dict[str, Any]) -> str:
        self.log.append("execute:plain")
        return "plain"


@pytest.mark.asyncio
async def test_execute_runs_steps_in_order_and_returns_last_result(engine: WorkflowEngine) -> None:
    log: list[str] = []
    context: dict[str, Any] = {}

    async def async_fn(ctx: dict[str, Any]) -> int:
        ctx["async"] = True
        return 2

    result = await engine.execute(
        [lambda ctx: 1, async_fn, RecordingStep("obj", log)],
        context,
    )

    assert result == "obj"
    assert context == {"async": True, "seen": ["obj"]}
    history = engine.get_execution_history()
    assert [record.step_index for record in history] == [0, 1, 2]
    assert [record.result for record in history] == [1, 2, "obj"]
    assert all(record.success for record in history)


@pytest.mark.asyncio
async def test_context_mutations_are_visible_to_later_steps(engine: WorkflowEngine) -> None:
    def first(ctx: dict[str, Any]) -> None:
        ctx["value"] = 10

    def second(ctx: dict[str, Any]) -> int:
        return ctx["value"] * 2

    assert await engine.execute([first, second], {}) == 20


@pytest.mark.asyncio
async def test_empty_steps_returns_none_and_keeps_previous_run(engine: WorkflowEngine) -> None:
    await engine.execute([lambda ctx: "kept"])
    assert await engine.execute([]) is None
    assert len(engine.get_execution_history()) == 1
    assert len(engine.executed_steps) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("steps", [None, "abc", {"a": 1}, 42])
async def test_non_sequence_steps_rejected(engine: WorkflowEngine, steps: Any) -> None:
    with pytest.raises(InvalidSteps):
        await engine.execute(steps)


@pytest.mark.asyncio
async def test_uncallable_step_fails_when_reached(engine: WorkflowEngine) -> None:
    log: list[str] = []
    with pytest.raises(InvalidStep) as excinfo:
        await engine.execute([RecordingStep("a", log), object(), RecordingStep("c", log)], {})

    assert excinfo.value.step_index == 1
    assert log == ["execute:a"]
    history = engine.get_execution_history()
    assert history[-1].step_index == 1
    assert history[-1].success is False
    assert len(engine.executed_steps) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("failing_index", [0, 1, 3])
async def test_failure_leaves_ledger_with_completed_prefix(
    engine: WorkflowEngine, failing_index: int
) -> None:
    log: list[str] = []
    steps = [
        RecordingStep(f"s{index}", log, fail=index == failing_index) for index in range(4)
    ]

    with pytest.raises(StepExecutionError) as excinfo:
        await engine.execute(steps, {})

    assert excinfo.value.step_index == failing_index
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert list(engine.executed_steps) == steps[:failing_index]
    failed = engine.get_execution_history()[-1]
    assert failed.success is False
    assert failed.step_index == failing_index
    assert failed.error == f"s{failing_index} failed"


@pytest.mark.asyncio
async def test_rollback_compensates_in_reverse_and_skips_plain_steps(engine: WorkflowEngine) -> None:
    log: list[str] = []
    steps = [
        RecordingStep("a", log),
        ExecuteOnly(log),
        lambda ctx: log.append("execute:fn"),
        RecordingStep("d", log),
        RecordingStep("e", log, fail=True),
    ]

    with pytest.raises(StepExecutionError):
        await engine.execute(steps, {})
    log.clear()

    failures = await engine.rollback()

    assert failures == []
    assert log == ["rollback:d", "rollback:a"]
    assert engine.executed_steps == ()
    assert len(engine.get_execution_history()) == 5


@pytest.mark.asyncio
async def test_rollback_continues_past_failing_compensation(engine: WorkflowEngine) -> None:
    log: list[str] = []
    steps = [
        RecordingStep("a", log),
        RecordingStep("b", log, fail_rollback=True),
        RecordingStep("c", log),
    ]
    await engine.execute(steps, {})
    log.clear()

    failures = await engine.rollback()

    assert log == ["rollback:c", "rollback:b", "rollback:a"]
    assert [failure.step_index for failure in failures] == [1]
    assert failures[0].error == "b rollback failed"
    assert engine.executed_steps == ()


@pytest.mark.asyncio
async def test_rollback_twice_is_a_noop(engine: WorkflowEngine) -> None:
    log: list[str] = []
    await engine.execute([RecordingStep("a", log)], {})
    await engine.rollback()
    log.clear()
    await engine.rollback()
    assert log == []


@pytest.mark.asyncio
async def test_execute_resets_previous_ledger(engine: WorkflowEngine) -> None:
    log: list[str] = []
    await engine.execute([RecordingStep("old", log)], {})
    await engine.execute([RecordingStep("new", log)], {})
    log.clear()

    await engine.rollback()
    assert log == ["rollback:new"]
    assert [record.result for record in engine.get_execution_history()] == ["new"]


@pytest.mark.asyncio
async def test_reset_clears_ledger_and_history(engine: WorkflowEngine) -> None:
    await engine.execute([lambda ctx: 1], {})
    engine.reset()
    assert engine.get_execution_history() == []
    assert engine.executed_steps == ()


@pytest.mark.asyncio
async def test_history_read_is_a_copy(engine: WorkflowEngine) -> None:
    await engine.execute([lambda ctx: 1], {})
    engine.get_execution_history().clear()
    assert len(engine.get_execution_history()) == 1


@pytest.mark.asyncio
async def test_default_context_is_a_fresh_dict(engine: WorkflowEngine) -> None:
    seen: list[Any] = []
    await engine.execute([lambda ctx: seen.append(ctx)])
    assert seen == [{}]


@pytest.mark.asyncio
async def test_rollback_completes_when_settings_cannot_load(
    engine: WorkflowEngine, monkeypatch: pytest.MonkeyPatch
) -> None:
    log: list[str] = []
    await engine.execute([RecordingStep("a", log), RecordingStep("b", log)], {})
    monkeypatch.setenv("STAGECRAFT_STATE__MAX_SNAPSHOTS", "0")
    get_settings.cache_clear()

    failures = await engine.rollback()

    assert failures == []
    assert log[-2:] == ["rollback:b", "rollback:a"]
    assert engine.executed_steps == ()


@pytest.mark.asyncio
async def test_completed_step_is_ledgered_when_settings_cannot_load(
    engine: WorkflowEngine, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STAGECRAFT_STATE__MAX_SNAPSHOTS", "0")
    get_settings.cache_clear()
    log: list[str] = []
    step = RecordingStep("a", log)

    await engine.execute([step], {})

    assert engine.executed_steps == (step,)
    await engine.rollback()
    assert log == ["execute:a", "rollback:a"]


@pytest.mark.asyncio
async def test_steps_run_under_one_run_correlation_id(engine: WorkflowEngine) -> None:
    seen: list[str | None] = []
    await engine.execute([lambda ctx: seen.append(get_correlation_id())] * 2, {})

    assert engine.run_id is not None and engine.run_id.startswith("run_")
    assert seen == [engine.run_id, engine.run_id]
    assert get_correlation_id() is None


@pytest.mark.asyncio
async def test_bound_correlation_id_is_reused_by_run(engine: WorkflowEngine) -> None:
    token = bind_correlation_id("request-7")
    try:
        await engine.execute([lambda ctx: None], {})
        assert engine.run_id == "request-7"
    finally:
        reset_correlation_id(token)
