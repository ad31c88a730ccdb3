from __future__ import annotations

import pytest

from stagecraft.config.settings import get_settings
from stagecraft.orchestration.orchestrator import StageOrchestrator
from stagecraft.orchestration.quality import QualityPipeline
from stagecraft.orchestration.state_manager import StateManager
from stagecraft.orchestration.workflow import WorkflowEngine


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    for name in (
        "STAGECRAFT_ENV",
        "STAGECRAFT_LOGGING__LEVEL",
        "STAGECRAFT_METRICS__ENABLED",
        "STAGECRAFT_STATE__MAX_SNAPSHOTS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def orchestrator() -> StageOrchestrator:
    return StageOrchestrator()


@pytest.fixture
def engine() -> WorkflowEngine:
    return WorkflowEngine()


@pytest.fixture
def pipeline() -> QualityPipeline:
    return QualityPipeline()


@pytest.fixture
def state() -> StateManager:
    return StateManager()
