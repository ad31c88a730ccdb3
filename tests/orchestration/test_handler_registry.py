from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pytest

from stagecraft.orchestration import registry as registry_module
from stagecraft.orchestration.errors import DuplicateHandler, InvalidHandler
from stagecraft.orchestration.registry import HandlerRegistry


class EchoHandler:
    def execute(self, context: dict[str, Any]) -> dict[str, Any]:
        return context


def _fixture_loader(pairs: dict[str, list[tuple[str, Any]]]):
    def loader(source: str) -> Iterable[tuple[str, Any]]:
        return pairs.get(source, [])

    return loader


def test_register_and_lookup() -> None:
    registry = HandlerRegistry(loader=_fixture_loader({}))
    handler = EchoHandler()
    registry.register("echo", handler)
    registry.register("fn", lambda ctx: ctx)

    assert registry.get("echo") is handler
    assert registry.get("missing") is None
    assert registry.names() == ["echo", "fn"]
    assert "echo" in registry
    assert len(registry) == 2


def test_duplicate_name_rejected() -> None:
    registry = HandlerRegistry(loader=_fixture_loader({}))
    registry.register("echo", EchoHandler())
    with pytest.raises(DuplicateHandler):
        registry.register("echo", EchoHandler())


@pytest.mark.parametrize("handler", [None, 42, object()])
def test_invalid_handler_rejected(handler: Any) -> None:
    registry = HandlerRegistry(loader=_fixture_loader({}))
    with pytest.raises(InvalidHandler):
        registry.register("bad", handler)
    assert registry.names() == []


def test_load_registers_valid_pairs_and_skips_bad_ones() -> None:
    loader = _fixture_loader(
        {
            "memory": [
                ("echo", EchoHandler()),
                ("broken", None),
                ("echo", EchoHandler()),
                ("fn", lambda ctx: ctx),
            ]
        }
    )
    registry = HandlerRegistry(loader=loader)

    registered = registry.load("memory")

    assert registered == ["echo", "fn"]
    assert registry.names() == ["echo", "fn"]


def test_clear_empties_registry() -> None:
    registry = HandlerRegistry(loader=_fixture_loader({}))
    registry.register("echo", EchoHandler())
    registry.clear()
    assert registry.names() == []
    assert registry.get("echo") is None


def test_registries_are_independent() -> None:
    first = HandlerRegistry(loader=_fixture_loader({}))
    second = HandlerRegistry(loader=_fixture_loader({}))
    first.register("echo", EchoHandler())
    assert second.get("echo") is None


class _FakeEntryPoint:
    def __init__(self, name: str, value: Any = None, error: Exception | None = None) -> None:
        self.name = name
        self._value = value
        self._error = error

    def load(self) -> Any:
        if self._error is not None:
            raise self._error
        return self._value


def test_entry_point_loader_skips_entry_points_that_fail(monkeypatch: pytest.MonkeyPatch) -> None:
    handler = EchoHandler()
    seen_groups: list[str] = []

    def fake_entry_points(*, group: str) -> list[_FakeEntryPoint]:
        seen_groups.append(group)
        return [
            _FakeEntryPoint("echo", handler),
            _FakeEntryPoint("broken", error=ImportError("missing module")),
        ]

    monkeypatch.setattr(registry_module.metadata, "entry_points", fake_entry_points)

    registry = HandlerRegistry()
    assert registry.load() == ["echo"]
    assert seen_groups == [registry_module.DEFAULT_HANDLER_GROUP]
    assert registry.get("echo") is handler
