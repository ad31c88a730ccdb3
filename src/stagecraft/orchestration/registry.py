"""Explicit registry of named step handlers.

The registry is a value owned by the host program rather than module state.
Handlers are registered explicitly, or in bulk through a loader: any callable
mapping a source name to ``(name, handler)`` pairs. The default loader reads
``importlib.metadata`` entry points so installed distributions can contribute
handlers; tests pass an in-memory loader instead.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from importlib import metadata
from typing import Any

import structlog

from .contracts import resolve_step
from .errors import DuplicateHandler, InvalidHandler, OrchestrationError

logger = structlog.get_logger(__name__)

DEFAULT_HANDLER_GROUP = "stagecraft.handlers"

HandlerLoader = Callable[[str], Iterable[tuple[str, Any]]]


def entry_point_loader(group: str) -> list[tuple[str, Any]]:
    """Load handlers published under the ``group`` entry point group."""

    handlers: list[tuple[str, Any]] = []
    for entry_point in metadata.entry_points(group=group):
        try:
            loaded = entry_point.load()
        except Exception as exc:
            logger.warning(
                "orchestration.handlers.load_failed",
                entry_point=entry_point.name,
                error=str(exc),
            )
            continue
        handlers.append((entry_point.name, loaded))
    return handlers


class HandlerRegistry:
    """Name to handler mapping with duplicate and shape validation."""

    def __init__(self, *, loader: HandlerLoader | None = None) -> None:
        self._handlers: dict[str, Any] = {}
        self._loader = loader or entry_point_loader

    def register(self, name: str, handler: Any) -> None:
        """Register ``handler`` under ``name``.

        Raises:
            InvalidHandler: ``handler`` is ``None`` or does not satisfy the
                step contract.
            DuplicateHandler: ``name`` is already registered.
        """

        if handler is None:
            raise InvalidHandler(f"Handler cannot be None: {name}", extra={"handler": name})
        if resolve_step(handler) is None:
            raise InvalidHandler(
                f"Handler must be callable or expose a callable execute: {name}",
                extra={"handler": name},
            )
        if name in self._handlers:
            raise DuplicateHandler(name)
        self._handlers[name] = handler

    def load(self, source: str = DEFAULT_HANDLER_GROUP) -> list[str]:
        """Register every handler the loader yields for ``source``.

        Pairs that fail registration are logged and skipped. Returns the names
        that were registered.
        """

        registered: list[str] = []
        for name, handler in self._loader(source):
            try:
                self.register(name, handler)
            except OrchestrationError as exc:
                logger.warning(
                    "orchestration.handlers.register_failed",
                    source=source,
                    handler=name,
                    error=str(exc),
                )
                continue
            registered.append(name)
        logger.info("orchestration.handlers.loaded", source=source, count=len(registered))
        return registered

    def get(self, name: str) -> Any | None:
        return self._handlers.get(name)

    def names(self) -> list[str]:
        return list(self._handlers)

    def clear(self) -> None:
        self._handlers.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handlers))


__all__ = [
    "DEFAULT_HANDLER_GROUP",
    "HandlerLoader",
    "HandlerRegistry",
    "entry_point_loader",
]
