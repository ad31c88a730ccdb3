"""Structured logging for the orchestration components.

Key Responsibilities:
    - Render structlog events and stdlib records as the same JSON lines
    - Redact configured sensitive fields before anything is rendered
    - Carry a correlation id for each workflow run or stage transition

Collaborators:
    - Upstream: ``WorkflowEngine.execute`` and ``StageOrchestrator.transition``
      open a :func:`correlation_scope`; host programs call
      :func:`configure_logging` once at startup
    - Downstream: ``structlog`` and the stdlib root logger

Side Effects:
    - ``configure_logging`` replaces the root logger handlers and the global
      structlog configuration
    - Correlation ids live in context variables

Thread Safety:
    - Correlation helpers rely on ``contextvars`` and are safe for async use
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any
from uuid import uuid4

import structlog
from structlog.typing import Processor

from stagecraft.config.settings import LoggingSettings

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

REDACTED = "***"


# ==============================================================================
# PROCESSORS
# ==============================================================================


class ScrubSensitiveFields:
    """Processor replacing values of sensitive keys, at any depth, with ``***``."""

    def __init__(self, fields: Iterable[str] | None = None) -> None:
        self._fields = frozenset(field.lower() for field in fields or ())

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {
                key: REDACTED if str(key).lower() in self._fields else self._scrub(item)
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple)):
            return [self._scrub(item) for item in value]
        return value

    def __call__(
        self, _: Any, __: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        for key in list(event_dict):
            if key.startswith("_"):
                continue
            if key.lower() in self._fields:
                event_dict[key] = REDACTED
            else:
                event_dict[key] = self._scrub(event_dict[key])
        return event_dict


def add_correlation_id(
    _: Any, __: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    correlation_id = _correlation_id.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def _level_value(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        return value if isinstance(value, int) else logging.INFO
    return logging.INFO


def build_formatter(scrub_fields: Iterable[str] | None = None) -> structlog.stdlib.ProcessorFormatter:
    """JSON formatter for stdlib records sharing the structlog processor chain."""

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[structlog.stdlib.ExtraAdder(), *_shared_processors(scrub_fields)],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(sort_keys=True, default=str),
        ],
    )


def _shared_processors(scrub_fields: Iterable[str] | None) -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_correlation_id,
        ScrubSensitiveFields(scrub_fields),
    ]


def configure_logging(
    level: int | str | None = None,
    *,
    settings: LoggingSettings | None = None,
) -> None:
    """Configure structlog and the stdlib root logger for the host process.

    ``settings`` takes precedence over ``level`` when both are given.
    """

    scrub_fields: Iterable[str] | None = None
    if settings is not None:
        level = settings.level
        scrub_fields = settings.scrub_fields
    level_value = _level_value(level)
    formatter = build_formatter(scrub_fields)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    kept = [
        existing
        for existing in root_logger.handlers
        if (type(existing).__module__ or "").startswith("_pytest.")
    ]
    for existing in kept:
        existing.setFormatter(formatter)
    logging.basicConfig(level=level_value, handlers=[*kept, handler], force=True)

    structlog.configure(
        processors=[
            *_shared_processors(scrub_fields),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True, default=str),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


# ==============================================================================
# CORRELATION IDS
# ==============================================================================


def bind_correlation_id(value: str) -> Token[str | None]:
    token = _correlation_id.set(value)
    structlog.contextvars.bind_contextvars(correlation_id=value)
    return token


def reset_correlation_id(token: Token[str | None] | None) -> None:
    if token is not None:
        _correlation_id.reset(token)
    previous = _correlation_id.get()
    if previous:
        structlog.contextvars.bind_contextvars(correlation_id=previous)
    else:
        structlog.contextvars.unbind_contextvars("correlation_id")


def get_correlation_id() -> str | None:
    return _correlation_id.get()


@contextmanager
def correlation_scope(prefix: str) -> Iterator[str]:
    """Yield the bound correlation id, binding ``<prefix>_<hex>`` if none is.

    A scope opened inside another reuses the outer id, so a transition whose
    hooks run a workflow logs both under one id.
    """

    existing = _correlation_id.get()
    if existing:
        yield existing
        return
    value = f"{prefix}_{uuid4().hex}"
    token = bind_correlation_id(value)
    try:
        yield value
    finally:
        reset_correlation_id(token)


__all__ = [
    "REDACTED",
    "ScrubSensitiveFields",
    "add_correlation_id",
    "bind_correlation_id",
    "build_formatter",
    "configure_logging",
    "correlation_scope",
    "get_correlation_id",
    "reset_correlation_id",
]
