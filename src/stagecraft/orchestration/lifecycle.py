"""Declarative stage set and transition table for the stage orchestrator."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

DEFAULT_STAGES: tuple[str, ...] = ("init", "processing", "completed")
DEFAULT_TRANSITIONS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "init": ("processing",),
        "processing": ("completed",),
        "completed": (),
    }
)


class LifecycleDefinition(BaseModel):
    """Closed set of stages plus the edges allowed between them.

    A stage with no outgoing edges is terminal. Stages missing from
    ``transitions`` are treated as terminal as well. The transition table is
    stored read-only, so a definition shared between orchestrators cannot be
    edited through any of them.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    stages: tuple[str, ...] = Field(default=DEFAULT_STAGES, min_length=1)
    initial_stage: str = "init"
    transitions: Mapping[str, tuple[str, ...]] = Field(
        default_factory=lambda: dict(DEFAULT_TRANSITIONS)
    )

    @field_validator("transitions", mode="after")
    @classmethod
    def _freeze_transitions(
        cls, value: Mapping[str, tuple[str, ...]]
    ) -> Mapping[str, tuple[str, ...]]:
        return MappingProxyType({source: tuple(targets) for source, targets in value.items()})

    @field_serializer("transitions")
    def _dump_transitions(self, value: Mapping[str, tuple[str, ...]]) -> dict[str, list[str]]:
        return {source: list(targets) for source, targets in value.items()}

    @model_validator(mode="after")
    def _validate_table(self) -> LifecycleDefinition:
        if len(set(self.stages)) != len(self.stages):
            raise ValueError("Duplicate stage names in lifecycle")
        declared = set(self.stages)
        if self.initial_stage not in declared:
            raise ValueError(f"Initial stage '{self.initial_stage}' is not declared")
        for source, targets in self.transitions.items():
            if source not in declared:
                raise ValueError(f"Transition source '{source}' is not declared")
            for target in targets:
                if target not in declared:
                    raise ValueError(f"Transition target '{target}' is not declared")
                if target == source:
                    raise ValueError(f"Stage '{source}' cannot transition to itself")
        return self

    def is_declared(self, stage: str) -> bool:
        return stage in self.stages

    def allowed_targets(self, stage: str) -> tuple[str, ...]:
        return tuple(self.transitions.get(stage, ()))

    def is_terminal(self, stage: str) -> bool:
        return not self.allowed_targets(stage)


DEFAULT_LIFECYCLE = LifecycleDefinition()


__all__ = [
    "DEFAULT_LIFECYCLE",
    "DEFAULT_STAGES",
    "DEFAULT_TRANSITIONS",
    "LifecycleDefinition",
]
