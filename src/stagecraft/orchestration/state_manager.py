"""In-memory key-value state with bounded point-in-time snapshots.

Snapshots copy the live mapping shallowly: the mapping itself is independent
of later ``set_state``/``remove_state``/``clear_state`` calls, but mutable
values stored in it are shared with the live state. Once more than
``max_snapshots`` exist the oldest is evicted.

Thread Safety:
    Not thread-safe. External synchronization required for concurrent access.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping
from uuid import uuid4

import structlog
from attrs import field, frozen

from stagecraft.config.settings import AppSettings
from stagecraft.observability.metrics import record_snapshot_event

from .errors import InvalidConfiguration, SnapshotNotFound

logger = structlog.get_logger(__name__)

DEFAULT_MAX_SNAPSHOTS = 10


@frozen
class Snapshot:
    """Immutable copy of the state mapping at a point in time."""

    id: str
    timestamp: datetime
    state: Mapping[str, Any] = field(converter=lambda value: MappingProxyType(dict(value)))


@frozen
class SnapshotInfo:
    """Public view of a snapshot that does not expose stored values."""

    id: str
    timestamp: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StateManager:
    """Live key-value state plus FIFO-bounded snapshot history."""

    def __init__(
        self,
        *,
        max_snapshots: int = DEFAULT_MAX_SNAPSHOTS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if isinstance(max_snapshots, bool) or not isinstance(max_snapshots, int) or max_snapshots < 1:
            raise InvalidConfiguration(
                f"max_snapshots must be a positive integer, got {max_snapshots!r}"
            )
        self._max_snapshots = max_snapshots
        self._clock = clock or _utcnow
        self._state: dict[str, Any] = {}
        self._snapshots: list[Snapshot] = []

    @classmethod
    def from_settings(cls, settings: AppSettings) -> StateManager:
        return cls(max_snapshots=settings.state.max_snapshots)

    @property
    def max_snapshots(self) -> int:
        return self._max_snapshots

    # ------------------------------------------------------------------
    # Live state
    # ------------------------------------------------------------------
    def set_state(self, key: str, value: Any) -> None:
        self._state[key] = value

    def get_state(self, key: str, default: Any = None) -> Any:
        """Return the value for ``key``, or ``default`` when it is absent."""
        return self._state.get(key, default)

    def has_state(self, key: str) -> bool:
        return key in self._state

    def remove_state(self, key: str) -> None:
        self._state.pop(key, None)

    def clear_state(self) -> None:
        self._state.clear()

    def keys(self) -> list[str]:
        return list(self._state)

    def __len__(self) -> int:
        return len(self._state)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._state))

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def snapshot(self) -> str:
        """Capture the live state and return the new snapshot id."""

        snapshot = Snapshot(
            id=f"snapshot_{uuid4().hex}",
            timestamp=self._clock(),
            state=self._state,
        )
        self._snapshots.append(snapshot)
        record_snapshot_event("created")
        while len(self._snapshots) > self._max_snapshots:
            evicted = self._snapshots.pop(0)
            record_snapshot_event("evicted")
            logger.debug("state.snapshot.evicted", snapshot_id=evicted.id)
        logger.debug("state.snapshot.created", snapshot_id=snapshot.id, keys=len(self._state))
        return snapshot.id

    def restore(self, snapshot_id: str) -> None:
        """Replace the live state with a fresh copy of a snapshot's state.

        Raises:
            SnapshotNotFound: no retained snapshot has ``snapshot_id``; the
                live state is left untouched.
        """

        snapshot = next((item for item in self._snapshots if item.id == snapshot_id), None)
        if snapshot is None:
            raise SnapshotNotFound(snapshot_id)
        self._state = dict(snapshot.state)
        record_snapshot_event("restored")
        logger.info("state.snapshot.restored", snapshot_id=snapshot_id)

    def list_snapshots(self) -> list[SnapshotInfo]:
        return [SnapshotInfo(id=item.id, timestamp=item.timestamp) for item in self._snapshots]


__all__ = ["DEFAULT_MAX_SNAPSHOTS", "Snapshot", "SnapshotInfo", "StateManager"]
