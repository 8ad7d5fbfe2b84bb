"""Play count sync job state and the read-only views published to observers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.models.track_models import TrackRecord


class SyncMode(StrEnum):
    """How the target's play count is reconciled."""

    MATCH = "match"  # bring target up to source's count
    ADD = "add"  # add source's count on top of target's


class SyncState(StrEnum):
    """Lifecycle states of a sync job."""

    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass(slots=True)
class SyncJob:
    """Working state for one reconciliation run.

    ``completed_iterations`` and ``state`` are written only by the controller
    loop. Everyone else reads a :class:`SyncProgress` copy.
    """

    source_track: TrackRecord
    target_track: TrackRecord
    mode: SyncMode
    required_iterations: int
    goal_play_count: int
    completed_iterations: int = 0
    state: SyncState = SyncState.IDLE
    failure: str | None = None
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    @property
    def estimated_play_count(self) -> int:
        """Best-effort target play count after the confirmed plays."""
        return self.target_track.play_count + self.completed_iterations

    def snapshot(self, *, is_paused: bool = False) -> SyncProgress:
        """Return a consistent read-only copy of the mutable fields."""
        return SyncProgress(
            job_id=self.job_id,
            state=self.state,
            completed_iterations=self.completed_iterations,
            required_iterations=self.required_iterations,
            is_paused=is_paused,
        )


@dataclass(frozen=True, slots=True)
class SyncProgress:
    """Published view of a running or finished job."""

    job_id: str
    state: SyncState
    completed_iterations: int
    required_iterations: int
    is_paused: bool = False

    @property
    def fraction(self) -> float:
        if self.required_iterations <= 0:
            return 1.0
        return self.completed_iterations / self.required_iterations


@dataclass(frozen=True, slots=True)
class SyncSummary:
    """Final report of a finished job."""

    job_id: str
    state: SyncState
    plays_added: int
    estimated_play_count: int
    goal_play_count: int
    message: str
    failure: str | None = None
